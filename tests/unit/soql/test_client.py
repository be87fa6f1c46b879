"""
Unit tests for the SoQL HTTP client.
"""

from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from crime_pulse.exceptions import RequestFailedError
from crime_pulse.soql.client import SoqlClient, build_url

ENDPOINT = "https://datahub.austintexas.gov/api/v3/views/fdj4-gpfu/query.json"


class TestBuildUrl:
    """Test cases for build_url."""

    def test_includes_query_and_token(self):
        url = build_url(ENDPOINT, "select * limit 5", token="abc")
        params = parse_qs(urlsplit(url).query)
        assert params["query"] == ["select * limit 5"]
        assert params["$$app_token"] == ["abc"]

    @pytest.mark.parametrize("token", [None, "", "   "])
    def test_blank_token_is_omitted(self, token):
        url = build_url(ENDPOINT, "select * limit 5", token=token)
        assert "app_token" not in url

    def test_preserves_existing_params(self):
        url = build_url(f"{ENDPOINT}?foo=bar", "select 1")
        params = parse_qs(urlsplit(url).query)
        assert params["foo"] == ["bar"]
        assert params["query"] == ["select 1"]


class TestSoqlClient:
    """Test cases for SoqlClient."""

    @pytest.fixture
    def client(self, test_config):
        return SoqlClient(test_config)

    def test_query_returns_payload(self, client, mock_requests_get, mock_response):
        mock_requests_get.return_value = mock_response([{"count": "4"}])

        assert client.query(ENDPOINT, "select count(*) as count") == [{"count": "4"}]

        args, kwargs = mock_requests_get.call_args
        assert args[0].startswith(ENDPOINT)
        assert kwargs["headers"] == {"Accept": "application/json"}
        assert kwargs["timeout"] == 30

    def test_non_2xx_raises_with_status(self, client, mock_requests_get, mock_response):
        mock_requests_get.return_value = mock_response(status_code=403, text="Forbidden")

        with pytest.raises(RequestFailedError) as exc_info:
            client.query(ENDPOINT, "select * limit 1")

        assert exc_info.value.status_code == 403
        assert exc_info.value.likely_needs_token

    @pytest.mark.parametrize("status_code", [301, 302, 304])
    def test_redirect_status_raises(self, client, mock_requests_get, mock_response, status_code):
        mock_requests_get.return_value = mock_response([{"a": 1}], status_code=status_code)

        with pytest.raises(RequestFailedError) as exc_info:
            client.query(ENDPOINT, "select * limit 1")

        assert exc_info.value.status_code == status_code

    def test_redirect_response_with_json_body_raises(self, client, mock_requests_get):
        response = requests.models.Response()
        response.status_code = 302
        response._content = b'[{"a": 1}]'
        mock_requests_get.return_value = response

        with pytest.raises(RequestFailedError):
            client.query(ENDPOINT, "select * limit 1")

    def test_server_error_does_not_suggest_token(self, client, mock_requests_get, mock_response):
        mock_requests_get.return_value = mock_response(status_code=500)

        with pytest.raises(RequestFailedError) as exc_info:
            client.query(ENDPOINT, "select * limit 1")

        assert not exc_info.value.likely_needs_token

    def test_transport_error_has_no_status(self, client, mock_requests_get):
        mock_requests_get.side_effect = requests.ConnectionError("boom")

        with pytest.raises(RequestFailedError) as exc_info:
            client.query(ENDPOINT, "select * limit 1")

        assert exc_info.value.status_code is None
        assert "boom" in str(exc_info.value)

    def test_invalid_json_raises(self, client, mock_requests_get, mock_response):
        response = mock_response()
        response.json.side_effect = ValueError("no json")
        mock_requests_get.return_value = response

        with pytest.raises(RequestFailedError):
            client.query(ENDPOINT, "select * limit 1")

    def test_fetch_geojson_requires_object(self, client, mock_requests_get, mock_response):
        mock_requests_get.return_value = mock_response([1, 2])

        with pytest.raises(RequestFailedError):
            client.fetch_geojson("https://example.org/boundaries.geojson")

    def test_bind_sends_token(self, client, mock_requests_get, mock_response):
        mock_requests_get.return_value = mock_response([])

        fetch = client.bind(ENDPOINT, "tok")
        fetch("select * limit 1")

        url = mock_requests_get.call_args[0][0]
        assert parse_qs(urlsplit(url).query)["$$app_token"] == ["tok"]
