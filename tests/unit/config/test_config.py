"""
Unit tests for configuration loading.
"""

from crime_pulse.shared.config import (
    Settings,
    _deep_merge,
    get_config,
    get_dataset_config,
    reload_config,
)


class TestConfig:
    """Test cases for layered configuration."""

    def test_dev_overrides_base(self, test_config):
        assert test_config.environment == "dev"
        assert test_config.api.timeout_seconds == 30
        assert test_config.api.default_row_limit == 200
        assert test_config.logging.level == "DEBUG"
        assert test_config.stats.trend_weeks == 26

    def test_prod_uses_json_logging(self):
        config = reload_config("prod")
        assert config.logging.format == "json"
        assert config.api.timeout_seconds == 60
        reload_config("dev")

    def test_get_config_is_cached(self):
        assert get_config("dev") is get_config("dev")

    def test_app_token_from_environment(self, monkeypatch):
        monkeypatch.setenv("CP_APP_TOKEN", "secret")
        assert Settings().app_token == "secret"

    def test_app_token_defaults_to_none(self, monkeypatch):
        monkeypatch.delenv("CP_APP_TOKEN", raising=False)
        assert Settings().app_token is None

    def test_deep_merge(self):
        merged = _deep_merge({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"c": 3}})
        assert merged == {"a": {"b": 1, "c": 3}, "d": 1}

    def test_dataset_files(self, configs_dir):
        shipped = {path.stem for path in (configs_dir / "datasets").glob("*.yaml")}
        assert {"austin", "chicago", "los_angeles", "san_francisco", "seattle"} <= shipped
        assert get_dataset_config("austin")["dataset_id"] == "fdj4-gpfu"
        assert get_dataset_config("missing") == {}
