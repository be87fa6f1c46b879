"""
Crime Pulse - Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Configuration fixtures
- Fake SoQL fetch functions
- Mock fixtures for the HTTP layer
"""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

# Set test environment
os.environ["CP_ENVIRONMENT"] = "dev"
os.environ.pop("CP_APP_TOKEN", None)

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def configs_dir(project_root: Path) -> Path:
    """Get the packaged configs directory."""
    return project_root / "crime_pulse" / "configs"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> Any:
    """Get test configuration."""
    from crime_pulse.shared.config import get_config, reload_config

    # Ensure fresh config for tests
    reload_config("dev")
    return get_config("dev")


@pytest.fixture
def austin(test_config: Any) -> Any:
    """Point-geography dataset."""
    from crime_pulse.datasets.registry import get_dataset

    return get_dataset("austin", test_config)


@pytest.fixture
def los_angeles(test_config: Any) -> Any:
    """Dataset without geography."""
    from crime_pulse.datasets.registry import get_dataset

    return get_dataset("los_angeles", test_config)


@pytest.fixture
def san_francisco(test_config: Any) -> Any:
    """Choropleth dataset."""
    from crime_pulse.datasets.registry import get_dataset

    return get_dataset("san_francisco", test_config)


# =============================================================================
# Fake Fetch Fixtures
# =============================================================================


class RecordingFetch:
    """
    Fake ``fetch(query)`` that answers from a responder and records queries.

    The responder receives the query text and returns the payload, or raises.
    """

    def __init__(self, responder: Callable[[str], Any]):
        self.responder = responder
        self.queries: list[str] = []

    def __call__(self, query: str) -> Any:
        self.queries.append(query)
        return self.responder(query)


@pytest.fixture
def recording_fetch() -> Callable[[Callable[[str], Any]], RecordingFetch]:
    """Factory for recording fake fetch functions."""
    return RecordingFetch


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_response(mocker: Any) -> Callable[..., Any]:
    """Factory for fake ``requests`` responses."""

    def make(payload: Any = None, status_code: int = 200, text: str = "") -> Any:
        response = mocker.MagicMock()
        response.status_code = status_code
        # Same rule as requests.Response.ok
        response.ok = 200 <= status_code < 400
        response.text = text
        response.json.return_value = payload
        return response

    return make


@pytest.fixture
def mock_requests_get(mocker: Any) -> Any:
    """Patch the HTTP GET used by the SoQL client."""
    return mocker.patch("crime_pulse.soql.client.requests.get")


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cleanup_env() -> Generator[None, None, None]:
    """Clean up environment variables after each test."""
    original_env = os.environ.copy()
    yield
    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
