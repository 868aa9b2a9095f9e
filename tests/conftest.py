"""
Global test configuration and fixtures for PSN Trophies

Shared fixtures: settings overrides, a respx router standing in for the
PlayStation Network and translation endpoints, and FastAPI test clients.
"""

from typing import Dict, Iterator

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from psn_trophies.core.config import settings
from psn_trophies.core.limiter import limiter
from psn_trophies.main import create_app
from tests.utils.factories import (
    ACCOUNT_ID,
    API_HOST,
    API_PATH,
    AUTH_HOST,
    AUTH_PATH,
    TITLE_ID,
    VALID_NPSSO,
    AuthResponseFactory,
    TrophyDataFactory,
    translate_echo,
)


# ============================================================================
# Test Environment Setup
# ============================================================================

@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Isolate every test from a developer's .env"""
    monkeypatch.setattr(settings, "NPSSO", None)
    monkeypatch.setattr(settings, "TRANSLATION_ENABLED", True)
    monkeypatch.setattr(settings, "DEV_MODE", False)
    yield settings


@pytest.fixture(autouse=True)
def reset_limiter():
    """Rate limit counters must not leak between tests"""
    limiter.reset()
    yield
    limiter.reset()


# ============================================================================
# Upstream Mock Fixtures
# ============================================================================

def install_psn_routes(router: respx.MockRouter, title_id: str = TITLE_ID) -> None:
    """Register happy-path routes for every upstream endpoint, by name"""
    router.get(host=AUTH_HOST, path=f"{AUTH_PATH}/authorize", name="authorize").mock(
        return_value=AuthResponseFactory.authorize_redirect()
    )
    router.post(host=AUTH_HOST, path=f"{AUTH_PATH}/token", name="token").mock(
        return_value=httpx.Response(200, json=AuthResponseFactory.token())
    )

    users = f"{API_PATH}/trophy/v1/users/{ACCOUNT_ID}"
    titles = f"{API_PATH}/trophy/v1/npCommunicationIds/{title_id}"
    router.get(host=API_HOST, path=f"{users}/trophyTitles", name="titles").mock(
        return_value=httpx.Response(200, json=TrophyDataFactory.title_list())
    )
    router.get(host=API_HOST, path=f"{users}/trophySummary", name="summary").mock(
        return_value=httpx.Response(200, json=TrophyDataFactory.trophy_summary())
    )
    router.get(
        host=API_HOST,
        path=f"{API_PATH}/userProfile/v1/internal/users/{ACCOUNT_ID}/profiles",
        name="profile",
    ).mock(return_value=httpx.Response(200, json=TrophyDataFactory.profile()))
    router.get(host=API_HOST, path=f"{titles}/trophyGroups/all/trophies", name="definitions").mock(
        return_value=httpx.Response(200, json=TrophyDataFactory.definitions())
    )
    router.get(
        host=API_HOST,
        path=f"{users}/npCommunicationIds/{title_id}/trophyGroups/all/trophies",
        name="earned",
    ).mock(return_value=httpx.Response(200, json=TrophyDataFactory.earned_records()))
    router.get(host=API_HOST, path=f"{titles}/trophyGroups", name="groups").mock(
        return_value=httpx.Response(200, json=TrophyDataFactory.groups())
    )
    router.post(
        host=httpx.URL(settings.TRANSLATE_BASE_URL).host,
        path=httpx.URL(settings.TRANSLATE_BASE_URL).path,
        name="translate",
    ).mock(side_effect=translate_echo)


@pytest.fixture
def psn_api() -> Iterator[respx.MockRouter]:
    """respx router with every upstream endpoint answering successfully"""
    with respx.mock(assert_all_called=False) as router:
        install_psn_routes(router)
        yield router


# ============================================================================
# Application Client Fixtures
# ============================================================================

@pytest.fixture
def client(psn_api) -> Iterator[TestClient]:
    """FastAPI test client; the lifespan runs so app.state is populated"""
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {VALID_NPSSO}"}


@pytest.fixture
def valid_npsso() -> str:
    return VALID_NPSSO


# ============================================================================
# Test Markers and Configuration
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Add markers based on file location"""
    for item in items:
        path = str(item.fspath)
        if "security" in path:
            item.add_marker(pytest.mark.security)
        if "critical" in path:
            item.add_marker(pytest.mark.critical)
        if "integration" in path:
            item.add_marker(pytest.mark.integration)
