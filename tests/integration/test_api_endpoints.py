"""
Integration tests for the HTTP endpoints

The full app runs against respx-mocked upstream services.
"""

from urllib.parse import parse_qs

import httpx
import pytest

from tests.utils.factories import (
    ACCOUNT_ID,
    OTHER_NPSSO,
    TITLE_ID,
    VALID_NPSSO,
    AuthResponseFactory,
    TrophyDataFactory,
)

pytestmark = pytest.mark.api


class TestHealthEndpoints:
    """Health checks need no session"""

    def test_basic_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_detailed_health(self, client, auth_headers):
        """Test cache statistics are reported"""
        client.get("/api/trophies/me", headers=auth_headers)

        body = client.get("/api/health").json()

        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0"
        assert body["services"]["sessions"] == {"live_sessions": 1, "stale_sessions": 0}
        assert body["services"]["translation"]["enabled"] is True
        assert body["services"]["rate_limiting"]["storage"]["type"] == "memory"


class TestAuthEndpoints:
    """Login, status and logout"""

    @pytest.mark.parametrize("prefix", ["/api", ""])
    def test_login_success_on_both_mounts(self, client, prefix):
        response = client.post(f"{prefix}/auth/login", json={"npsso": VALID_NPSSO})

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_login_wrong_length_is_400_without_network(self, client, psn_api):
        """Test a 63 character secret is rejected before any upstream call"""
        response = client.post("/api/auth/login", json={"npsso": "a" * 63})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SECRET"
        assert psn_api["authorize"].call_count == 0
        assert psn_api["token"].call_count == 0

    def test_login_missing_body_field_is_400(self, client):
        response = client.post("/api/auth/login", json={})

        assert response.status_code == 400

    def test_login_exchange_failure_is_401(self, client, psn_api):
        psn_api["authorize"].mock(return_value=AuthResponseFactory.authorize_redirect(code=None))

        response = client.post("/api/auth/login", json={"npsso": VALID_NPSSO})

        assert response.status_code == 401
        assert "error" in response.json()

    def test_status_without_secret(self, client, psn_api):
        response = client.get("/api/auth/status")

        assert response.json() == {"authenticated": False, "hasNpsso": False}
        assert psn_api["authorize"].call_count == 0

    def test_status_uses_configured_default_secret(self, client, test_settings):
        """Test the NPSSO setting applies when no header is sent"""
        test_settings.NPSSO = VALID_NPSSO

        response = client.get("/auth/status")

        assert response.json() == {"authenticated": True, "hasNpsso": True}

    def test_header_wins_over_default_secret(self, client, psn_api, test_settings):
        """Test an explicit bearer is never replaced by the default"""
        test_settings.NPSSO = OTHER_NPSSO

        client.get("/api/auth/status", headers={"Authorization": f"Bearer {VALID_NPSSO}"})

        cookie = psn_api["authorize"].calls.last.request.headers["cookie"]
        assert cookie == f"npsso={VALID_NPSSO}"

    def test_logout_forces_new_exchange(self, client, psn_api, auth_headers):
        client.post("/api/auth/login", json={"npsso": VALID_NPSSO})

        response = client.post("/api/auth/logout", headers=auth_headers)
        client.get("/api/auth/status", headers=auth_headers)

        assert response.json() == {"success": True}
        assert psn_api["token"].call_count == 2

    def test_logout_without_session(self, client):
        assert client.post("/api/auth/logout").json() == {"success": True}


class TestProfileEndpoint:
    """GET /profile/me"""

    def test_profile_with_summary(self, client, auth_headers):
        response = client.get("/api/profile/me", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["onlineId"] == "astro_fan"
        assert body["trophySummary"]["trophyLevel"] == 312

    def test_no_session_is_401(self, client):
        response = client.get("/api/profile/me")

        assert response.status_code == 401
        assert response.json()["error"] == "Session expired"

    def test_token_without_account_id_is_500(self, client, psn_api, auth_headers):
        psn_api["token"].mock(
            return_value=httpx.Response(200, json=AuthResponseFactory.token(account_id=None))
        )

        response = client.get("/api/profile/me", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["code"] == "ACCOUNT_ID_UNRESOLVABLE"

    def test_upstream_error_is_500_with_code(self, client, psn_api, auth_headers):
        psn_api["summary"].mock(
            return_value=httpx.Response(
                403, json={"error": {"code": 2240526, "message": "Not permitted"}}
            )
        )

        response = client.get("/api/profile/me", headers=auth_headers)

        assert response.status_code == 500
        assert response.json() == {
            "error": "PlayStation Network error: Not permitted",
            "code": 2240526,
        }


class TestTitlesEndpoint:
    """GET /trophies/me"""

    def test_title_page(self, client, psn_api, auth_headers):
        response = client.get("/trophies/me", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["totalItemCount"] == 1
        assert body["trophyTitles"][0]["npCommunicationId"] == TITLE_ID
        assert body["trophyTitles"][0]["lastUpdatedDateTime"] == "2024-10-01T18:30:00Z"
        assert psn_api["titles"].calls.last.request.url.params["limit"] == "32"

    def test_account_id_from_token_is_used(self, client, psn_api, auth_headers):
        client.get("/api/trophies/me", headers=auth_headers)

        assert ACCOUNT_ID in str(psn_api["titles"].calls.last.request.url)

    def test_upstream_failure_is_500(self, client, psn_api, auth_headers):
        psn_api["titles"].mock(side_effect=httpx.ConnectError("down"))

        response = client.get("/api/trophies/me", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["code"] == "UPSTREAM_FETCH_ERROR"


class TestTitleTrophiesEndpoint:
    """GET /titles/{id}/trophies"""

    def test_merged_and_translated(self, client, auth_headers):
        response = client.get(f"/api/titles/{TITLE_ID}/trophies", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["titleName"] == "ES:Astro Bot"
        assert body["platform"] == "PS5"
        assert body["trophyGroups"] == {"default": "ES:Base Game", "001": "ES:Expansion"}

        trophies = {t["trophyId"]: t for t in body["trophies"]}
        assert sorted(trophies) == [0, 1, 2]
        assert trophies[1]["earned"] is True
        assert trophies[1]["earnedDateTime"] == "2024-09-07T20:11:32Z"
        assert trophies[1]["trophyNameTranslated"] == "ES:First Steps"
        assert trophies[1]["trophyDetailTranslated"] == "ES:Clear the first galaxy"
        assert trophies[2]["earned"] is False
        assert trophies[2]["trophyEarnedRate"] == "0.0"

    def test_translations_requested_once(self, client, psn_api, auth_headers):
        """Test a second view is served from the translation cache"""
        client.get(f"/api/titles/{TITLE_ID}/trophies", headers=auth_headers)
        client.get(f"/api/titles/{TITLE_ID}/trophies", headers=auth_headers)

        assert psn_api["translate"].call_count == 1

    def test_translation_failure_serves_originals(self, client, psn_api, auth_headers):
        psn_api["translate"].mock(return_value=httpx.Response(503))

        response = client.get(f"/api/titles/{TITLE_ID}/trophies", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["titleName"] == "Astro Bot"
        assert body["trophyGroups"] == {"default": "Base Game", "001": "Expansion"}
        assert all(t["trophyNameTranslated"] is None for t in body["trophies"])

    def test_placeholder_title_name_not_translated(self, client, psn_api, auth_headers):
        """Test a title missing from the list keeps the bare placeholder"""
        psn_api["titles"].mock(
            return_value=httpx.Response(200, json=TrophyDataFactory.title_list([]))
        )

        response = client.get(f"/api/titles/{TITLE_ID}/trophies", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["titleName"] == "Game"
        sent = parse_qs(psn_api["translate"].calls.last.request.content.decode())
        assert "Game" not in sent["q"]

    def test_sort_by_rarity(self, client, auth_headers):
        response = client.get(
            f"/api/titles/{TITLE_ID}/trophies", params={"sort": "rarity"}, headers=auth_headers
        )

        assert [t["trophyId"] for t in response.json()["trophies"]] == [2, 0, 1]

    def test_filter_by_group(self, client, auth_headers):
        response = client.get(
            f"/api/titles/{TITLE_ID}/trophies", params={"group": "001"}, headers=auth_headers
        )

        assert [t["trophyId"] for t in response.json()["trophies"]] == [2]

    def test_both_variants_failing_is_500(self, client, psn_api, auth_headers):
        psn_api["definitions"].mock(
            return_value=httpx.Response(404, json={"error": {"code": 2240525, "message": "Resource not found"}})
        )

        response = client.get(f"/api/titles/{TITLE_ID}/trophies", headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["code"] == 2240525
