"""Unit tests for the NPSSO exchange client (respx mocks)"""

import httpx
import pytest
import respx

from psn_trophies.core.config import settings
from psn_trophies.core.exceptions import IdentityServiceError, TrophyErrorCodes
from psn_trophies.services.identity_client import AccessCredential, IdentityClient
from tests.utils.factories import VALID_NPSSO, AuthResponseFactory

pytestmark = pytest.mark.unit

AUTHORIZE_URL = f"{settings.PSN_AUTH_BASE_URL}/authorize"
TOKEN_URL = f"{settings.PSN_AUTH_BASE_URL}/token"


@pytest.fixture
async def identity_client():
    async with httpx.AsyncClient() as http_client:
        yield IdentityClient(http_client)


@respx.mock
async def test_exchange_success(identity_client):
    """Both steps succeed and the credential carries the token fields"""
    authorize = respx.get(url__startswith=AUTHORIZE_URL).mock(
        return_value=AuthResponseFactory.authorize_redirect(code="v3.XYZ")
    )
    token = respx.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json=AuthResponseFactory.token())
    )

    credential = await identity_client.exchange(VALID_NPSSO)

    assert isinstance(credential, AccessCredential)
    assert credential.expires_in == 3599
    assert credential.refresh_token is not None

    sent = authorize.calls.last.request
    assert sent.headers["cookie"] == f"npsso={VALID_NPSSO}"
    assert sent.url.params["response_type"] == "code"

    form = token.calls.last.request.content.decode()
    assert "code=v3.XYZ" in form
    assert "grant_type=authorization_code" in form
    assert "token_format=jwt" in form
    assert token.calls.last.request.headers["authorization"] == f"Basic {settings.PSN_CLIENT_AUTH}"


@respx.mock
async def test_missing_code_raises(identity_client):
    """A redirect without a code means the NPSSO was rejected"""
    respx.get(url__startswith=AUTHORIZE_URL).mock(
        return_value=AuthResponseFactory.authorize_redirect(code=None)
    )
    token = respx.post(TOKEN_URL)

    with pytest.raises(IdentityServiceError) as exc_info:
        await identity_client.exchange(VALID_NPSSO)

    assert exc_info.value.code == TrophyErrorCodes.IDENTITY_SERVICE_ERROR
    assert exc_info.value.upstream_status == 302
    assert token.call_count == 0


@respx.mock
async def test_authorize_error_status_raises(identity_client):
    """A 4xx from the authorize step is an identity failure"""
    respx.get(url__startswith=AUTHORIZE_URL).mock(return_value=httpx.Response(403))

    with pytest.raises(IdentityServiceError) as exc_info:
        await identity_client.exchange(VALID_NPSSO)

    assert exc_info.value.upstream_status == 403


@respx.mock
async def test_token_error_status_raises(identity_client):
    """A rejected code exchange surfaces the upstream status"""
    respx.get(url__startswith=AUTHORIZE_URL).mock(
        return_value=AuthResponseFactory.authorize_redirect()
    )
    respx.post(TOKEN_URL).mock(return_value=httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(IdentityServiceError) as exc_info:
        await identity_client.exchange(VALID_NPSSO)

    assert exc_info.value.upstream_status == 400


@respx.mock
async def test_token_without_access_token_raises(identity_client):
    """A 200 without access_token is not a credential"""
    respx.get(url__startswith=AUTHORIZE_URL).mock(
        return_value=AuthResponseFactory.authorize_redirect()
    )
    respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"token_type": "bearer"}))

    with pytest.raises(IdentityServiceError):
        await identity_client.exchange(VALID_NPSSO)


@respx.mock
async def test_transport_error_raises(identity_client):
    """Connection failures are wrapped, with the original as cause"""
    respx.get(url__startswith=AUTHORIZE_URL).mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(IdentityServiceError) as exc_info:
        await identity_client.exchange(VALID_NPSSO)

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@respx.mock
async def test_client_registration_overrides_are_sent():
    """A different client id, auth value and scope reach both requests"""
    authorize = respx.get(url__startswith=AUTHORIZE_URL).mock(
        return_value=AuthResponseFactory.authorize_redirect(code="v3.ABC")
    )
    token = respx.post(TOKEN_URL).mock(
        return_value=httpx.Response(200, json=AuthResponseFactory.token())
    )

    async with httpx.AsyncClient() as http_client:
        client = IdentityClient(
            http_client,
            client_id="custom-client",
            client_auth="Y3VzdG9tOnNlY3JldA==",
            scope="psn:mobile.v2.core",
        )
        await client.exchange(VALID_NPSSO)

    params = authorize.calls.last.request.url.params
    assert params["client_id"] == "custom-client"
    assert params["scope"] == "psn:mobile.v2.core"
    assert token.calls.last.request.headers["authorization"] == "Basic Y3VzdG9tOnNlY3JldA=="


def test_credential_repr_hides_token():
    credential = AccessCredential(access_token="secret-token-value", expires_in=60)

    assert "secret-token-value" not in repr(credential)
