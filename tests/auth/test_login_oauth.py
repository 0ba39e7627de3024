from datetime import datetime, timezone
from json import JSONDecodeError
from unittest.mock import Mock

import httpx
import pytest

from sf_broker.auth.flow import drive_login
from sf_broker.auth.login_oauth import (
    TokenExchangeClient,
    client_credentials_login,
    oauth_login,
    parse_issued_at,
    password_login,
    refresh_token_login,
    token_login,
)
from sf_broker.auth.types import (
    ClientCredentials,
    DirectToken,
    PasswordWithApp,
    RefreshToken,
    TokenResult,
)
from sf_broker.exceptions import ExchangeError, ExchangeTimeout, SalesforceTransportError

from helpers import form_data, token_response

TOKEN_URL = "https://login.salesforce.com/services/oauth2/token"


def finish(flow, response):
    with pytest.raises(StopIteration) as result:
        flow.send(response)
    return result.value.value


def test_token_login_success():
    flow = token_login(TOKEN_URL, {"grant_type": "client_credentials"})

    request = next(flow)
    assert isinstance(request, httpx.Request)
    assert request.method == "POST"
    assert request.url == TOKEN_URL
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"

    token = finish(flow, token_response("T", refresh_token="R"))
    assert isinstance(token, TokenResult)
    assert token.access_token == "T"
    assert token.instance_url == "https://org.my.salesforce.com"
    assert token.refresh_token == "R"
    assert token.issued_at == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


def test_token_login_error_is_verbatim():
    flow = token_login(TOKEN_URL, {"grant_type": "password"})
    next(flow)

    response = httpx.Response(
        400,
        json={"error": "invalid_grant", "error_description": "authentication failure"},
    )
    with pytest.raises(ExchangeError) as excinfo:
        flow.send(response)

    assert excinfo.value.code == "invalid_grant"
    assert excinfo.value.description == "authentication failure"


def test_token_login_error_on_success_status():
    flow = token_login(TOKEN_URL, {"grant_type": "client_credentials"})
    next(flow)
    response = httpx.Response(
        200, json={"error": "invalid_client", "error_description": "invalid client credentials"}
    )
    with pytest.raises(ExchangeError, match="invalid_client: invalid client credentials"):
        flow.send(response)


def test_token_login_json_decode_error():
    mock_response = Mock(spec=httpx.Response)
    mock_response.status_code = 502
    mock_response.json.side_effect = JSONDecodeError("Invalid JSON", "", 0)
    mock_response.text = "<html>Bad Gateway</html>"

    flow = token_login(TOKEN_URL, {"grant_type": "client_credentials"})
    next(flow)

    with pytest.raises(SalesforceTransportError, match="Bad Gateway"):
        flow.send(mock_response)


def test_token_login_incomplete_response():
    flow = token_login(TOKEN_URL, {"grant_type": "client_credentials"})
    next(flow)
    with pytest.raises(SalesforceTransportError):
        flow.send(httpx.Response(200, json={"token_type": "Bearer"}))


def test_token_login_unreadable_issued_at():
    flow = token_login(TOKEN_URL, {"grant_type": "client_credentials"})
    next(flow)
    response = httpx.Response(
        200,
        json={
            "access_token": "T",
            "instance_url": "https://org.my.salesforce.com",
            "issued_at": "yesterday",
        },
    )
    with pytest.raises(SalesforceTransportError, match="Unexpected issued_at 'yesterday'"):
        flow.send(response)


def test_token_login_no_response():
    flow = token_login(TOKEN_URL, {"grant_type": "client_credentials"})
    next(flow)
    with pytest.raises(SalesforceTransportError, match="No response received"):
        flow.send(None)


def test_user_hasnt_approved_consumer_warning():
    flow = token_login(TOKEN_URL, {"grant_type": "password"})
    next(flow)
    response = httpx.Response(
        400,
        json={
            "error": "invalid_grant",
            "error_description": "user hasn't approved this consumer",
        },
    )
    with pytest.warns(UserWarning, match="Authorize"), pytest.raises(ExchangeError):
        flow.send(response)


def test_client_credentials_grant_parameters():
    request = next(
        client_credentials_login(ClientCredentials("id1", "sec1", TOKEN_URL))
    )
    assert request.url == TOKEN_URL
    assert form_data(request) == {
        "grant_type": "client_credentials",
        "client_id": "id1",
        "client_secret": "sec1",
    }


def test_refresh_token_grant_parameters():
    strategy = RefreshToken("id", "sec", "rt", "https://org.my.salesforce.com")
    request = next(refresh_token_login(strategy))
    assert request.url == "https://org.my.salesforce.com/services/oauth2/token"
    assert form_data(request) == {
        "grant_type": "refresh_token",
        "client_id": "id",
        "client_secret": "sec",
        "refresh_token": "rt",
    }


def test_password_grant_appends_security_token_without_separator():
    strategy = PasswordWithApp(
        "id", "sec", "user@example.com", "Secret1", "https://test.salesforce.com", "ABC123"
    )
    request = next(password_login(strategy))
    assert request.url == "https://test.salesforce.com/services/oauth2/token"
    data = form_data(request)
    assert data["grant_type"] == "password"
    assert data["username"] == "user@example.com"
    assert data["password"] == "Secret1ABC123"


def test_password_grant_without_security_token():
    strategy = PasswordWithApp("id", "sec", "u", "Secret1", "https://login.salesforce.com")
    assert form_data(next(password_login(strategy)))["password"] == "Secret1"


def test_oauth_login_rejects_non_oauth_strategies():
    with pytest.raises(TypeError):
        oauth_login(DirectToken("at", "https://org.my.salesforce.com"))  # type: ignore[arg-type]


def test_parse_issued_at_defaults_to_now():
    before = datetime.now(timezone.utc)
    assert parse_issued_at(None) >= before


@pytest.mark.asyncio
async def test_exchange_makes_exactly_one_request():
    requests = []

    def handler(request: httpx.Request):
        requests.append(request)
        return token_response("T")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        token = await TokenExchangeClient(client).exchange(
            ClientCredentials("id1", "sec1", TOKEN_URL)
        )

    assert len(requests) == 1
    assert token.access_token == "T"


@pytest.mark.asyncio
async def test_exchange_timeout_is_not_retried():
    calls = []

    def handler(request: httpx.Request):
        calls.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ExchangeTimeout) as excinfo:
            await TokenExchangeClient(client).exchange(
                ClientCredentials("id1", "sec1", TOKEN_URL)
            )

    assert len(calls) == 1
    assert excinfo.value.code == "timeout"


@pytest.mark.asyncio
async def test_drive_login_sets_request_timeout():
    seen = {}

    def handler(request: httpx.Request):
        seen.update(request.extensions["timeout"])
        return token_response()

    flow = client_credentials_login(ClientCredentials("id1", "sec1", TOKEN_URL))
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await drive_login(flow, client, httpx.Timeout(5.0))

    assert seen["read"] == 5.0
