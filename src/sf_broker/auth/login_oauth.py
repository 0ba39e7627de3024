"""OAuth 2.0 token endpoint grants.

Each grant is a login flow: a generator that yields a single form-encoded
POST to ``/services/oauth2/token`` and turns the JSON answer into a
:class:`TokenResult`.
"""

from datetime import datetime, timezone
from json import JSONDecodeError
import warnings

import httpx

from ..exceptions import ExchangeError, SalesforceTransportError
from ..logger import getLogger
from .flow import DEFAULT_TIMEOUT, drive_login
from .types import (
    ClientCredentials,
    LoginFlow,
    PasswordWithApp,
    RefreshToken,
    TokenResult,
)

LOGGER = getLogger("auth.oauth")

OAuthStrategy = ClientCredentials | RefreshToken | PasswordWithApp


def parse_issued_at(issued_at: str | int | None) -> datetime:
    """Salesforce reports ``issued_at`` as milliseconds since the epoch."""
    if issued_at in (None, ""):
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(int(issued_at) / 1000, tz=timezone.utc)


def token_login(token_url: str, token_data: dict[str, str]) -> LoginFlow:
    response = yield httpx.Request(
        "POST",
        token_url,
        data=token_data,
        headers={"Accept": "application/json"},
    )
    if response is None:
        raise SalesforceTransportError(token_url, 0, "oauth2/token", "No response received")

    try:
        json_response = response.json()
    except JSONDecodeError as e:
        raise SalesforceTransportError(
            token_url, response.status_code, "oauth2/token", response.text
        ) from e

    if not isinstance(json_response, dict):
        raise SalesforceTransportError(
            token_url, response.status_code, "oauth2/token", json_response
        )

    if json_response.get("error"):
        error_description = json_response.get("error_description")
        if error_description == "user hasn't approved this consumer":
            warnings.warn(
                "The connected app has not been approved for this user. "
                "Authorize it once in a browser, or pre-authorize the user's "
                "profile on the connected app.",
                UserWarning,
            )
        raise ExchangeError(json_response["error"], error_description)

    if not json_response.get("access_token") or not json_response.get("instance_url"):
        raise SalesforceTransportError(
            token_url, response.status_code, "oauth2/token", "Token response is incomplete"
        )

    try:
        issued_at = parse_issued_at(json_response.get("issued_at"))
    except (TypeError, ValueError, OverflowError) as e:
        raise SalesforceTransportError(
            token_url,
            response.status_code,
            "oauth2/token",
            f"Unexpected issued_at {json_response.get('issued_at')!r}",
        ) from e

    return TokenResult(
        json_response["access_token"],
        json_response["instance_url"],
        json_response.get("refresh_token"),
        issued_at,
    )


def client_credentials_login(strategy: ClientCredentials) -> LoginFlow:
    return token_login(
        strategy.token_url,
        {
            "grant_type": "client_credentials",
            "client_id": strategy.client_id,
            "client_secret": strategy.client_secret,
        },
    )


def refresh_token_login(strategy: RefreshToken) -> LoginFlow:
    return token_login(
        strategy.token_url,
        {
            "grant_type": "refresh_token",
            "client_id": strategy.client_id,
            "client_secret": strategy.client_secret,
            "refresh_token": strategy.refresh_token,
        },
    )


def password_login(strategy: PasswordWithApp) -> LoginFlow:
    return token_login(
        strategy.token_url,
        {
            "grant_type": "password",
            "client_id": strategy.client_id,
            "client_secret": strategy.client_secret,
            "username": strategy.username,
            "password": strategy.password + (strategy.security_token or ""),
        },
    )


def oauth_login(strategy: OAuthStrategy) -> LoginFlow:
    if isinstance(strategy, ClientCredentials):
        return client_credentials_login(strategy)
    if isinstance(strategy, RefreshToken):
        return refresh_token_login(strategy)
    if isinstance(strategy, PasswordWithApp):
        return password_login(strategy)
    raise TypeError(f"{type(strategy).__name__} does not use the token endpoint")


class TokenExchangeClient:
    """Runs OAuth grants against the token endpoint, one request per call."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ):
        self.client = client
        self.timeout = timeout

    async def exchange(self, strategy: OAuthStrategy) -> TokenResult:
        flow = oauth_login(strategy)
        LOGGER.debug("Requesting %s token", strategy.kind)
        return await drive_login(flow, self.client, self.timeout)


__all__ = [
    "TokenExchangeClient",
    "token_login",
    "client_credentials_login",
    "refresh_token_login",
    "password_login",
    "oauth_login",
    "parse_issued_at",
]
