"""Choose exactly one authentication strategy for a set of credentials.

The rules are evaluated in order and the first match wins. Client
credentials only apply when no username and no refresh token were
supplied, so app credentials paired with a user secret always fall
through to the user-bound grants below.
"""

import typing

from ..exceptions import ResolutionError
from .types import (
    TOKEN_PATH,
    AuthStrategy,
    ClientCredentials,
    CredentialBundle,
    DirectToken,
    PasswordOnly,
    PasswordWithApp,
    RefreshToken,
)

ACCEPTED_COMBINATIONS: tuple[tuple[str, ...], ...] = (
    ("clientId", "clientSecret"),
    ("refreshToken", "clientId", "clientSecret"),
    ("username", "password", "clientId", "clientSecret"),
    ("username", "password"),
    ("instanceUrl", "accessToken"),
)


def _client_credentials(b: CredentialBundle) -> AuthStrategy | None:
    if b.client_id and b.client_secret and not b.username and not b.refresh_token:
        host = (b.instance_url or b.login_url).rstrip("/")
        return ClientCredentials(b.client_id, b.client_secret, host + TOKEN_PATH)
    return None


def _refresh_token(b: CredentialBundle) -> AuthStrategy | None:
    if b.refresh_token and b.client_id and b.client_secret:
        return RefreshToken(
            b.client_id,
            b.client_secret,
            b.refresh_token,
            b.instance_url or b.login_url,
        )
    return None


def _password_with_app(b: CredentialBundle) -> AuthStrategy | None:
    if b.username and b.password and b.client_id and b.client_secret:
        return PasswordWithApp(
            b.client_id,
            b.client_secret,
            b.username,
            b.password,
            b.login_url,
            b.security_token or None,
        )
    return None


def _password_only(b: CredentialBundle) -> AuthStrategy | None:
    if b.username and b.password:
        return PasswordOnly(b.username, b.password, b.login_url, b.security_token or None)
    return None


def _direct_token(b: CredentialBundle) -> AuthStrategy | None:
    if b.instance_url and b.access_token:
        return DirectToken(b.access_token, b.instance_url)
    return None


RULES: tuple[typing.Callable[[CredentialBundle], AuthStrategy | None], ...] = (
    _client_credentials,
    _refresh_token,
    _password_with_app,
    _password_only,
    _direct_token,
)


def select_strategy(bundle: CredentialBundle) -> AuthStrategy | ResolutionError:
    for rule in RULES:
        if (strategy := rule(bundle)) is not None:
            return strategy
    return ResolutionError(ACCEPTED_COMBINATIONS)


__all__ = ["ACCEPTED_COMBINATIONS", "select_strategy"]
