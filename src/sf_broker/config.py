"""Building credential bundles and broker settings from the environment
or from a tool-server configuration object."""

from datetime import timedelta
import os
import typing

from .auth.login_soap import DEFAULT_API_VERSION
from .auth.types import DEFAULT_LOGIN_URL, CredentialBundle

# bundle field -> (environment variable, configuration key)
FIELD_SOURCES: dict[str, tuple[str, str]] = {
    "client_id": ("SALESFORCE_CLIENT_ID", "clientId"),
    "client_secret": ("SALESFORCE_CLIENT_SECRET", "clientSecret"),
    "refresh_token": ("SALESFORCE_REFRESH_TOKEN", "refreshToken"),
    "username": ("SALESFORCE_USERNAME", "username"),
    "password": ("SALESFORCE_PASSWORD", "password"),
    "security_token": ("SALESFORCE_SECURITY_TOKEN", "securityToken"),
    "access_token": ("SALESFORCE_ACCESS_TOKEN", "accessToken"),
    "instance_url": ("SALESFORCE_INSTANCE_URL", "instanceUrl"),
    "login_url": ("SALESFORCE_LOGIN_URL", "loginUrl"),
}


def _bundle(values: dict[str, str | None]) -> CredentialBundle:
    values = {name: value or None for name, value in values.items()}
    values["login_url"] = values.get("login_url") or DEFAULT_LOGIN_URL
    return CredentialBundle(**values)


def bundle_from_env(environ: typing.Mapping[str, str] | None = None) -> CredentialBundle:
    if environ is None:
        environ = os.environ
    return _bundle(
        {field: environ.get(env_var) for field, (env_var, _) in FIELD_SOURCES.items()}
    )


def bundle_from_mapping(config: typing.Mapping[str, typing.Any]) -> CredentialBundle:
    """Unknown keys are ignored."""
    return _bundle(
        {field: config.get(key) for field, (_, key) in FIELD_SOURCES.items()}
    )


class BrokerSettings(typing.NamedTuple):
    api_version: float = DEFAULT_API_VERSION
    timeout: float = 30.0
    session_lifetime: timedelta | None = None
    token_cache: str | None = None

    @classmethod
    def from_env(cls, environ: typing.Mapping[str, str] | None = None) -> "BrokerSettings":
        if environ is None:
            environ = os.environ
        settings = cls()
        if api_version := environ.get("SALESFORCE_API_VERSION"):
            settings = settings._replace(api_version=float(api_version))
        if timeout := environ.get("SALESFORCE_TIMEOUT"):
            settings = settings._replace(timeout=float(timeout))
        if lifetime := environ.get("SALESFORCE_SESSION_LIFETIME"):
            settings = settings._replace(session_lifetime=timedelta(seconds=float(lifetime)))
        if token_cache := environ.get("SALESFORCE_TOKEN_CACHE"):
            settings = settings._replace(token_cache=token_cache)
        return settings
