from dataclasses import dataclass, fields
from datetime import datetime, timezone
import hashlib
import typing

import httpx

DEFAULT_LOGIN_URL = "https://login.salesforce.com"
TOKEN_PATH = "/services/oauth2/token"

SECRET_FIELDS = frozenset(
    {"client_secret", "refresh_token", "password", "security_token", "access_token"}
)


def _masked_repr(self) -> str:
    values = ", ".join(
        f"{name}={'***' if name in SECRET_FIELDS and value else repr(value)}"
        for name, value in zip(self._fields, self)
    )
    return f"{type(self).__name__}({values})"


@dataclass(frozen=True, repr=False)
class CredentialBundle:
    """Every configuration value that may influence authentication."""

    client_id: str | None = None
    client_secret: str | None = None
    refresh_token: str | None = None
    username: str | None = None
    password: str | None = None
    security_token: str | None = None
    access_token: str | None = None
    instance_url: str | None = None
    login_url: str = DEFAULT_LOGIN_URL

    def __repr__(self):
        values = []
        for f in fields(self):
            value = getattr(self, f.name)
            masked = f.name in SECRET_FIELDS and value
            values.append(f"{f.name}={'***' if masked else repr(value)}")
        return f"CredentialBundle({', '.join(values)})"

    @property
    def identity(self) -> str:
        """Stable key for caching sessions obtained with this bundle."""
        digest = hashlib.sha256()
        for f in fields(self):
            value = getattr(self, f.name) or ""
            digest.update(f.name.encode())
            digest.update(b"\x00")
            digest.update(value.encode())
            digest.update(b"\x00")
        return digest.hexdigest()


class ClientCredentials(typing.NamedTuple):
    client_id: str
    client_secret: str
    token_url: str

    kind = "ClientCredentials"
    __repr__ = _masked_repr


class RefreshToken(typing.NamedTuple):
    client_id: str
    client_secret: str
    refresh_token: str
    instance_url: str

    kind = "RefreshToken"
    __repr__ = _masked_repr

    @property
    def token_url(self) -> str:
        return self.instance_url.rstrip("/") + TOKEN_PATH


class PasswordWithApp(typing.NamedTuple):
    client_id: str
    client_secret: str
    username: str
    password: str
    login_url: str
    security_token: str | None = None

    kind = "PasswordWithApp"
    __repr__ = _masked_repr

    @property
    def token_url(self) -> str:
        return self.login_url.rstrip("/") + TOKEN_PATH


class PasswordOnly(typing.NamedTuple):
    username: str
    password: str
    login_url: str
    security_token: str | None = None

    kind = "PasswordOnly"
    __repr__ = _masked_repr


class DirectToken(typing.NamedTuple):
    access_token: str
    instance_url: str

    kind = "DirectToken"
    __repr__ = _masked_repr


AuthStrategy = ClientCredentials | RefreshToken | PasswordWithApp | PasswordOnly | DirectToken


class TokenResult(typing.NamedTuple):
    access_token: str
    instance_url: str
    refresh_token: str | None = None
    issued_at: datetime | None = None

    __repr__ = _masked_repr


class Session(typing.NamedTuple):
    """A live, authenticated handle on an org."""

    instance_url: str
    access_token: str
    strategy: AuthStrategy
    obtained_at: datetime
    refresh_token: str | None = None
    expires_at: datetime | None = None

    __repr__ = _masked_repr

    @property
    def instance(self) -> httpx.URL:
        return httpx.URL(self.instance_url)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at


# Login flows are generators: they yield the requests to send and
# receive the matching responses, returning the token they produced.
LoginFlow = typing.Generator[httpx.Request, httpx.Response, TokenResult]

__all__ = [
    "DEFAULT_LOGIN_URL",
    "CredentialBundle",
    "ClientCredentials",
    "RefreshToken",
    "PasswordWithApp",
    "PasswordOnly",
    "DirectToken",
    "AuthStrategy",
    "TokenResult",
    "Session",
    "LoginFlow",
]
