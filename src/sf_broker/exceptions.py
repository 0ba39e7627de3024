"""Exceptions raised by sf-broker.

The REST status mapping follows the classic simple-salesforce hierarchy;
the authentication errors describe the outcome of a login attempt.
"""

from enum import Enum
from json import JSONDecodeError
import typing

import httpx


class SalesforceError(Exception):
    """Base Salesforce API exception"""

    message = "Unknown error occurred for {url}. Response content: {content}"

    def __init__(
        self,
        url: str | httpx.URL = "",
        status: int = 0,
        resource_name: str = "",
        content: typing.Any = None,
    ):
        self.url = str(url)
        self.status = status
        self.resource_name = resource_name
        self.content = content
        super().__init__(str(self))

    def __str__(self):
        return self.message.format(url=self.url, content=self.content)


class SalesforceMoreThanOneRecord(SalesforceError):
    message = "More than one record for {url}. Response content: {content}"


class SalesforceMalformedRequest(SalesforceError):
    message = "Malformed request {url}. Response content: {content}"


class SalesforceExpiredSession(SalesforceError):
    message = "Expired session for {url}. Response content: {content}"


class SalesforceRefusedRequest(SalesforceError):
    message = "Request refused for {url}. Response content: {content}"


class SalesforceResourceNotFound(SalesforceError):
    message = "Resource {name} Not Found. Response content: {content}"

    def __str__(self):
        return self.message.format(name=self.resource_name, content=self.content)


class SalesforceServerError(SalesforceError):
    message = "Server error for {url}. Response content: {content}"


class SalesforceServerUnavailable(SalesforceError):
    message = "Server unavailable for {url}. Response content: {content}"


class SalesforceGeneralError(SalesforceError):
    message = "Error Code {status}. Response content: {content}"

    def __str__(self):
        return self.message.format(status=self.status, content=self.content)


class SalesforceTransportError(SalesforceError):
    """The provider answered with a payload that could not be understood."""

    message = "Unreadable response from {url}: {content}"


_STATUS_EXCEPTIONS: dict[int, type[SalesforceError]] = {
    300: SalesforceMoreThanOneRecord,
    400: SalesforceMalformedRequest,
    401: SalesforceExpiredSession,
    403: SalesforceRefusedRequest,
    404: SalesforceResourceNotFound,
    500: SalesforceServerError,
    503: SalesforceServerUnavailable,
}


def raise_for_status(response: httpx.Response, resource_name: str = ""):
    if response.is_success:
        return
    try:
        content = response.json()
    except (JSONDecodeError, ValueError):
        content = response.text
    exc_type = _STATUS_EXCEPTIONS.get(response.status_code, SalesforceGeneralError)
    raise exc_type(response.url, response.status_code, resource_name, content)


class SalesforceAuthenticationFailed(SalesforceError):
    """
    Thrown to indicate that authentication with Salesforce failed.
    """

    def __init__(self, code: str | None, message: str | None):
        self.code = code
        self.message = message
        Exception.__init__(self, str(self))

    def __str__(self):
        return f"{self.code}: {self.message}"


class ExchangeError(SalesforceAuthenticationFailed):
    """The login handshake was rejected by the provider.

    ``code`` and ``description`` are the provider's own ``error`` and
    ``error_description`` (or SOAP fault) values, unmodified.
    """

    @property
    def description(self) -> str | None:
        return self.message


class ExchangeTimeout(ExchangeError):
    def __init__(self, url: str | httpx.URL):
        super().__init__("timeout", f"Request to {url} timed out")


class ResolutionError(SalesforceError):
    """No authentication strategy matches the supplied credentials."""

    def __init__(self, accepted: typing.Sequence[typing.Sequence[str]]):
        self.accepted = tuple(tuple(combo) for combo in accepted)
        Exception.__init__(self, str(self))

    def __str__(self):
        options = ", ".join(
            "(" + " + ".join(combo) + ")" for combo in self.accepted
        )
        return f"Authentication configuration missing. Provide either: {options}"


class AuthErrorKind(Enum):
    MISSING_CREDENTIALS = "MissingCredentials"
    EXCHANGE_FAILED = "ExchangeFailed"
    TIMEOUT = "Timeout"
    SESSION_EXPIRED = "SessionExpired"


class AuthError(SalesforceError):
    """Failure to acquire a session, as handed to operation handlers.

    Carries which strategy was attempted and the provider's diagnostics,
    never the credential values themselves.
    """

    def __init__(
        self,
        kind: AuthErrorKind,
        detail: str,
        strategy: str | None = None,
        provider_code: str | None = None,
        provider_description: str | None = None,
    ):
        self.kind = kind
        self.detail = detail
        self.strategy = strategy
        self.provider_code = provider_code
        self.provider_description = provider_description
        Exception.__init__(self, str(self))

    def __str__(self):
        prefix = f"[{self.kind.value}]"
        if self.strategy:
            prefix += f" {self.strategy}"
        return f"{prefix}: {self.detail}"

    @classmethod
    def from_exchange_error(cls, error: ExchangeError, strategy: str) -> "AuthError":
        kind = (
            AuthErrorKind.TIMEOUT
            if isinstance(error, ExchangeTimeout)
            else AuthErrorKind.EXCHANGE_FAILED
        )
        return cls(
            kind,
            str(error),
            strategy=strategy,
            provider_code=error.code,
            provider_description=error.description,
        )
