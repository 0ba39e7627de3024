"""Query, describe and insert operations run on behalf of a tool layer.

Every operation returns a :class:`ToolResult`; failures, authentication
failures included, become error results rather than exceptions.
"""

import json
import typing

import httpx

from .auth.factory import ConnectionFactory
from .auth.types import CredentialBundle, Session
from .client import AsyncSalesforceClient
from .exceptions import (
    AuthError,
    AuthErrorKind,
    SalesforceError,
    SalesforceExpiredSession,
    SalesforceMalformedRequest,
)
from .logger import getLogger

LOGGER = getLogger("operations")

_T = typing.TypeVar("_T")


class ToolResult(typing.NamedTuple):
    text: str
    is_error: bool = False

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(text, True)

    def to_payload(self) -> dict[str, typing.Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


def _format_errors(errors: typing.Any) -> str:
    if isinstance(errors, list):
        return ", ".join(
            error if isinstance(error, str) else json.dumps(error) for error in errors
        )
    return json.dumps(errors)


class OperationExecutor:
    """Runs data operations for one credential bundle.

    A request rejected with an expired or invalid session invalidates the
    Session it used and is retried exactly once on a newly acquired one.
    """

    def __init__(
        self,
        factory: ConnectionFactory,
        bundle: CredentialBundle,
        client: AsyncSalesforceClient | None = None,
        api_version: float | int | None = None,
    ):
        self.factory = factory
        self.bundle = bundle
        if api_version is None:
            api_version = factory.api_version
        self.client = client or AsyncSalesforceClient(
            api_version=api_version, timeout=factory.timeout
        )

    async def _with_session(
        self, operation: typing.Callable[[Session], typing.Awaitable[_T]]
    ) -> _T:
        session = await self.factory.acquire(self.bundle)
        if isinstance(session, AuthError):
            raise session
        try:
            return await operation(session)
        except SalesforceExpiredSession:
            LOGGER.info("Session for %s expired, acquiring a new one", session.instance.host)
            self.factory.invalidate(self.bundle, session)
            session = await self.factory.acquire(self.bundle)
            if isinstance(session, AuthError):
                raise session
            try:
                return await operation(session)
            except SalesforceExpiredSession as e:
                raise AuthError(
                    AuthErrorKind.SESSION_EXPIRED,
                    f"Session rejected again after re-authentication: {e}",
                    strategy=session.strategy.kind,
                ) from e

    async def query(self, soql: str) -> ToolResult:
        try:
            result = await self._with_session(
                lambda session: self.client.query(session, soql)
            )
        except (SalesforceError, httpx.HTTPError) as e:
            return ToolResult.error(f"Error executing query: {e}")
        return ToolResult(
            json.dumps(
                {
                    "totalSize": result.get("totalSize"),
                    "done": result.get("done"),
                    "records": result.get("records", []),
                },
                indent=2,
            )
        )

    async def describe(self, sobject: str) -> ToolResult:
        try:
            metadata = await self._with_session(
                lambda session: self.client.describe(session, sobject)
            )
        except (SalesforceError, httpx.HTTPError) as e:
            return ToolResult.error(f"Error describing object: {e}")
        return ToolResult(
            json.dumps(
                {
                    "name": metadata.get("name"),
                    "label": metadata.get("label"),
                    "fields": [
                        {
                            "name": field.get("name"),
                            "label": field.get("label"),
                            "type": field.get("type"),
                            "length": field.get("length"),
                            "required": not field.get("nillable", True),
                            "updateable": field.get("updateable"),
                        }
                        for field in metadata.get("fields", [])
                    ],
                },
                indent=2,
            )
        )

    async def insert(self, sobject: str, record: dict[str, typing.Any]) -> ToolResult:
        if not sobject:
            return ToolResult.error("Error: sobjectType parameter is required")
        if not record:
            return ToolResult.error(
                "Error: recordData parameter is required and must contain at least one field"
            )

        try:
            result = await self._with_session(
                lambda session: self.client.create(session, sobject, record)
            )
        except SalesforceMalformedRequest as e:
            return ToolResult.error(
                f"Failed to insert {sobject} record: {_format_errors(e.content)}"
            )
        except (SalesforceError, httpx.HTTPError) as e:
            return ToolResult.error(f"Error inserting record: {e}")

        if isinstance(result, list):
            result = result[0] if result else {}
        if result.get("success") is False:
            return ToolResult.error(
                f"Failed to insert {sobject} record: {_format_errors(result.get('errors'))}"
            )
        if not result.get("id"):
            return ToolResult.error(
                f"Failed to insert {sobject} record: No record ID returned"
            )
        return ToolResult(
            f"Successfully inserted {sobject} record.\n\n"
            f"Record ID: {result['id']}\n\n"
            f"Inserted data:\n{json.dumps(record, indent=2)}"
        )

    async def aclose(self):
        await self.client.aclose()
