from json import JSONDecodeError
from urllib.parse import quote
import typing

from httpx import AsyncClient, Response, Timeout
from typing_extensions import override

from .auth.flow import DEFAULT_TIMEOUT
from .auth.httpx import SalesforceAuth
from .auth.login_soap import DEFAULT_API_VERSION
from .auth.types import Session
from .exceptions import SalesforceTransportError, raise_for_status
from .logger import getLogger
from .metrics import ApiUsage, parse_api_usage

LOGGER = getLogger("client")


class AsyncSalesforceClient(AsyncClient):
    """REST data API client.

    The client is not bound to an org: every call takes the Session to act
    as, so concurrent operations may use different (or refreshed) sessions
    over the same connection pool.
    """

    api_version: float
    api_usage: ApiUsage | None = None

    def __init__(
        self,
        api_version: float | int = DEFAULT_API_VERSION,
        timeout: Timeout | float = DEFAULT_TIMEOUT,
        **kwargs,
    ):
        kwargs.setdefault("headers", {"Accept": "application/json"})
        super().__init__(timeout=timeout, **kwargs)
        self.api_version = float(api_version)

    @property
    def data_path(self) -> str:
        return f"/services/data/v{self.api_version:.1f}"

    def sobject_url(self, session: Session, sobject: str, *parts: str) -> str:
        url = f"{session.instance_url.rstrip('/')}{self.data_path}/sobjects/{quote(sobject)}"
        if parts:
            url += "/" + "/".join(parts)
        return url

    @staticmethod
    def decode(response: Response, resource_name: str = "") -> typing.Any:
        try:
            return response.json()
        except JSONDecodeError as e:
            raise SalesforceTransportError(
                response.request.url, response.status_code, resource_name, response.text
            ) from e

    @override
    async def request(
        self, method: str, url, resource_name: str = "", **kwargs
    ) -> Response:
        response = await super().request(method, url, **kwargs)

        raise_for_status(response, resource_name)

        if sforce_limit_info := response.headers.get("Sforce-Limit-Info"):
            self.api_usage = parse_api_usage(sforce_limit_info)
        return response

    async def query(self, session: Session, soql: str) -> dict:
        response = await self.request(
            "GET",
            f"{session.instance_url.rstrip('/')}{self.data_path}/query",
            resource_name="query",
            params={"q": soql},
            auth=SalesforceAuth(session),
        )
        return self.decode(response, "query")

    async def describe(self, session: Session, sobject: str) -> dict:
        response = await self.request(
            "GET",
            self.sobject_url(session, sobject, "describe"),
            resource_name=sobject,
            auth=SalesforceAuth(session),
        )
        return self.decode(response, sobject)

    async def create(self, session: Session, sobject: str, record: dict) -> dict:
        response = await self.request(
            "POST",
            self.sobject_url(session, sobject),
            resource_name=sobject,
            json=record,
            auth=SalesforceAuth(session),
        )
        LOGGER.debug("Created %s record on %s", sobject, session.instance.host)
        return self.decode(response, sobject)
