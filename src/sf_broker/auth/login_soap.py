"""SOAP partner API login for username/password credentials without a
connected app.

Based on simple-salesforce 1.12.5
"""

from html import escape

import httpx
import lxml.etree as etree

from ..exceptions import ExchangeError, SalesforceTransportError
from .flow import DEFAULT_TIMEOUT, drive_login
from .login_oauth import parse_issued_at
from .types import LoginFlow, PasswordOnly, TokenResult

DEFAULT_CLIENT_ID = "sf-broker"
DEFAULT_API_VERSION = 63.0


def get_xml_element_value(xmlString: bytes | str, elementName: str) -> str | None:
    """
    Extracts an element value from an XML string, ignoring namespaces.

    For example, invoking
    get_xml_element_value(
        '<?xml version="1.0" encoding="UTF-8"?><foo>bar</foo>', 'foo')
    should return the value 'bar'.
    """
    if isinstance(xmlString, str):
        xmlString = xmlString.encode("utf-8")

    root = etree.fromstring(xmlString)

    elements = root.findall(f".//{{*}}{elementName}")

    if elements and elements[0].text:
        return elements[0].text
    return None


def instance_url_from_server_url(server_url: str) -> str:
    url = httpx.URL(server_url)
    host = url.host if url.port is None else f"{url.host}:{url.port}"
    return f"{url.scheme}://{host}"


def soap_login(soap_url: str, request_body: str) -> LoginFlow:
    """Process SOAP specific login workflow."""
    response = yield httpx.Request(
        "POST",
        soap_url,
        content=request_body,
        headers={
            "content-type": "text/xml",
            "charset": "UTF-8",
            "SOAPAction": "login",
        },
    )
    if response is None:
        raise SalesforceTransportError(soap_url, 0, "login", "No response received")

    try:
        if not response.is_success:
            except_code = get_xml_element_value(
                response.content, "exceptionCode"
            ) or get_xml_element_value(response.content, "faultcode")
            except_msg = get_xml_element_value(
                response.content, "exceptionMessage"
            ) or get_xml_element_value(response.content, "faultstring")
            raise ExchangeError(except_code, except_msg)

        session_id = get_xml_element_value(response.content, "sessionId")
        server_url = get_xml_element_value(response.content, "serverUrl")
    except etree.XMLSyntaxError as e:
        raise SalesforceTransportError(
            soap_url, response.status_code, "login", response.text
        ) from e

    if server_url is None or session_id is None:
        raise SalesforceTransportError(
            soap_url, response.status_code, "login", "Login response is incomplete"
        )

    return TokenResult(
        session_id, instance_url_from_server_url(server_url), None, parse_issued_at(None)
    )


def login_request_body(
    username: str,
    password: str,
    client_id: str = DEFAULT_CLIENT_ID,
) -> str:
    return f"""<?xml version="1.0" encoding="utf-8" ?>
<env:Envelope
        xmlns:xsd="http://www.w3.org/2001/XMLSchema"
        xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
        xmlns:env="http://schemas.xmlsoap.org/soap/envelope/"
        xmlns:urn="urn:partner.soap.sforce.com">
    <env:Header>
        <urn:CallOptions>
            <urn:client>{escape(client_id)}</urn:client>
            <urn:defaultNamespace>sf</urn:defaultNamespace>
        </urn:CallOptions>
    </env:Header>
    <env:Body>
        <n1:login xmlns:n1="urn:partner.soap.sforce.com">
            <n1:username>{escape(username)}</n1:username>
            <n1:password>{escape(password)}</n1:password>
        </n1:login>
    </env:Body>
</env:Envelope>"""


def password_soap_login(
    strategy: PasswordOnly,
    api_version: float | int = DEFAULT_API_VERSION,
) -> LoginFlow:
    soap_url = f"{strategy.login_url.rstrip('/')}/services/Soap/u/{api_version:.01f}"
    # the security token is appended to the password with no separator
    password = strategy.password + (strategy.security_token or "")
    return soap_login(soap_url, login_request_body(strategy.username, password))


class DirectLoginClient:
    """Username/password login through the SOAP partner API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
        api_version: float | int = DEFAULT_API_VERSION,
    ):
        self.client = client
        self.timeout = timeout
        self.api_version = api_version

    async def login(self, strategy: PasswordOnly) -> TokenResult:
        flow = password_soap_login(strategy, self.api_version)
        return await drive_login(flow, self.client, self.timeout)


__all__ = [
    "DirectLoginClient",
    "get_xml_element_value",
    "instance_url_from_server_url",
    "login_request_body",
    "password_soap_login",
    "soap_login",
]
