from datetime import datetime, timedelta, timezone
import itertools
import json

import httpx

from sf_broker.auth.factory import ConnectionFactory

INSTANCE_URL = "https://org.my.salesforce.com"


def token_response(
    access_token: str = "T",
    instance_url: str = INSTANCE_URL,
    **extra,
) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "access_token": access_token,
            "instance_url": instance_url,
            "token_type": "Bearer",
            "issued_at": "1700000000000",
            **extra,
        },
    )


def soap_login_response(
    session_id: str = "SOAP_SESSION",
    server_url: str = INSTANCE_URL + "/services/Soap/u/63.0/00D000000000001",
) -> httpx.Response:
    return httpx.Response(
        200,
        text=f"""<?xml version="1.0" encoding="UTF-8"?>
<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/"
    xmlns="urn:partner.soap.sforce.com">
  <soapenv:Body>
    <loginResponse>
      <result>
        <serverUrl>{server_url}</serverUrl>
        <sessionId>{session_id}</sessionId>
      </result>
    </loginResponse>
  </soapenv:Body>
</soapenv:Envelope>""",
    )


def form_data(request: httpx.Request) -> dict[str, str]:
    return dict(httpx.QueryParams(request.content.decode()))


def json_body(request: httpx.Request):
    return json.loads(request.content)


class Clock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None):
        self._ticks = itertools.count()
        self.start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.start + timedelta(seconds=next(self._ticks))


def make_factory(handler, **kwargs) -> ConnectionFactory:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("clock", Clock())
    return ConnectionFactory(client=client, **kwargs)
