import httpx

from ..exceptions import ExchangeTimeout
from .types import LoginFlow, TokenResult

DEFAULT_TIMEOUT = httpx.Timeout(30.0)


async def drive_login(
    flow: LoginFlow,
    client: httpx.AsyncClient,
    timeout: httpx.Timeout = DEFAULT_TIMEOUT,
) -> TokenResult:
    """Send each request a login flow yields and feed back the response.

    A timed-out request ends the flow with ExchangeTimeout; it is not retried.
    """
    try:
        request = next(flow)
        while True:
            request.extensions = {**request.extensions, "timeout": timeout.as_dict()}
            try:
                response = await client.send(request)
            except httpx.TimeoutException as e:
                flow.close()
                raise ExchangeTimeout(request.url) from e
            request = flow.send(response)
    except StopIteration as login_result:
        return login_result.value
