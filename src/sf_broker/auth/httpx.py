import typing

import httpx

from .types import Session


class SalesforceAuth(httpx.Auth):
    """Bearer authentication for requests made with one Session.

    Expired sessions are not refreshed here: the 401 surfaces to the caller,
    which invalidates the Session and acquires a new one.
    """

    session: Session

    def __init__(self, session: Session):
        self.session = session

    def auth_flow(
        self, request: httpx.Request
    ) -> typing.Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self.session.access_token}"
        yield request
