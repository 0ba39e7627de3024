import asyncio
from datetime import datetime, timedelta, timezone
from functools import partial
from types import TracebackType
import typing

import httpx

from ..exceptions import (
    AuthError,
    AuthErrorKind,
    ExchangeError,
    ResolutionError,
)
from ..logger import getLogger
from .cache import SessionCache
from .flow import DEFAULT_TIMEOUT
from .login_oauth import TokenExchangeClient
from .login_soap import DEFAULT_API_VERSION, DirectLoginClient
from .selector import select_strategy
from .token_store import TokenStore
from .types import (
    AuthStrategy,
    CredentialBundle,
    DirectToken,
    PasswordOnly,
    Session,
    TokenResult,
)

if typing.TYPE_CHECKING:
    from ..config import BrokerSettings

LOGGER = getLogger("auth")

Clock = typing.Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionFactory:
    """Turns credential bundles into live, cached sessions.

    ``acquire`` is the only call operation handlers need: it selects the
    strategy, runs its handshake once per bundle no matter how many callers
    are waiting, and returns either the Session or an AuthError describing
    why none could be obtained.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | float = DEFAULT_TIMEOUT,
        api_version: float | int = DEFAULT_API_VERSION,
        session_lifetime: timedelta | None = None,
        token_store: TokenStore | None = None,
        cache: SessionCache | None = None,
        clock: Clock = utcnow,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient()
        if not isinstance(timeout, httpx.Timeout):
            timeout = httpx.Timeout(timeout)
        self.timeout = timeout
        self.api_version = float(api_version)
        self.session_lifetime = session_lifetime
        self.token_store = token_store
        self.cache = cache or SessionCache()
        self.clock = clock
        self.token_exchange = TokenExchangeClient(self.client, timeout)
        self.direct_login = DirectLoginClient(self.client, timeout, api_version)

    @classmethod
    def from_settings(
        cls, settings: "BrokerSettings", client: httpx.AsyncClient | None = None
    ) -> "ConnectionFactory":
        token_store = None
        if settings.token_cache:
            token_store = TokenStore(settings.token_cache, settings.session_lifetime)
        return cls(
            client=client,
            timeout=settings.timeout,
            api_version=settings.api_version,
            session_lifetime=settings.session_lifetime,
            token_store=token_store,
        )

    async def acquire(self, bundle: CredentialBundle) -> Session | AuthError:
        strategy = select_strategy(bundle)
        if isinstance(strategy, ResolutionError):
            LOGGER.warning("No authentication strategy matches the configuration")
            return AuthError(AuthErrorKind.MISSING_CREDENTIALS, str(strategy))

        key = bundle.identity
        try:
            return await self.cache.get_or_create(
                key, partial(self._create_session, key, strategy)
            )
        except AuthError as e:
            return e

    def invalidate(self, bundle: CredentialBundle, session: Session | None = None) -> bool:
        key = bundle.identity
        removed = self.cache.invalidate(key, session)
        if removed and self.token_store is not None:
            self.token_store.delete(key)
        return removed

    async def _create_session(
        self, key: str, strategy: AuthStrategy, previous: Session | None
    ) -> Session:
        if previous is not None:
            strategy = previous.strategy
        elif (stored := await self._load_stored(key, strategy)) is not None:
            LOGGER.info("Reusing stored %s token for %s", strategy.kind, key[:8])
            return self._build_session(stored, strategy)

        LOGGER.info("Authenticating with %s strategy (%s)", strategy.kind, key[:8])
        try:
            token = await self._handshake(strategy)
        except ExchangeError as e:
            error = AuthError.from_exchange_error(e, strategy.kind)
            LOGGER.warning("Authentication failed %s", error)
            raise error from e
        session = self._build_session(token, strategy)
        if self.token_store is not None and not isinstance(strategy, DirectToken):
            await asyncio.to_thread(self.token_store.save, key, token)
        LOGGER.info("Logged into %s via %s", session.instance.host, strategy.kind)
        return session

    async def _load_stored(
        self, key: str, strategy: AuthStrategy
    ) -> TokenResult | None:
        if self.token_store is None or isinstance(strategy, DirectToken):
            return None
        return await asyncio.to_thread(self.token_store.load, key)

    async def _handshake(self, strategy: AuthStrategy) -> TokenResult:
        if isinstance(strategy, DirectToken):
            return TokenResult(strategy.access_token, strategy.instance_url, None, self.clock())
        if isinstance(strategy, PasswordOnly):
            return await self.direct_login.login(strategy)
        return await self.token_exchange.exchange(strategy)

    def _build_session(self, token: TokenResult, strategy: AuthStrategy) -> Session:
        obtained_at = self.clock()
        expires_at = None
        # a supplied access token has no known issue time
        if self.session_lifetime is not None and not isinstance(strategy, DirectToken):
            expires_at = (token.issued_at or obtained_at) + self.session_lifetime
        refresh_token = token.refresh_token or getattr(strategy, "refresh_token", None)
        return Session(
            instance_url=token.instance_url,
            access_token=token.access_token,
            strategy=strategy,
            obtained_at=obtained_at,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )

    async def aclose(self):
        self.cache.clear()
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        await self.aclose()
