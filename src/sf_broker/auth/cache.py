import asyncio
import typing

from ..logger import getLogger
from .types import RefreshToken, Session

LOGGER = getLogger("auth.cache")

SessionFactory = typing.Callable[[Session | None], typing.Awaitable[Session]]


def _replay_session(session: Session | None) -> Session | None:
    """Carry a rotated refresh token into the strategy that will be replayed."""
    if (
        session is not None
        and isinstance(session.strategy, RefreshToken)
        and session.refresh_token
        and session.refresh_token != session.strategy.refresh_token
    ):
        return session._replace(
            strategy=session.strategy._replace(refresh_token=session.refresh_token)
        )
    return session


def _retrieve_exception(task: asyncio.Task) -> None:
    # creation may fail after every waiter has been cancelled
    if not task.cancelled():
        task.exception()


class SessionCache:
    """Holds at most one active Session per key.

    Reads of a cached, unexpired Session take no lock. Creation runs in a
    single task per key that every concurrent caller awaits, so one
    handshake serves all of them and they all see the same Session or the
    same exception. Waiters are shielded from that task: a caller that
    gives up does not cancel the creation other callers are waiting for.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._pending: dict[str, asyncio.Task[Session]] = {}
        self._retired: dict[str, Session] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, key: str) -> Session | None:
        session = self._sessions.get(key)
        if session is not None and session.is_expired():
            return None
        return session

    async def get_or_create(self, key: str, factory: SessionFactory) -> Session:
        session = self._sessions.get(key)
        if session is not None and not session.is_expired():
            LOGGER.debug("Session cache hit for %s", key[:8])
            return session

        task = self._pending.get(key)
        if task is None:
            previous = self._retired.get(key) or session
            task = asyncio.ensure_future(self._create(key, factory, _replay_session(previous)))
            task.add_done_callback(_retrieve_exception)
            self._pending[key] = task
        return await asyncio.shield(task)

    async def _create(
        self, key: str, factory: SessionFactory, previous: Session | None
    ) -> Session:
        try:
            session = await factory(previous)
            self._sessions[key] = session
            # a failed creation keeps the retired Session for the next attempt
            self._retired.pop(key, None)
            return session
        finally:
            self._pending.pop(key, None)

    def invalidate(self, key: str, session: Session | None = None) -> bool:
        """Drop the cached Session for ``key``.

        When ``session`` is given, only that exact Session is dropped; a
        Session created since the caller obtained ``session`` is kept.
        """
        current = self._sessions.get(key)
        if current is None:
            return False
        if session is not None and current is not session:
            LOGGER.debug("Ignoring stale invalidation for %s", key[:8])
            return False
        del self._sessions[key]
        self._retired[key] = current
        LOGGER.debug("Invalidated session for %s", key[:8])
        return True

    def clear(self):
        self._sessions.clear()
        self._retired.clear()
