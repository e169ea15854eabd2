"""
Session controller: follows a stream of auth-state-change notifications and
keeps the resolved identity for one client session.

Each notification (and each account switch) takes a new generation token.
Work started under an older token is dropped when it finishes, so only the
latest notification ever reaches subscribers. Notifications also wait a short
debounce delay before resolving, which swallows bursts such as token refreshes.
A resolution that fails settles the session as a guest with an error attached.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Set

from taskboard.core.events import EventChannel, Subscription
from taskboard.modules.identity.resolver import IdentityResolver
from taskboard.modules.identity.schemas import (
    AuthSession, AuthUser, IdentityUpdate, SessionState, UserInfo
)

logger = logging.getLogger(__name__)


class GenerationToken:
    def __init__(self, counter: "GenerationCounter", value: int):
        self._counter = counter
        self.value = value

    @property
    def is_current(self) -> bool:
        return self._counter.is_current(self)

    def __repr__(self) -> str:
        return f"GenerationToken({self.value})"


class GenerationCounter:
    """Issues increasing tokens; only the most recently issued one is current"""

    def __init__(self):
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> GenerationToken:
        self._latest += 1
        return GenerationToken(self, self._latest)

    def is_current(self, token: GenerationToken) -> bool:
        return token.value == self._latest


class SessionController:
    def __init__(self, resolver: IdentityResolver, debounce_seconds: float = 0.05):
        self.resolver = resolver
        self.debounce_seconds = debounce_seconds
        self.updates: EventChannel[IdentityUpdate] = EventChannel("identity")
        self._generations = GenerationCounter()
        self._switches = GenerationCounter()
        self._state = SessionState.UNRESOLVED
        self._user_info: Optional[UserInfo] = None
        self._auth_user: Optional[AuthUser] = None
        self._resolved = asyncio.Event()
        self._tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._provider_subscription: Any = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user_info(self) -> Optional[UserInfo]:
        return self._user_info

    @property
    def auth_user(self) -> Optional[AuthUser]:
        return self._auth_user

    def subscribe(self, callback: Callable[[IdentityUpdate], Any]) -> Subscription:
        return self.updates.subscribe(callback)

    async def wait_resolved(self) -> IdentityUpdate:
        """Wait until the first notification has resolved to a guest or a user"""
        await self._resolved.wait()
        return IdentityUpdate(state=self._state, user_info=self._user_info)

    def bind(self, auth_client: Any) -> None:
        """Follow an identity provider, e.g. ``supabase_client.auth``"""
        self._loop = asyncio.get_running_loop()
        self._provider_subscription = auth_client.on_auth_state_change(self.notify)

    def notify(self, event: Any, session: Any = None) -> None:
        """
        Auth-state-change callback. ``session`` may be an AuthSession, a
        supabase-py Session, or None when signed out. Callable from the
        provider's own thread once bind() has captured the event loop.
        """
        if session is not None and not isinstance(session, AuthSession):
            session = AuthSession.from_provider(session)
        logger.debug(f"Auth state change {event} user={session.user.id if session else None}")

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None and (self._loop is None or running is self._loop):
            self._begin(event, session)
        elif self._loop is not None:
            self._loop.call_soon_threadsafe(self._begin, event, session)
        else:
            raise RuntimeError("notify() called outside an event loop before bind()")

    def _begin(self, event: Any, session: Optional[AuthSession]) -> None:
        token = self._generations.issue()
        self._state = SessionState.RESOLVING
        self._spawn(self._handle_notification(token, event, session))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _handle_notification(self, token, event: Any, session: Optional[AuthSession]) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if not token.is_current:
            logger.debug(f"Dropping superseded auth notification {event} ({token})")
            return

        if session is None:
            self._auth_user = None
            self._publish(SessionState.GUEST, None)
            return

        self._auth_user = session.user
        self._publish(SessionState.RESOLVING, None)
        try:
            info = await self.resolver.resolve(session.user)
        except Exception as e:
            logger.exception(f"Failed to resolve identity for user {session.user.id}")
            if token.is_current:
                self._auth_user = None
                self._publish(SessionState.GUEST, None, error=f"Unable to load your account: {e}")
            return
        if not token.is_current:
            logger.debug(f"Dropping superseded identity for user {session.user.id} ({token})")
            return

        if info is None:
            logger.warning(f"No identity could be materialized for user {session.user.id}")
            self._auth_user = None
            self._publish(SessionState.GUEST, None)
            return

        self._publish(SessionState.USER, info)
        if info.membership is not None:
            # fire-and-forget
            self._spawn(self._touch_membership(info.membership.id))

    async def _touch_membership(self, membership_id: str) -> None:
        try:
            await self.resolver.touch_membership(membership_id)
        except Exception as e:
            logger.warning(f"Unable to update last access for membership {membership_id}: {e}")

    async def switch_account(self, account_id: str) -> Optional[UserInfo]:
        """
        Switch the session to another account the user belongs to. Returns the
        new identity, or None (leaving the session untouched) when there is no
        signed-in user, no such membership, or a newer notification won.
        """
        auth_user = self._auth_user
        if auth_user is None or self._user_info is None:
            return None

        # No generation token until the membership is confirmed; a notification
        # or a newer switch issued during the lookup wins.
        started_at = self._generations.latest
        switch = self._switches.issue()
        membership = await self.resolver.find_membership(auth_user.id, account_id)
        if membership is None:
            return None
        if self._generations.latest != started_at or not switch.is_current:
            logger.debug(f"Dropping account switch to {account_id} superseded during lookup")
            return None

        token = self._generations.issue()
        await self.resolver.touch_membership(membership["id"])
        info = await self.resolver.resolve(auth_user)
        if info is None or not token.is_current:
            logger.debug(f"Dropping superseded account switch to {account_id} ({token})")
            return None

        self._publish(SessionState.USER, info)
        return info

    def _publish(self, state: SessionState, info: Optional[UserInfo], error: Optional[str] = None) -> None:
        self._state = state
        self._user_info = info
        if state in (SessionState.GUEST, SessionState.USER):
            self._resolved.set()
        self.updates.publish(IdentityUpdate(state=state, user_info=info, error=error))

    def close(self) -> None:
        """Stop following the provider and abandon in-flight work"""
        if self._provider_subscription is not None:
            try:
                self._provider_subscription.unsubscribe()
            except Exception as e:
                logger.warning(f"Error unsubscribing from auth provider: {e}")
            self._provider_subscription = None
        self._generations.issue()
        for task in list(self._tasks):
            task.cancel()
