# realtime/lifecycle.py
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Set

from django.db import DatabaseError
from django.utils import timezone

from tracker.exceptions import AccountInactive, RecordNotFound
from tracker.status import OfflineSince, Online, Presence, UserStatus

from .auth import AuthenticationFailure, Claims, TokenVerifier
from .events import EventBus
from .messages import PresenceChanged
from .presence import PresenceDirectory
from .replay import ReplayEngine

log = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


@dataclass
class Connection:
    channel_name: str
    user_id: Optional[int] = None
    user_email: Optional[str] = None
    state: ConnectionState = ConnectionState.UNAUTHENTICATED
    # durable presence as it was before this connection marked the user online
    previous_presence: Optional[Presence] = None


class PresenceLifecycle:
    """
    Drives a connection through UNAUTHENTICATED -> AUTHENTICATED -> CLOSED.

    Authentication failures are terminal for the connection. Durable presence
    writes are best-effort: failures are logged and the live broadcast still
    goes out, since the in-memory directory is what says who is online now.
    """

    def __init__(
        self,
        directory: PresenceDirectory,
        bus: EventBus,
        store,
        replay: ReplayEngine,
        verifier: Optional[TokenVerifier] = None,
        replay_delay_ms: int = 2000,
        sleep=asyncio.sleep,
    ):
        self.directory = directory
        self.bus = bus
        self.store = store
        self.replay = replay
        self.verifier = verifier or TokenVerifier()
        self.replay_delay_ms = replay_delay_ms
        self._sleep = sleep
        self._tasks: Set[asyncio.Task] = set()

    # ---- UNAUTHENTICATED -> AUTHENTICATED ----
    async def authenticate(self, connection: Connection, token: Optional[str]) -> Claims:
        if connection.state is not ConnectionState.UNAUTHENTICATED:
            raise AuthenticationFailure(f"connection is {connection.state.value}")
        try:
            claims = self.verifier.verify(token)
            connection.previous_presence = await self._read_presence(claims.user_id)
        except AuthenticationFailure:
            connection.state = ConnectionState.CLOSED
            raise

        connection.user_id = claims.user_id
        connection.user_email = claims.email
        connection.state = ConnectionState.AUTHENTICATED
        self.directory.record(claims.user_id, connection.channel_name)
        return claims

    async def _read_presence(self, user_id: int) -> Presence:
        try:
            return await self.store.find_session_presence(user_id)
        except RecordNotFound:
            raise AuthenticationFailure(f"token subject {user_id} is not a known user")
        except AccountInactive as e:
            raise AuthenticationFailure(f"token subject {user_id} account is {e.account_status}")
        except DatabaseError as e:
            log.warning("could not read presence for user %s: %s", user_id, e)
            return OfflineSince(None)

    async def go_online(self, connection: Connection) -> None:
        user_id = connection.user_id
        try:
            await self.store.update_user_status(user_id, Online())
        except (DatabaseError, RecordNotFound) as e:
            log.warning("presence ONLINE write failed for user %s: %s", user_id, e)

        log.info("user %s (%s) connected", user_id, connection.user_email)
        await self.bus.broadcast(PresenceChanged(user_id, UserStatus.ONLINE, connection.user_email))
        self.schedule_replay(connection)

    # ---- AUTHENTICATED -> CLOSED ----
    async def disconnect(self, connection: Connection) -> None:
        was_authenticated = connection.state is ConnectionState.AUTHENTICATED
        connection.state = ConnectionState.CLOSED
        if not was_authenticated:
            return

        user_id = connection.user_id
        if not self.directory.remove(user_id, connection.channel_name):
            # a newer connection for this user is still live
            log.info("stale disconnect for user %s ignored", user_id)
            return

        try:
            await self.store.update_user_status(user_id, OfflineSince(timezone.now()))
        except (DatabaseError, RecordNotFound) as e:
            log.warning("presence OFFLINE write failed for user %s: %s", user_id, e)

        log.info("user %s disconnected", user_id)
        await self.bus.broadcast(PresenceChanged(user_id, UserStatus.OFFLINE, connection.user_email))

    # ---- replay scheduling ----
    def schedule_replay(self, connection: Connection) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._replay_later(
                connection.user_id,
                connection.previous_presence or OfflineSince(None),
                connection.channel_name,
            )
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _replay_later(self, user_id: int, presence: Presence, channel_name: str) -> None:
        # give the client a moment to finish subscribing
        await self._sleep(self.replay_delay_ms / 1000)
        try:
            await self.replay.run(user_id, presence, channel_name)
        except Exception:
            log.exception("replay for user %s failed", user_id)

    async def drain(self) -> None:
        """Wait for every scheduled replay to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
