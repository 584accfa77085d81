# realtime/presence.py
import threading
from typing import Dict, Optional


class PresenceDirectory:
    """
    In-memory map of user id -> the channel name of that user's current
    WebSocket connection. At most one entry per user: a reconnect overwrites
    the previous entry, and removal only happens for the connection that
    still owns the entry, so a late disconnect can't clobber a newer session.

    Each method is a single locked dict operation, so the directory stays
    consistent whether handlers run on one event loop or several threads.
    """

    def __init__(self):
        self._by_user: Dict[int, str] = {}
        self._by_channel: Dict[str, int] = {}
        self._lock = threading.Lock()

    def record(self, user_id: int, channel_name: str) -> None:
        with self._lock:
            previous = self._by_user.get(user_id)
            if previous is not None:
                self._by_channel.pop(previous, None)
            self._by_user[user_id] = channel_name
            self._by_channel[channel_name] = user_id

    def lookup(self, user_id: int) -> Optional[str]:
        with self._lock:
            return self._by_user.get(user_id)

    def remove(self, user_id: int, channel_name: str) -> bool:
        with self._lock:
            if self._by_user.get(user_id) != channel_name:
                return False
            del self._by_user[user_id]
            self._by_channel.pop(channel_name, None)
            return True

    def is_live(self, channel_name: str) -> bool:
        with self._lock:
            return channel_name in self._by_channel

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_user)

    def __contains__(self, user_id) -> bool:
        with self._lock:
            return user_id in self._by_user
