"""In-process stand-ins for the bus, store and token verifier."""
from datetime import datetime
from typing import Dict, List, Optional

from django.db import DatabaseError

from realtime.auth import AuthenticationFailure, Claims
from tracker.exceptions import AccountInactive, RecordNotFound
from tracker.status import OfflineSince


class RecordingBus:
    def __init__(self, directory=None):
        self.directory = directory
        self.broadcasts = []
        self.unicasts = []

    async def broadcast(self, message):
        self.broadcasts.append(message)

    async def unicast(self, channel_name, message):
        if self.directory is not None and not self.directory.is_live(channel_name):
            return False
        self.unicasts.append((channel_name, message))
        return True

    def events_to(self, channel_name) -> List[str]:
        return [m.event for ch, m in self.unicasts if ch == channel_name]


class MemoryStore:
    """
    Users map id -> presence; records are feed dicts whose "createdAt" is a
    datetime so the watermark comparison is a plain comparison.
    """

    def __init__(self, users: Optional[Dict[int, object]] = None, records=()):
        self.users = dict(users or {})
        self.records = list(records)
        self.status_writes = []
        self.queries: List[datetime] = []
        self.fail_reads = False
        self.fail_writes = False
        self.fail_records = False
        self.closed_accounts: Dict[int, str] = {}

    async def find_session_presence(self, user_id):
        if self.fail_reads:
            raise DatabaseError("presence read failed")
        if user_id not in self.users:
            raise RecordNotFound("User", user_id)
        if user_id in self.closed_accounts:
            raise AccountInactive(user_id, self.closed_accounts[user_id])
        return self.users[user_id]

    async def update_user_status(self, user_id, presence):
        self.status_writes.append((user_id, presence))
        if self.fail_writes:
            raise DatabaseError("presence write failed")
        self.users[user_id] = presence

    async def find_activity_records_after(self, moment):
        self.queries.append(moment)
        if self.fail_records:
            raise DatabaseError("activity query failed")
        found = [r for r in self.records if r["createdAt"] > moment]
        return sorted(found, key=lambda r: (r["createdAt"], r["id"]))

    async def list_online_users(self):
        return [{"id": uid} for uid, p in self.users.items() if not isinstance(p, OfflineSince)]


class StaticVerifier:
    """Token "t<id>" authenticates user <id>; anything else fails."""

    def verify(self, raw):
        if not raw or not raw.startswith("t"):
            raise AuthenticationFailure("bad token")
        user_id = int(raw[1:])
        return Claims(user_id=user_id, email=f"u{user_id}@example.com", role="SALES_REP",
                      issued_at=None, expires_at=None)


async def instant(_seconds):
    return None


def record(record_id, created_at, user_id=1):
    return {"id": record_id, "userId": user_id, "createdAt": created_at}
