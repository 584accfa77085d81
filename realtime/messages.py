"""
Outbound WebSocket events. Each event is a frozen dataclass with a fixed
wire name; fields are checked on construction so a malformed payload fails
where it is built rather than on the client.

On the wire every event becomes ``{"event": <name>, "data": {...}}`` and
`data` always carries the server timestamp added by the EventBus.
"""
from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

from tracker.status import UserStatus

NOTIFICATION_TYPES = ("success", "error", "info", "warning")


def _require_count(name: str, value: int) -> None:
    if not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class OutboundEvent(abc.ABC):
    event: ClassVar[str] = ""

    @abc.abstractmethod
    def payload(self) -> Dict[str, Any]:
        ...

    def envelope(self, timestamp: str) -> Dict[str, Any]:
        return {"event": self.event, "data": {**self.payload(), "timestamp": timestamp}}


@dataclass(frozen=True)
class PresenceChanged(OutboundEvent):
    event: ClassVar[str] = "presence-changed"

    user_id: int
    status: str
    user_email: Optional[str] = None

    def __post_init__(self):
        if self.status not in UserStatus.values:
            raise ValueError(f"unknown presence status {self.status!r}")

    def payload(self):
        return {"userId": self.user_id, "status": str(self.status), "userEmail": self.user_email}


@dataclass(frozen=True)
class LiveActivity(OutboundEvent):
    event: ClassVar[str] = "live-activity"

    record: Dict[str, Any]

    def __post_init__(self):
        if "id" not in self.record:
            raise ValueError("live activity record needs an id")

    def payload(self):
        return {**self.record, "type": "created"}


@dataclass(frozen=True)
class Notification(OutboundEvent):
    event: ClassVar[str] = "notification"

    message: str
    data: Any = None
    type: str = "info"

    def __post_init__(self):
        if self.type not in NOTIFICATION_TYPES:
            raise ValueError(f"unknown notification type {self.type!r}")

    def payload(self):
        return {"message": self.message, "data": self.data, "type": self.type}


@dataclass(frozen=True)
class ReplayStart(OutboundEvent):
    event: ClassVar[str] = "replay-start"

    total_count: int
    interval_ms: int

    def __post_init__(self):
        _require_count("totalCount", self.total_count)
        _require_count("intervalMs", self.interval_ms)

    def payload(self):
        return {"totalCount": self.total_count, "intervalMs": self.interval_ms}


@dataclass(frozen=True)
class ReplayActivity(OutboundEvent):
    event: ClassVar[str] = "replay-activity"

    record: Dict[str, Any]
    replay_index: int
    total_count: int

    def __post_init__(self):
        _require_count("totalCount", self.total_count)
        if not 1 <= self.replay_index <= self.total_count:
            raise ValueError(
                f"replayIndex {self.replay_index} outside 1..{self.total_count}"
            )

    def payload(self):
        return {**self.record, "replayIndex": self.replay_index, "totalCount": self.total_count}


@dataclass(frozen=True)
class ReplayEnd(OutboundEvent):
    event: ClassVar[str] = "replay-end"

    total_count: int
    total_duration_ms: int

    def __post_init__(self):
        _require_count("totalCount", self.total_count)
        _require_count("totalDurationMs", self.total_duration_ms)

    def payload(self):
        return {"totalCount": self.total_count, "totalDurationMs": self.total_duration_ms}


@dataclass(frozen=True)
class OnlineUsers(OutboundEvent):
    event: ClassVar[str] = "online-users"

    users: List[Dict[str, Any]] = field(default_factory=list)

    def payload(self):
        return {"users": list(self.users), "count": len(self.users)}


@dataclass(frozen=True)
class Pong(OutboundEvent):
    event: ClassVar[str] = "pong"

    user_id: Optional[int] = None

    def payload(self):
        return {"userId": self.user_id}
