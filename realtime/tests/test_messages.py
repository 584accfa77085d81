from dataclasses import dataclass

import pytest

from realtime.messages import (
    LiveActivity, Notification, OnlineUsers, OutboundEvent, Pong, PresenceChanged,
    ReplayActivity, ReplayEnd, ReplayStart,
)

TS = "2024-05-01T12:00:00+00:00"


def test_base_event_cannot_be_built():
    with pytest.raises(TypeError):
        OutboundEvent()

    @dataclass(frozen=True)
    class Unnamed(OutboundEvent):
        pass

    with pytest.raises(TypeError):
        Unnamed()


def test_envelope_carries_event_name_and_timestamp():
    frame = PresenceChanged(7, "ONLINE", "a@example.com").envelope(TS)
    assert frame == {
        "event": "presence-changed",
        "data": {"userId": 7, "status": "ONLINE", "userEmail": "a@example.com", "timestamp": TS},
    }


def test_presence_changed_rejects_unknown_status():
    with pytest.raises(ValueError):
        PresenceChanged(7, "AWAY")


def test_live_activity_marks_record_as_created():
    data = LiveActivity({"id": 3, "userId": 1}).envelope(TS)["data"]
    assert data["type"] == "created"
    assert data["id"] == 3 and data["userId"] == 1


def test_live_activity_requires_id():
    with pytest.raises(ValueError):
        LiveActivity({"userId": 1})


def test_notification_type_is_checked():
    assert Notification("hi").payload()["type"] == "info"
    assert Notification("ok", type="success").payload()["type"] == "success"
    with pytest.raises(ValueError):
        Notification("bad", type="urgent")


def test_replay_activity_index_bounds():
    data = ReplayActivity({"id": 9}, 2, 3).envelope(TS)["data"]
    assert data["replayIndex"] == 2 and data["totalCount"] == 3 and data["id"] == 9
    with pytest.raises(ValueError):
        ReplayActivity({"id": 9}, 0, 3)
    with pytest.raises(ValueError):
        ReplayActivity({"id": 9}, 4, 3)


def test_replay_counts_must_be_non_negative():
    assert ReplayStart(3, 100).payload() == {"totalCount": 3, "intervalMs": 100}
    assert ReplayEnd(3, 300).payload() == {"totalCount": 3, "totalDurationMs": 300}
    with pytest.raises(ValueError):
        ReplayStart(-1, 100)
    with pytest.raises(ValueError):
        ReplayEnd(1, -5)


def test_online_users_counts_entries():
    assert OnlineUsers([{"id": 1}, {"id": 2}]).payload() == {"users": [{"id": 1}, {"id": 2}], "count": 2}
    assert OnlineUsers().payload()["count"] == 0


def test_pong_echoes_user():
    assert Pong(5).envelope(TS) == {"event": "pong", "data": {"userId": 5, "timestamp": TS}}
