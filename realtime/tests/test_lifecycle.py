from datetime import timedelta

import pytest
from django.utils import timezone

from realtime.auth import AuthenticationFailure
from realtime.lifecycle import Connection, ConnectionState, PresenceLifecycle
from realtime.presence import PresenceDirectory
from realtime.replay import ReplayEngine
from tracker.status import OfflineSince, Online

from .fakes import MemoryStore, RecordingBus, StaticVerifier, instant, record


def build(users=None, records=(), lookback=None):
    directory = PresenceDirectory()
    bus = RecordingBus(directory)
    store = MemoryStore(users=users, records=records)
    replay = ReplayEngine(directory, bus, store, interval_ms=0, default_lookback=lookback, sleep=instant)
    lifecycle = PresenceLifecycle(
        directory, bus, store, replay, verifier=StaticVerifier(), replay_delay_ms=0, sleep=instant
    )
    return lifecycle, directory, bus, store


async def connect(lifecycle, channel, token):
    conn = Connection(channel_name=channel)
    await lifecycle.authenticate(conn, token)
    await lifecycle.go_online(conn)
    await lifecycle.drain()
    return conn


@pytest.mark.asyncio
async def test_authenticate_records_user_and_captures_presence():
    seen = timezone.now() - timedelta(minutes=5)
    lifecycle, directory, bus, store = build(users={7: OfflineSince(seen)})
    conn = Connection(channel_name="chan-7")

    claims = await lifecycle.authenticate(conn, "t7")

    assert claims.user_id == 7
    assert conn.state is ConnectionState.AUTHENTICATED
    assert conn.user_id == 7 and conn.user_email == "u7@example.com"
    assert conn.previous_presence == OfflineSince(seen)
    assert directory.lookup(7) == "chan-7"
    # nothing written or broadcast until the socket is accepted
    assert store.status_writes == [] and bus.broadcasts == []


@pytest.mark.asyncio
async def test_invalid_token_closes_connection():
    lifecycle, directory, bus, store = build(users={7: OfflineSince(None)})
    conn = Connection(channel_name="chan-x")
    with pytest.raises(AuthenticationFailure):
        await lifecycle.authenticate(conn, "garbage")
    assert conn.state is ConnectionState.CLOSED
    assert len(directory) == 0 and bus.broadcasts == []

    with pytest.raises(AuthenticationFailure):
        await lifecycle.authenticate(conn, "t7")


@pytest.mark.asyncio
async def test_unknown_subject_is_an_auth_failure():
    lifecycle, directory, *_ = build(users={})
    conn = Connection(channel_name="chan-9")
    with pytest.raises(AuthenticationFailure):
        await lifecycle.authenticate(conn, "t9")
    assert conn.state is ConnectionState.CLOSED
    assert 9 not in directory


@pytest.mark.asyncio
async def test_closed_account_is_an_auth_failure():
    lifecycle, directory, bus, store = build(users={7: OfflineSince(None), 8: OfflineSince(None)})
    store.closed_accounts = {7: "INACTIVE", 8: "DELETED"}
    for user_id in (7, 8):
        conn = Connection(channel_name=f"chan-{user_id}")
        with pytest.raises(AuthenticationFailure, match=store.closed_accounts[user_id]):
            await lifecycle.authenticate(conn, f"t{user_id}")
        assert conn.state is ConnectionState.CLOSED
    assert len(directory) == 0
    assert store.status_writes == [] and bus.broadcasts == []


@pytest.mark.asyncio
async def test_go_online_writes_and_broadcasts():
    lifecycle, _, bus, store = build(users={7: OfflineSince(None)})
    await connect(lifecycle, "chan-7", "t7")
    await lifecycle.drain()

    assert store.status_writes == [(7, Online())]
    [msg] = bus.broadcasts
    assert msg.event == "presence-changed"
    assert (msg.user_id, msg.status, msg.user_email) == (7, "ONLINE", "u7@example.com")


@pytest.mark.asyncio
async def test_presence_write_failure_still_broadcasts():
    lifecycle, directory, bus, store = build(users={7: OfflineSince(None)})
    store.fail_writes = True
    conn = await connect(lifecycle, "chan-7", "t7")
    await lifecycle.disconnect(conn)

    assert [m.status for m in bus.broadcasts] == ["ONLINE", "OFFLINE"]
    assert 7 not in directory


@pytest.mark.asyncio
async def test_disconnect_writes_offline_with_timestamp():
    lifecycle, directory, bus, store = build(users={7: OfflineSince(None)})
    conn = await connect(lifecycle, "chan-7", "t7")
    before = timezone.now()
    await lifecycle.disconnect(conn)

    user_id, presence = store.status_writes[-1]
    assert user_id == 7
    assert isinstance(presence, OfflineSince) and presence.at >= before
    assert bus.broadcasts[-1].status == "OFFLINE"
    assert conn.state is ConnectionState.CLOSED
    assert directory.lookup(7) is None


@pytest.mark.asyncio
async def test_unauthenticated_disconnect_is_silent():
    lifecycle, _, bus, store = build(users={})
    conn = Connection(channel_name="chan-x")
    await lifecycle.disconnect(conn)
    assert store.status_writes == [] and bus.broadcasts == []
    assert conn.state is ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_stale_disconnect_keeps_newer_session_online():
    lifecycle, directory, bus, store = build(users={7: OfflineSince(None)})
    old = await connect(lifecycle, "chan-old", "t7")
    await connect(lifecycle, "chan-new", "t7")
    writes_before = len(store.status_writes)

    await lifecycle.disconnect(old)

    assert directory.lookup(7) == "chan-new"
    assert len(store.status_writes) == writes_before
    assert [m.status for m in bus.broadcasts] == ["ONLINE", "ONLINE"]


@pytest.mark.asyncio
async def test_reconnect_replays_missed_activity():
    went_offline = timezone.now() - timedelta(minutes=10)
    recs = [
        record(1, went_offline - timedelta(minutes=1)),
        record(2, went_offline + timedelta(minutes=1)),
        record(3, went_offline + timedelta(minutes=2)),
    ]
    lifecycle, _, bus, store = build(users={7: OfflineSince(went_offline)}, records=recs)

    await connect(lifecycle, "chan-7", "t7")
    await lifecycle.drain()

    # the watermark is the pre-connect last_seen, not the cleared ONLINE row
    assert store.queries == [went_offline]
    assert bus.events_to("chan-7") == ["replay-start", "replay-activity", "replay-activity", "replay-end"]
    ids = [m.record["id"] for _, m in bus.unicasts if m.event == "replay-activity"]
    assert ids == [2, 3]


@pytest.mark.asyncio
async def test_first_connect_without_lookback_skips_replay():
    lifecycle, _, bus, store = build(users={7: OfflineSince(None)}, records=[record(1, timezone.now())])
    await connect(lifecycle, "chan-7", "t7")
    await lifecycle.drain()
    assert store.queries == []
    assert bus.unicasts == []


@pytest.mark.asyncio
async def test_replay_failure_is_contained():
    lifecycle, _, bus, store = build(users={7: OfflineSince(timezone.now())})
    store.fail_records = True
    await connect(lifecycle, "chan-7", "t7")
    await lifecycle.drain()
    assert bus.unicasts == []
