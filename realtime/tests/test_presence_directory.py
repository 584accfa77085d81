from realtime.presence import PresenceDirectory


def test_record_and_lookup():
    d = PresenceDirectory()
    d.record(1, "chan-a")
    assert d.lookup(1) == "chan-a"
    assert d.lookup(2) is None
    assert 1 in d and len(d) == 1
    assert d.is_live("chan-a")


def test_reconnect_overwrites_previous_connection():
    d = PresenceDirectory()
    d.record(1, "chan-a")
    d.record(1, "chan-b")
    assert d.lookup(1) == "chan-b"
    assert len(d) == 1
    assert not d.is_live("chan-a")
    assert d.is_live("chan-b")


def test_remove_only_for_current_connection():
    d = PresenceDirectory()
    d.record(1, "chan-a")
    d.record(1, "chan-b")
    # late disconnect of the older socket leaves the newer one alone
    assert d.remove(1, "chan-a") is False
    assert d.lookup(1) == "chan-b"

    assert d.remove(1, "chan-b") is True
    assert d.lookup(1) is None
    assert 1 not in d
    assert not d.is_live("chan-b")


def test_remove_unknown_user_is_noop():
    d = PresenceDirectory()
    assert d.remove(42, "nope") is False
    assert len(d) == 0
