import pytest

from fieldsales.settings import env_int
from realtime.hub import RealtimeHub


def test_env_int_reads_and_falls_back(monkeypatch):
    monkeypatch.delenv("REPLAY_DEFAULT_LOOKBACK_SECONDS", raising=False)
    assert env_int("REPLAY_DEFAULT_LOOKBACK_SECONDS", 3600, blank=0) == 3600

    monkeypatch.setenv("REPLAY_DEFAULT_LOOKBACK_SECONDS", " 120 ")
    assert env_int("REPLAY_DEFAULT_LOOKBACK_SECONDS", 3600, blank=0) == 120


@pytest.mark.parametrize("raw", ["", "   "])
def test_blank_lookback_disables_instead_of_crashing(monkeypatch, raw):
    monkeypatch.setenv("REPLAY_DEFAULT_LOOKBACK_SECONDS", raw)
    assert env_int("REPLAY_DEFAULT_LOOKBACK_SECONDS", 3600, blank=0) == 0
    # knobs without a blank meaning keep their default
    assert env_int("REPLAY_DEFAULT_LOOKBACK_SECONDS", 3600) == 3600


def test_env_int_rejects_garbage(monkeypatch):
    monkeypatch.setenv("REPLAY_INTERVAL_MS", "fast")
    with pytest.raises(ValueError):
        env_int("REPLAY_INTERVAL_MS", 100)


def test_zero_lookback_setting_turns_off_first_connect_replay(settings):
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
    settings.REPLAY_DEFAULT_LOOKBACK_SECONDS = 0
    hub = RealtimeHub(interval_ms=0, replay_delay_ms=0)
    assert hub.replay.default_lookback is None
