# realtime/hub.py
import asyncio
from datetime import timedelta
from typing import Optional

from channels.layers import DEFAULT_CHANNEL_LAYER
from django.conf import settings

from tracker.store import AsyncActivityStore

from .auth import TokenVerifier
from .events import EventBus
from .lifecycle import PresenceLifecycle
from .presence import PresenceDirectory
from .replay import ReplayEngine


class RealtimeHub:
    """
    Owns one presence directory and the components that share it. The ASGI
    entry point builds one hub per process; tests build as many as they like.
    Unset knobs fall back to the REPLAY_* settings.
    """

    def __init__(
        self,
        store=None,
        verifier: Optional[TokenVerifier] = None,
        interval_ms: Optional[int] = None,
        replay_delay_ms: Optional[int] = None,
        lookback_seconds: Optional[int] = None,
        alias: str = DEFAULT_CHANNEL_LAYER,
        sleep=asyncio.sleep,
    ):
        if interval_ms is None:
            interval_ms = getattr(settings, "REPLAY_INTERVAL_MS", 100)
        if replay_delay_ms is None:
            replay_delay_ms = getattr(settings, "REPLAY_DELAY_MS", 2000)
        if lookback_seconds is None:
            lookback_seconds = getattr(settings, "REPLAY_DEFAULT_LOOKBACK_SECONDS", 3600)

        self.store = store or AsyncActivityStore()
        self.directory = PresenceDirectory()
        self.bus = EventBus(self.directory, alias=alias)
        self.replay = ReplayEngine(
            self.directory,
            self.bus,
            self.store,
            interval_ms=interval_ms,
            default_lookback=timedelta(seconds=lookback_seconds) if lookback_seconds else None,
            sleep=sleep,
        )
        self.lifecycle = PresenceLifecycle(
            self.directory,
            self.bus,
            self.store,
            self.replay,
            verifier=verifier,
            replay_delay_ms=replay_delay_ms,
            sleep=sleep,
        )
