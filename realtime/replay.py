"""
Replay of missed activity for a reconnecting user.

On connect the lifecycle schedules `ReplayEngine.run`. The engine picks a
watermark (the moment the user went offline, or a bounded lookback when the
account has none), fetches every activity created after it in creation
order, and sends them to the user's connection one at a time:

    replay-start {totalCount, intervalMs}
    replay-activity {...record, replayIndex: 1..N, totalCount}   (one per interval)
    replay-end {totalCount, totalDurationMs}                     (one interval after the last)

Nothing is sent when there is nothing to replay. Emission is a flat loop
with an awaited sleep between items, so ordering never depends on timer
scheduling. The target connection is re-checked before every send; once
it is gone (or superseded by a newer connection) the run stops quietly.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from django.db import DatabaseError
from django.utils import timezone

from tracker.status import Presence

from .events import EventBus
from .messages import ReplayActivity, ReplayEnd, ReplayStart
from .presence import PresenceDirectory

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayBatch:
    records: List[Dict[str, Any]]
    interval_ms: int

    @property
    def total_count(self) -> int:
        return len(self.records)

    @property
    def total_duration_ms(self) -> int:
        return self.total_count * self.interval_ms


class ReplayEngine:
    def __init__(
        self,
        directory: PresenceDirectory,
        bus: EventBus,
        store,
        interval_ms: int = 100,
        default_lookback: Optional[timedelta] = timedelta(hours=1),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.directory = directory
        self.bus = bus
        self.store = store
        self.interval_ms = interval_ms
        self.default_lookback = default_lookback
        self._sleep = sleep
        self._clock = clock

    def watermark_for(self, presence: Presence) -> Optional[datetime]:
        if presence.last_seen is not None:
            return presence.last_seen
        if self.default_lookback:
            return self._clock() - self.default_lookback
        return None

    def _is_target(self, user_id: int, channel_name: str) -> bool:
        return self.directory.lookup(user_id) == channel_name

    async def _pause(self) -> None:
        await self._sleep(self.interval_ms / 1000)

    async def run(self, user_id: int, presence: Presence, channel_name: Optional[str] = None) -> int:
        """Replay to `user_id`; returns how many activities were delivered."""
        watermark = self.watermark_for(presence)
        if watermark is None:
            log.info("user %s has no replay watermark; skipping replay", user_id)
            return 0

        target = self.directory.lookup(user_id)
        if target is None:
            log.info("user %s disconnected before replay", user_id)
            return 0
        if channel_name is not None and target != channel_name:
            # a newer connection owns the user now and runs its own replay
            log.info("replay for user %s superseded by %s", user_id, target)
            return 0

        try:
            records = await self.store.find_activity_records_after(watermark)
        except DatabaseError:
            log.exception("could not load missed activities for user %s", user_id)
            return 0

        batch = ReplayBatch(records=list(records), interval_ms=self.interval_ms)
        if not batch.total_count:
            log.info("no missed activities for user %s", user_id)
            return 0

        return await self._emit(user_id, target, batch)

    async def _emit(self, user_id: int, target: str, batch: ReplayBatch) -> int:
        log.info("replaying %d activities to user %s", batch.total_count, user_id)
        await self.bus.unicast(target, ReplayStart(batch.total_count, batch.interval_ms))

        delivered = 0
        for index, record in enumerate(batch.records, start=1):
            if index > 1:
                await self._pause()
            if not self._is_target(user_id, target):
                log.info("user %s left mid-replay after %d/%d", user_id, delivered, batch.total_count)
                return delivered
            await self.bus.unicast(target, ReplayActivity(record, index, batch.total_count))
            log.debug("replayed %d/%d to user %s", index, batch.total_count, user_id)
            delivered += 1

        await self._pause()
        if self._is_target(user_id, target):
            await self.bus.unicast(target, ReplayEnd(batch.total_count, batch.total_duration_ms))
        log.info("replay to user %s finished (%d items)", user_id, delivered)
        return delivered
