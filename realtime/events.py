# realtime/events.py
import logging
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import DEFAULT_CHANNEL_LAYER, get_channel_layer
from django.conf import settings
from django.utils import timezone

from .messages import OutboundEvent
from .presence import PresenceDirectory

log = logging.getLogger(__name__)

# consumer handler that relays a layer message to its socket
RELAY_TYPE = "feed.event"


def feed_group() -> str:
    return getattr(settings, "ACTIVITY_FEED_GROUP", "activity-feed")


class EventBus:
    """
    Fan-out and point-to-point delivery over the Channels layer.

    `broadcast` reaches every authenticated connection (they all sit in the
    feed group); `unicast` reaches a single channel and is a logged no-op
    when the directory no longer knows that channel. Both are best-effort.
    """

    def __init__(self, directory: Optional[PresenceDirectory] = None, alias: str = DEFAULT_CHANNEL_LAYER):
        self.directory = directory
        self.alias = alias

    @property
    def layer(self):
        return get_channel_layer(self.alias)

    @staticmethod
    def _frame(message: OutboundEvent) -> dict:
        return {"type": RELAY_TYPE, **message.envelope(timezone.now().isoformat())}

    async def broadcast(self, message: OutboundEvent) -> None:
        layer = self.layer
        if layer is None:
            log.warning("no channel layer configured; dropping %s", message.event)
            return
        await layer.group_send(feed_group(), self._frame(message))

    async def unicast(self, channel_name: str, message: OutboundEvent) -> bool:
        if self.directory is not None and not self.directory.is_live(channel_name):
            log.debug("unicast %s skipped: %s is gone", message.event, channel_name)
            return False
        layer = self.layer
        if layer is None:
            log.warning("no channel layer configured; dropping %s", message.event)
            return False
        await layer.send(channel_name, self._frame(message))
        return True

    def publish(self, message: OutboundEvent) -> None:
        """Broadcast from synchronous code (DRF views, services)."""
        async_to_sync(self.broadcast)(message)
