# realtime/consumers.py
import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.db import DatabaseError
from django.utils import timezone

from .auth import AuthenticationFailure
from .events import feed_group
from .lifecycle import Connection
from .messages import Notification, OnlineUsers, Pong
from .ws_auth import extract_token

log = logging.getLogger(__name__)


class ActivityFeedConsumer(AsyncJsonWebsocketConsumer):
    def __init__(self, *args, hub=None, **kwargs):
        # as_asgi(hub=...) hands the hub to every instance
        super().__init__(*args, **kwargs)
        self.hub = hub

    async def connect(self):
        self.connection = Connection(channel_name=self.channel_name)
        token = self.scope.get("auth_token") or extract_token(self.scope)

        try:
            await self.hub.lifecycle.authenticate(self.connection, token)
        except AuthenticationFailure as e:
            log.warning("websocket authentication failed: %s", e)
            await self.close()
            return

        await self.channel_layer.group_add(feed_group(), self.channel_name)
        await self.accept()
        await self.hub.lifecycle.go_online(self.connection)

    async def disconnect(self, code):
        connection = getattr(self, "connection", None)
        if connection is None:
            return
        try:
            await self.hub.lifecycle.disconnect(connection)
        finally:
            await self.channel_layer.group_discard(feed_group(), self.channel_name)

    async def receive_json(self, content, **kwargs):
        event = content.get("event") if isinstance(content, dict) else None

        # --- online users ---
        if event == "get-online-users":
            try:
                users = await self.hub.store.list_online_users()
            except DatabaseError as e:
                log.error("fetching online users failed: %s", e)
                await self._send_event(Notification("Failed to fetch online users", type="error"))
                return
            await self._send_event(OnlineUsers(users))
            return

        # --- heartbeat ---
        if event == "ping":
            await self._send_event(Pong(self.connection.user_id))
            return

        log.debug("ignoring unknown event %r from %s", event, self.channel_name)

    async def _send_event(self, message):
        await self.send_json(message.envelope(timezone.now().isoformat()))

    # --- layer messages -> WS ---
    async def feed_event(self, event):
        await self.send_json({"event": event["event"], "data": event["data"]})
