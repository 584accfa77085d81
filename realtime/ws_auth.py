# realtime/ws_auth.py
import urllib.parse
from typing import Optional

from channels.middleware import BaseMiddleware


def extract_token(scope) -> Optional[str]:
    """
    Pull the bearer token out of a WebSocket handshake. The connection-time
    auth payload (``?token=...``) wins over the ``Authorization`` header.
    """
    query = dict(urllib.parse.parse_qsl(scope.get("query_string", b"").decode()))
    token = query.get("token")
    if token:
        return token

    headers = dict(scope.get("headers", []))
    auth = headers.get(b"authorization")
    if not auth:
        return None
    raw = auth.decode().strip()
    if raw.lower().startswith("bearer "):
        raw = raw[len("bearer "):].strip()
    return raw or None


class HandshakeTokenMiddleware(BaseMiddleware):
    """Expose the handshake token as scope["auth_token"]; verification is the consumer's job."""

    async def __call__(self, scope, receive, send):
        scope = dict(scope, auth_token=extract_token(scope))
        return await super().__call__(scope, receive, send)
