# fieldsales/asgi.py
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fieldsales.settings")
django_asgi_app = get_asgi_application()

# imported after setup: these touch models and settings
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from realtime.hub import RealtimeHub  # noqa: E402
from realtime.routing import websocket_urlpatterns  # noqa: E402
from realtime.ws_auth import HandshakeTokenMiddleware  # noqa: E402

hub = RealtimeHub()

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": HandshakeTokenMiddleware(   # token from ?token= or Authorization header
        URLRouter(websocket_urlpatterns(hub))
    ),
})
