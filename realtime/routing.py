# realtime/routing.py
from django.urls import path

from .consumers import ActivityFeedConsumer


def websocket_urlpatterns(hub):
    return [
        path("ws/activities/", ActivityFeedConsumer.as_asgi(hub=hub)),
    ]
