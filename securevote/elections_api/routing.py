from django.urls import re_path
from . import consumers

websocket_urlpatterns = [
    # e.g. ws://your-site.com/ws/tally/3f2b6c9e-.../
    re_path(
        r'ws/tally/(?P<election_id>[0-9a-fA-F-]{36})/$',
        consumers.TallyConsumer.as_asgi()
    ),
]
