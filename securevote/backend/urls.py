"""
URL configuration for the SecureVote backend.

Everything under 'api/v1/' is handled by 'elections_api.urls'; the
websocket routes live in 'elections_api.routing' and are mounted by asgi.py.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('elections_api.urls')),
]
