"""ASGI entrypoint for the favorites and history API."""

from grocery_health.api.app import create_app
from grocery_health.containers import build_container

app = create_app(build_container())
