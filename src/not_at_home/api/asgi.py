"""ASGI entrypoint for the Not At Home API."""

from not_at_home.api.app import create_app
from not_at_home.containers import build_container

app = create_app(build_container())
