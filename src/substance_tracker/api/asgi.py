"""ASGI entrypoint for the substance tracker API."""

from substance_tracker.api.app import create_app
from substance_tracker.containers import build_container

app = create_app(build_container())
