"""ASGI entrypoint for the feedback collector API."""

from feedback_collector.api.app import create_app
from feedback_collector.containers import build_container

app = create_app(build_container())
