"""ASGI entrypoint for the label scanner API."""

from label_scanner.api.app import create_app
from label_scanner.containers import build_container

app = create_app(build_container())
