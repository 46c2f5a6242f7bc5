"""ASGI entrypoint (module-level app for the server)."""

from .factory import create_app

app = create_app()
