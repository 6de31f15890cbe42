"""ASGI entry point: `uvicorn salonbot.api.app:app`."""

from .factory import create_app

app = create_app()
