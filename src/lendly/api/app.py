"""ASGI entrypoint (e.g. `uvicorn lendly.api.app:app`)."""

from .factory import create_app

app = create_app()
