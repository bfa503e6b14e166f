"""ASGI entry point: uvicorn orderbot.api.app:app"""

from .factory import create_app

app = create_app()
