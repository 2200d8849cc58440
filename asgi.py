"""
asgi.py -- ASGI entry point for OfficeDesk.

Importing api.main loads settings, so a missing SECRET_KEY fails here,
before the server accepts a connection.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import app

__all__ = ["app"]
