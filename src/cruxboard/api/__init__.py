"""Cruxboard HTTP API (FastAPI)."""

from cruxboard.api.main import create_app

__all__ = ["create_app"]
