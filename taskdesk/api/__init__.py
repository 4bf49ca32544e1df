"""
TaskDesk HTTP API - REST access to the workspace and admin operations.

Usage:
    uvicorn taskdesk.api.app:create_app --factory --port 8765
"""

from .app import create_app
from .routes import router

__all__ = ["create_app", "router"]
