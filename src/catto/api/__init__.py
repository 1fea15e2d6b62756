"""
CATTO API Layer

FastAPI interface.
"""

from catto.api.routes import create_app, router

__all__ = ["create_app", "router"]
