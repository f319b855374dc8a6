# app/routers/__init__.py
"""
API routers.
"""

from app.routers.admin_retention import router as admin_retention_router

__all__ = [
    "admin_retention_router",
]
