"""
FastAPI admin service for the sync engine.

Provides REST API for:
- /admin/data-sources - Source config, manual sync, health checks, logs
- /admin/sync - Keyword-driven syncs
- /admin/credentials, /admin/keywords - Pool and subscription management
- GET /health - Service health check
"""

from src.api.app import create_app

__all__ = ["create_app"]
