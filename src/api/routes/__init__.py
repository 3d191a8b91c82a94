"""
API Routes
==========

Available Routes:
-----------------
- query: Composite query answering, cross-domain queries, domain listing
"""

from src.api.routes.query import router as query_router

__all__ = ["query_router"]
