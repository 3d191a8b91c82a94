"""
Query Orchestrator - API Layer
==============================

FastAPI REST surface for the query orchestrator.

Components:
-----------
- main.py: Application, CORS, health check
- routes/query.py: Query orchestration endpoints

Version: 1.0.0
"""

__version__ = "1.0.0"
