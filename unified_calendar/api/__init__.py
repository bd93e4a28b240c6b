"""
Unified Calendar API module.

Provides FastAPI HTTP endpoints over the calendar service.
"""

from unified_calendar.api.main import app, create_app, run_server

__all__ = ["app", "create_app", "run_server"]
