"""
FarmHub API module.

Provides FastAPI HTTP endpoints for equipment, bookings, maintenance and supplies.
"""

from farmhub.api.main import app, run_server

__all__ = ["app", "run_server"]
