"""
API module for endpoint routes.

Exports:
    get_session: FastAPI dependency returning the process-wide analysis session
"""

from cansat.api.v1.flight import get_session

__all__ = [
    "get_session",
]
