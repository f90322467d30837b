"""Engine and request-scoped sessions, built per application from Settings."""

from auth_service.db.session import Database, get_db

__all__ = ["Database", "get_db"]
