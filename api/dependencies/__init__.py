"""FastAPI dependencies."""
from api.dependencies.session import get_session_manager

__all__ = ["get_session_manager"]
