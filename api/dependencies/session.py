"""Session manager dependency for FastAPI."""
from functools import lru_cache

from api.config import SESSION_STATE_PATH
from api.services.session_service import SessionManager


@lru_cache(maxsize=1)
def get_session_manager() -> SessionManager:
    """The process-wide session owner, resumed from disk on first use."""
    return SessionManager(SESSION_STATE_PATH)
