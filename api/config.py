"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Directories
DATA_DIR = Path(os.environ.get("STUDY_DATA_DIR", Path.cwd() / "data"))
DATA_DIR.mkdir(parents=True, exist_ok=True)

SESSION_STATE_PATH = Path(
    os.environ.get("SESSION_STATE_PATH", DATA_DIR / "session.json")
)

# Database
DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{DATA_DIR / 'study.db'}")

# Exams
DEFAULT_EXAM_MINUTES = _parse_int_env("DEFAULT_EXAM_MINUTES", 40)
DEFAULT_EXAM_QUESTIONS = _parse_int_env("DEFAULT_EXAM_QUESTIONS", 40)
RETAKE_MINUTES = _parse_int_env("RETAKE_MINUTES", 45)

# Imports
MAX_IMPORT_BYTES = _parse_int_env("MAX_IMPORT_BYTES", 50 * 1024 * 1024)  # 50 MB

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
