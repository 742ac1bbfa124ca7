"""API route modules."""
from api.routes import backup, exam_configs, imports, questions, results, session, subjects

__all__ = ["backup", "exam_configs", "imports", "questions", "results", "session", "subjects"]
