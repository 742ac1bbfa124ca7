"""Service layer: store access, import, exam session, review and backup."""
