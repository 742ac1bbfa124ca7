"""Domain errors shared by the import pipeline, the store and the exam engine."""


class StudyError(Exception):
    """Base class; carries the HTTP status the API layer renders."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class FormatError(StudyError):
    """Input bytes are unparseable or miss a required section."""

    status_code = 400


class ValidationError(StudyError):
    """Well-formed input that references invalid state."""

    status_code = 422


class NotFoundError(StudyError):
    status_code = 404


class PersistenceError(StudyError):
    status_code = 500
