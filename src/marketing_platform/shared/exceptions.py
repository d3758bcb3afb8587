"""
Custom exceptions for the application.
"""


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(AppError):
    """Entity looked up by a caller-supplied id does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        super().__init__(f"{entity} not found: {identifier}", "NOT_FOUND")
        self.entity = entity
        self.identifier = identifier


class ValidationError(AppError):
    """Validation error."""

    def __init__(self, message: str) -> None:
        super().__init__(message, "VALIDATION_ERROR")


class JobQueueFullError(AppError):
    """The background job queue cannot accept more work."""

    def __init__(self, job_name: str) -> None:
        super().__init__(f"Job queue full, rejected job: {job_name}", "JOB_QUEUE_FULL")
        self.job_name = job_name
