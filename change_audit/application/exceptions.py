"""Application-layer exceptions. Do not reuse domain exceptions."""


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class StampingError(ApplicationError):
    """Raised in strict mode when an audit or tenant stamp field cannot be set."""


class AuditPersistenceError(ApplicationError):
    """Raised when finalized audit records cannot be handed to the sink. The data commit stands."""
