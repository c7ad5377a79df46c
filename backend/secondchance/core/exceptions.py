"""Domain error taxonomy.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with. Route handlers never build these responses themselves;
``secondchance.main`` registers one handler for the whole hierarchy.
"""

from typing import Any


class SecondChanceError(Exception):
    """Base exception for the Second Chance backend."""

    code = "error"
    status_code = 500

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(SecondChanceError):
    """Raised when step input is malformed. Lists every violated field."""

    code = "validation_error"
    status_code = 422

    def __init__(self, violations: list[dict[str, str]], message: str = "Invalid input"):
        self.violations = violations
        super().__init__(message, details=violations)


class PreconditionFailed(SecondChanceError):
    """Raised when a step is attempted before the step it depends on."""

    code = "precondition_failed"
    status_code = 409


class NotFound(SecondChanceError):
    """Raised when a session or entity id is unknown."""

    code = "not_found"
    status_code = 404


class ExternalServiceError(SecondChanceError):
    """Raised when the scoring or storage collaborator fails."""

    code = "external_service_error"
    status_code = 502

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}", details={"service": service})


class PersistenceError(SecondChanceError):
    """Raised when the storage layer fails. Never retried automatically."""

    code = "persistence_error"
    status_code = 500
