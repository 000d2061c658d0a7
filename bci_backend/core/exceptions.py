"""
Custom exceptions for the BCI game backend.
"""


class BCIError(Exception):
    """Base exception for all BCI backend errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "BCI_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class ProcessingError(BCIError):
    """Signal processing errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="PROCESSING_ERROR")


class ModelError(BCIError):
    """Classifier errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="MODEL_ERROR")


class ValidationError(BCIError):
    """Data validation errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="VALIDATION_ERROR")


class SessionNotFoundError(BCIError):
    """Requested session does not exist."""

    status_code = 404

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}", code="SESSION_NOT_FOUND")


class PersistenceError(BCIError):
    """A database read or write failed."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message, code="PERSISTENCE_ERROR")
