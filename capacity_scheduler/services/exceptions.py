VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
CONFLICT = "CONFLICT"
PARSE_ERROR = "PARSE_ERROR"
STORE_ERROR = "STORE_ERROR"
OPERATION_FAILED = "OPERATION_FAILED"


class ServiceError(Exception):
    """Base exception for service layer failures."""

    code = OPERATION_FAILED

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.cause = cause


class ValidationError(ServiceError):
    """Raised when caller supplied input is malformed or missing."""

    code = VALIDATION_ERROR


class NotFoundError(ServiceError):
    """Raised when a referenced business or appointment does not exist."""

    code = NOT_FOUND


class ConflictError(ServiceError):
    """Raised when a requested interval overlaps an active appointment."""

    code = CONFLICT


class ParseError(ServiceError):
    """Raised when a natural-language time expression cannot be understood."""

    code = PARSE_ERROR

    def __init__(self, text: str, *, cause: Exception | None = None):
        super().__init__(f"Could not parse a date and time from: {text!r}", cause=cause)
        self.text = text


class DownstreamServiceError(ServiceError):
    """Raised when the durable store returns an error response or is unreachable."""

    code = STORE_ERROR

    def __init__(self, message: str, status_code: int | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code
