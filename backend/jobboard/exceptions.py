"""Domain exceptions, mapped to HTTP responses in main.py."""


class JobBoardError(Exception):
    """Base exception for job board errors."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundError(JobBoardError):
    """Raised when a token, session or job does not exist."""

    status_code = 404


class ValidationError(JobBoardError):
    """Raised for malformed input. Nothing is written when this is raised."""

    status_code = 400

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class DataIntegrityError(JobBoardError):
    """Raised when an update touches a different number of rows than expected."""

    status_code = 500

    def __init__(self, operation: str, expected: int, affected: int):
        self.operation = operation
        self.expected = expected
        self.affected = affected
        super().__init__(
            f"{operation}: expected {expected} row(s) affected, got {affected}"
        )


class UpstreamError(JobBoardError):
    """Raised when the email sender, payment gateway or currency lookup fails."""

    status_code = 502

    def __init__(self, service: str, detail: str):
        self.service = service
        self.detail = detail
        super().__init__(f"{service} error: {detail}")
