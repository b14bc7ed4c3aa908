"""Error taxonomy shared by the relays and the HTTP layer.

Every error carries the HTTP status it maps to; ``main`` renders them as
``{"error": message}`` bodies.
"""


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AppError):
    """Required environment configuration is missing."""

    status_code = 500


class ValidationError(AppError):
    """Required request fields are missing or malformed."""

    status_code = 400


class UpstreamError(AppError):
    """The execution service or the LLM service failed or answered garbage."""

    status_code = 500

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class AuthenticationError(AppError):
    status_code = 401


class ConflictError(AppError):
    status_code = 409


class SubmissionTimeoutError(AppError, TimeoutError):
    """Poll budget exhausted before the execution reached a terminal status."""

    status_code = 504
