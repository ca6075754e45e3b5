"""
Domain errors.

Every failure a request can end in is one of these. Each class carries the
HTTP status it maps to; the handlers registered in main.py turn them into
``{"error": message}`` JSON bodies. Anything that is not an AppError is
treated as unexpected and answered with a generic 500.
"""


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class NoOpError(ValidationError):
    default_message = "Nothing to update"


class InvalidCredential(AppError):
    status_code = 401
    default_message = "Invalid or expired token"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Not authenticated"


class Forbidden(AppError):
    status_code = 403
    default_message = "Access denied"


class Deactivated(Forbidden):
    default_message = "Account is disabled"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists"


class CodeGenerationExhausted(AppError):
    status_code = 500
    default_message = "Could not generate a unique employee code. Try again."


class ServiceUnavailable(AppError):
    status_code = 503
    default_message = "Service unavailable"
