class ClinicError(Exception):
    """Base error; ``status_code`` is the HTTP status the API layer renders."""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str = None, details: dict = None):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ClinicError):
    status_code = 400
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str, fields: list = None, **kwargs):
        self.fields = list(fields or [])
        super().__init__(message, **kwargs)


class NotFoundError(ClinicError):
    status_code = 404
    default_code = "NOT_FOUND"


class InvalidCredentialsError(ClinicError):
    # code is USER_NOT_FOUND or INVALID_PASSWORD; the message never says which
    status_code = 401
    default_code = "INVALID_CREDENTIALS"

    def __init__(self, code: str = None, details: dict = None):
        super().__init__("Invalid credentials", code=code, details=details)


class InsufficientPermissionsError(ClinicError):
    status_code = 403
    default_code = "INSUFFICIENT_PERMISSIONS"


class InvalidTokenError(ClinicError):
    status_code = 401
    default_code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid or expired token", **kwargs):
        super().__init__(message, **kwargs)


class StorageError(ClinicError):
    status_code = 500
    default_code = "STORAGE_ERROR"


class InternalError(ClinicError):
    status_code = 500
    default_code = "INTERNAL_ERROR"
