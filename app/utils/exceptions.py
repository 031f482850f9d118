class TJException(Exception):
    """Base exception for the application"""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class AuthenticationError(TJException):
    """Authentication related errors"""
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(TJException):
    """Authenticated but not allowed to act"""
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ValidationError(TJException):
    """Validation related errors"""
    status_code = 400

    def __init__(self, message: str = "Bad request"):
        super().__init__(message)


class InvalidStateError(ValidationError):
    """Transition attempted from a state that does not allow it"""
    pass


class NotFoundError(TJException):
    """Resource not found errors"""
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class ConflictError(TJException):
    """Resource conflict errors"""
    status_code = 409

    def __init__(self, message: str = "Conflict"):
        super().__init__(message)


class RateLimitedError(TJException):
    """Too many actions in the current window"""
    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded. Try again later."):
        super().__init__(message)
