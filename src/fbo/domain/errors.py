class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class ConflictError(AppError):
    pass


class InvalidInputError(ValidationError):
    """Raised by the pricing engine for values that are not finite numbers."""
