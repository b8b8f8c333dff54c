"""
Error taxonomy shared by services and routes.

Services raise these; ``storefront.main`` turns them into
``{"error": message}`` responses with the class' status code.
"""


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400


class AuthError(AppError):
    """Missing, expired or invalid credentials."""
    status_code = 401


class ForbiddenError(AppError):
    """Authenticated, but the role may not perform the action."""
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Another request changed the same cart first."""
    status_code = 409


class InvalidCouponError(AppError):
    status_code = 400


class ExpiredCouponError(AppError):
    status_code = 400


class EmptyCartError(AppError):
    status_code = 400
