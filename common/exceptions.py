"""
Jewelcraft - Custom Exceptions
===============================
Business-level exceptions that can be caught and converted to HTTP responses.
"""

from fastapi import HTTPException


class JewelcraftError(Exception):
    """Base exception for all business logic errors."""
    status_code = 400

    def __init__(self, message: str = "Pricing error."):
        self.message = message
        super().__init__(self.message)


class ValidationError(JewelcraftError):
    """Raised when an input or a commit rule is violated."""
    status_code = 422


class InvalidAttribute(ValidationError):
    """A numeric or enumerated input is outside its domain."""
    def __init__(self, field: str, message: str = ""):
        self.field = field
        super().__init__(message or f"invalid value for {field}")


class MissingAttribute(ValidationError):
    """A field required by the active pricing mode is absent."""
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} is required")


class PriceInversion(ValidationError):
    """cost_price <= selling_price <= mrp does not hold."""
    pass


class IndexOutOfRange(JewelcraftError):
    """A stone operation references a non-existent entry."""
    status_code = 404

    def __init__(self, index: int, size: int):
        self.index = index
        self.size = size
        super().__init__(f"stone index {index} out of range (collection has {size} entries)")


class NotFoundError(JewelcraftError):
    """Raised when a requested resource doesn't exist."""
    status_code = 404


class RateUnavailableError(JewelcraftError):
    """Raised when a market rate is missing or stale."""
    status_code = 503


def raise_http(error: JewelcraftError, status_code: int = None):
    """Convert a business exception to an HTTP exception."""
    raise HTTPException(
        status_code=status_code or error.status_code,
        detail={"success": False, "error": error.message, "code": status_code or error.status_code},
    )
