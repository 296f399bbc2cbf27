"""
Domain Exceptions

Error taxonomy shared by the services and the HTTP layer. Each exception
knows the HTTP status it maps to and a machine-readable error code; the
FastAPI exception handlers in main.py turn them into
{"error": <code>, "message": <text>} bodies.

    InvalidInput        400  malformed or out-of-range request fields
    NotFound            404  referenced entity absent
    InvalidState        409  business-rule conflict
    TransactionFailure  500  store fault, rolled back
"""

from typing import Optional


class FoodieHubError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, str]:
        """Convert to the JSON error body."""
        return {"error": self.code, "message": self.message}


class InvalidInput(FoodieHubError):
    status_code = 400
    code = "invalid_input"


class NotFound(FoodieHubError):
    """A referenced entity does not exist (or is soft-deleted)."""

    status_code = 404

    def __init__(self, resource: str, message: Optional[str] = None):
        self.resource = resource
        label = resource.replace("_", " ").capitalize()
        super().__init__(message or f"{label} not found", code=f"{resource}_not_found")


class InvalidState(FoodieHubError):
    """A business rule refuses the operation in the current state."""

    status_code = 409

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or reason.replace("_", " "), code=reason)


class TransactionFailure(FoodieHubError):
    """The store failed mid-transaction; the unit of work was rolled back."""

    status_code = 500
    code = "transaction_failure"
