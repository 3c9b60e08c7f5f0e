"""
Custom Exceptions for Hatch

Hierarchical exception classes for proper error handling across layers.
Every exception carries enough context (which record, which precondition)
for the caller to render a specific message.
"""

from typing import Optional, Dict, Any


class HatchError(Exception):
    """Base exception for all Hatch errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(HatchError):
    """Raised when input validation fails."""
    pass


class UnknownTierError(ValidationError):
    """Raised when a tier identifier is not in the catalog."""

    def __init__(self, tier: Any):
        super().__init__(
            f"Unknown subscription tier: {tier!r}",
            details={"tier": str(tier)},
        )
        self.tier = tier


class InvalidTransitionError(ValidationError):
    """Raised when a payment status change is not allowed."""

    def __init__(self, payment_id: Any, current: str, target: str):
        super().__init__(
            f"Payment {payment_id} cannot move from {current} to {target}",
            details={
                "payment_id": str(payment_id),
                "current_status": current,
                "target_status": target,
            },
        )


class ForbiddenError(HatchError):
    """Raised when the caller lacks the role or tier for an action."""
    pass


class DatabaseError(HatchError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = dict(details or {})
        if operation:
            merged["operation"] = operation
        if table:
            merged["table"] = table
        super().__init__(message, merged, original_error)


class NotFoundError(DatabaseError):
    """Raised when a requested resource is not found."""
    pass


class ConflictError(DatabaseError):
    """Raised when a uniqueness constraint would be violated."""
    pass


class PartialFailureError(DatabaseError):
    """
    Raised when a multi-step operation failed partway.

    The unit of work has been rolled back; nothing from it is visible.
    """
    pass


class ConfigurationError(HatchError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)


class StorageError(HatchError):
    """Raised when screenshot upload to blob storage fails."""

    def __init__(
        self,
        message: str,
        bucket: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if bucket:
            details["bucket"] = bucket
        super().__init__(message, details, original_error)
