"""
Domain errors for inventory operations.

Every failure a service can report is one of these kinds. Each carries a
stable ``code`` for API clients and the HTTP status the API layer maps it to.
"""

from typing import Optional


class InventoryError(Exception):
    """Base exception for inventory operations"""

    code = "INVENTORY_ERROR"
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(InventoryError):
    """Referenced material, asset, loan, user or notification is absent"""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id):
        super().__init__(f"{resource} with ID {resource_id} was not found")
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(InventoryError):
    """Missing or malformed input"""

    code = "VALIDATION_ERROR"
    status_code = 422


class ConflictError(InventoryError):
    """Unique identifier already taken"""

    code = "CONFLICT"
    status_code = 409


class InsufficientStockError(InventoryError):
    """Raised when trying to withdraw more than available"""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, material_name: str, available: int, unit: str, requested: Optional[int] = None):
        message = f"Insufficient stock for {material_name}. Available: {available} {unit}"
        if requested is not None:
            message += f", Requested: {requested} {unit}"
        super().__init__(message)
        self.available = available
        self.unit = unit
        self.requested = requested


class AssetUnavailableError(InventoryError):
    """Asset condition blocks borrowing"""

    code = "ASSET_UNAVAILABLE"


class AlreadyBorrowedError(InventoryError):
    """Asset already has an open loan"""

    code = "ALREADY_BORROWED"
    status_code = 409


class NotBorrowedError(InventoryError):
    """Return requested for a loan that is not open"""

    code = "NOT_BORROWED"


class NotReturnedError(InventoryError):
    """Undo requested for a loan that was never returned"""

    code = "NOT_RETURNED"


class CannotDeleteReturnedError(InventoryError):
    """Returned loans are kept as history"""

    code = "CANNOT_DELETE_RETURNED"


class AssetInUseError(InventoryError):
    """Asset still has an unreturned loan"""

    code = "ASSET_IN_USE"


class LockTimeoutError(InventoryError):
    """Row lock could not be acquired in time; safe to retry"""

    code = "LOCK_TIMEOUT"
    status_code = 503
    retryable = True


class LastAdminError(InventoryError):
    """The last active administrator cannot be removed, demoted or disabled"""

    code = "LAST_ADMIN"
    status_code = 409


class UserInUseError(InventoryError):
    """Account still owns loans or purchase requests"""

    code = "USER_IN_USE"
    status_code = 409


class AlreadyDecidedError(InventoryError):
    """Purchase request was already approved or rejected"""

    code = "ALREADY_DECIDED"
    status_code = 409
