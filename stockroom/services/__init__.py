"""
Services package initialization.
Business logic layer for stock, asset loan, account, purchase request and
notification operations.
"""

from .errors import (
    InventoryError,
    NotFoundError,
    ValidationError,
    ConflictError,
    InsufficientStockError,
    AssetUnavailableError,
    AlreadyBorrowedError,
    NotBorrowedError,
    NotReturnedError,
    CannotDeleteReturnedError,
    AssetInUseError,
    LockTimeoutError,
    LastAdminError,
    UserInUseError,
    AlreadyDecidedError,
)
from .stock_ledger import StockLedgerService, BatchResult, BatchItemResult
from .asset_borrow import AssetBorrowService
from .notifications import NotificationService, NotificationParams, CheckOutcome
from .users import UserService
from .purchase_requests import PurchaseRequestService

__all__ = [
    'StockLedgerService',
    'AssetBorrowService',
    'NotificationService',
    'UserService',
    'PurchaseRequestService',
    'NotificationParams',
    'CheckOutcome',
    'BatchResult',
    'BatchItemResult',
    'InventoryError',
    'NotFoundError',
    'ValidationError',
    'ConflictError',
    'InsufficientStockError',
    'AssetUnavailableError',
    'AlreadyBorrowedError',
    'NotBorrowedError',
    'NotReturnedError',
    'CannotDeleteReturnedError',
    'AssetInUseError',
    'LockTimeoutError',
    'LastAdminError',
    'UserInUseError',
    'AlreadyDecidedError',
]
