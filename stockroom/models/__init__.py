from stockroom.models.user import User, UserRole
from stockroom.models.stock_item import StockItem, Material, ConsumableMaterial, STOCK_ITEM_KINDS
from stockroom.models.stock_transaction import StockTransaction, TransactionType
from stockroom.models.asset import (
    FixedAsset,
    AssetBorrow,
    AssetCondition,
    BorrowStatus,
    UNBORROWABLE_CONDITIONS,
)
from stockroom.models.notification import Notification, NotificationType
from stockroom.models.purchase_request import PurchaseRequest, PurchaseRequestStatus

__all__ = [
    "User",
    "UserRole",
    "StockItem",
    "Material",
    "ConsumableMaterial",
    "STOCK_ITEM_KINDS",
    "StockTransaction",
    "TransactionType",
    "FixedAsset",
    "AssetBorrow",
    "AssetCondition",
    "BorrowStatus",
    "UNBORROWABLE_CONDITIONS",
    "Notification",
    "NotificationType",
    "PurchaseRequest",
    "PurchaseRequestStatus",
]
