"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .user import UserFactory, AdminUserFactory, InactiveUserFactory
from .material import ConsumableFactory, LegacyMaterialFactory
from .asset import FixedAssetFactory, NeedsRepairAssetFactory, DamagedAssetFactory
from .purchase_request import PurchaseItemFactory, PurchaseRequestFactory

__all__ = [
    "UserFactory",
    "AdminUserFactory",
    "InactiveUserFactory",
    # Stock items
    "ConsumableFactory",
    "LegacyMaterialFactory",
    # Fixed assets
    "FixedAssetFactory",
    "NeedsRepairAssetFactory",
    "DamagedAssetFactory",
    # Purchase requests
    "PurchaseItemFactory",
    "PurchaseRequestFactory",
]
