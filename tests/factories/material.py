"""
Stock item test factories.

Produce keyword arguments for ``StockItemCreate``.
"""

import factory
from faker import Faker

fake = Faker()


class ConsumableFactory(factory.Factory):
    """
    Factory for consumable materials.

    Usage:
        data = StockItemCreate(**ConsumableFactory(initial_stock=10))
    """

    class Meta:
        model = dict

    kind = "consumable"
    name = factory.Sequence(lambda n: f"{fake.word().title()} supply {n}")
    category = factory.LazyFunction(lambda: fake.random_element(["Stationery", "Cleaning", "Printing"]))
    unit = factory.LazyFunction(lambda: fake.random_element(["piece", "box", "ream", "bottle"]))
    min_stock = 5
    initial_stock = 20
    location = factory.LazyFunction(lambda: f"Store room {fake.random_int(1, 9)}")
    description = None


class LegacyMaterialFactory(factory.Factory):
    """Factory for legacy materials identified by a code."""

    class Meta:
        model = dict

    kind = "legacy"
    code = factory.Sequence(lambda n: f"MAT-{n:04d}")
    name = factory.Sequence(lambda n: f"Lab material {n}")
    category = "Laboratory"
    unit = "piece"
    min_stock = 2
    initial_stock = 10
