"""
Best-effort stocked quantity for a catalog variant.

The catalog does not expose inventory in one shape: depending on the API
version and the requested expansions a variant carries a flat quantity field,
a list of inventory items, a single nested inventory object, or nothing at
all. ``classify_inventory`` maps the raw variant onto one of the shapes below
and ``InventoryQuantityResolver`` resolves each shape explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from catalog_search.errors import InventoryLookupError
from catalog_search.helpers import coerce_quantity, parse_count

FLAT_QUANTITY_FIELDS = (
    "inventory_quantity",
    "quantity",
    "stock_quantity",
    "available_quantity",
)
ITEM_QUANTITY_FIELDS = ("stocked_quantity", "available_quantity", "quantity")


@dataclass(frozen=True)
class FlatQuantity:
    field: str
    value: object


@dataclass(frozen=True)
class InventoryItems:
    items: tuple


@dataclass(frozen=True)
class NestedInventory:
    inventory: dict


@dataclass(frozen=True)
class RemoteLookup:
    variant_id: str


@dataclass(frozen=True)
class NoInventory:
    pass


InventoryShape = Union[FlatQuantity, InventoryItems, NestedInventory, RemoteLookup, NoInventory]


def _first_quantity(source, fields=ITEM_QUANTITY_FIELDS):
    if not isinstance(source, dict):
        return 0
    for field in fields:
        value = source.get(field)
        if value is None:
            continue
        quantity = coerce_quantity(value)
        if quantity or parse_count(value) is not None:
            return quantity
    return 0


def _location_levels_quantity(levels) -> int:
    if not isinstance(levels, list):
        return 0
    return sum(_first_quantity(level) for level in levels)


def _item_quantity(item) -> int:
    if not isinstance(item, dict):
        return 0
    for field in ITEM_QUANTITY_FIELDS:
        if item.get(field) is not None:
            return _first_quantity(item)
    # expanded items keep their stock on the linked inventory record
    inventory = item.get("inventory")
    if isinstance(inventory, dict):
        if isinstance(inventory.get("location_levels"), list):
            return _location_levels_quantity(inventory["location_levels"])
        return _first_quantity(inventory)
    return _location_levels_quantity(item.get("location_levels"))


def classify_inventory(variant, remote_lookup: bool = False) -> InventoryShape:
    if not isinstance(variant, dict):
        return NoInventory()
    for field in FLAT_QUANTITY_FIELDS:
        value = variant.get(field)
        if value is not None and not isinstance(value, bool):
            return FlatQuantity(field=field, value=value)
    items = variant.get("inventory_items")
    if isinstance(items, list) and items:
        return InventoryItems(items=tuple(items))
    inventory = variant.get("inventory")
    if isinstance(inventory, dict) and inventory:
        return NestedInventory(inventory=inventory)
    variant_id = variant.get("id")
    if remote_lookup and variant_id:
        return RemoteLookup(variant_id=str(variant_id))
    return NoInventory()


class InventoryQuantityResolver:
    def __init__(self, inventory_client=None, remote_lookup: bool = False, logger=None):
        self.inventory_client = inventory_client
        self.remote_lookup = bool(remote_lookup and inventory_client is not None)
        self.logger = logger or logging.getLogger("catalog_search")

    def resolve(self, variant) -> int:
        try:
            shape = classify_inventory(variant, remote_lookup=self.remote_lookup)
            return self.resolve_shape(shape)
        except Exception as exc:
            self.logger.warning("Inventory resolution failed: %s", exc)
            return 0

    def resolve_shape(self, shape: InventoryShape) -> int:
        if isinstance(shape, FlatQuantity):
            return coerce_quantity(shape.value)
        if isinstance(shape, InventoryItems):
            return sum(_item_quantity(item) for item in shape.items)
        if isinstance(shape, NestedInventory):
            return _first_quantity(shape.inventory)
        if isinstance(shape, RemoteLookup):
            return self._lookup(shape.variant_id)
        return 0

    def _lookup(self, variant_id: str) -> int:
        try:
            return coerce_quantity(self.inventory_client.stocked_quantity(variant_id))
        except InventoryLookupError as exc:
            self.logger.warning("Inventory lookup failed for variant %s: %s", variant_id, exc)
            return 0
