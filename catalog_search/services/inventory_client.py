from __future__ import annotations

import requests

from catalog_search.errors import InventoryLookupError
from catalog_search.helpers import coerce_quantity


class InventoryClient:
    def __init__(self, base_url, admin_token=None, timeout=5, session=None):
        if not base_url:
            raise ValueError("base_url is required for InventoryClient")
        self.base_url = str(base_url).rstrip("/")
        self.admin_token = admin_token
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings, session=None):
        return cls(
            settings.inventory_base_url or settings.catalog_base_url,
            admin_token=settings.catalog_admin_token,
            timeout=settings.inventory_timeout,
            session=session,
        )

    def _headers(self):
        headers = {"Accept": "application/json"}
        if self.admin_token:
            headers["Authorization"] = f"Bearer {self.admin_token}"
        return headers

    def list_levels(self, variant_id: str) -> list[dict]:
        url = f"{self.base_url}/admin/inventory-items"
        params = {"variant_id": variant_id, "fields": "*location_levels"}
        try:
            response = self.session.get(
                url, params=params, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise InventoryLookupError(f"Inventory request failed: {exc}") from exc
        if response.status_code != 200:
            raise InventoryLookupError(f"Inventory API returned {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise InventoryLookupError("Inventory API returned invalid JSON") from exc
        items = payload.get("inventory_items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise InventoryLookupError("Inventory payload has no inventory_items list")
        levels = []
        for item in items:
            if not isinstance(item, dict):
                continue
            for level in item.get("location_levels") or []:
                if isinstance(level, dict):
                    levels.append(level)
        return levels

    def stocked_quantity(self, variant_id: str) -> int:
        total = 0
        for level in self.list_levels(variant_id):
            value = level.get("stocked_quantity")
            if value is None:
                value = level.get("available_quantity")
            total += coerce_quantity(value)
        return total
