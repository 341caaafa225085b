from __future__ import annotations

import logging

from catalog_search.errors import ValidationError
from catalog_search.services.catalog_client import is_published

PRODUCT_CREATED = "product.created"
PRODUCT_UPDATED = "product.updated"
PRODUCT_DELETED = "product.deleted"
VARIANT_CREATED = "product-variant.created"
VARIANT_UPDATED = "product-variant.updated"
VARIANT_DELETED = "product-variant.deleted"

PRODUCT_EVENTS = (PRODUCT_CREATED, PRODUCT_UPDATED, PRODUCT_DELETED)
VARIANT_EVENTS = (VARIANT_CREATED, VARIANT_UPDATED, VARIANT_DELETED)


def _event_id(data, key):
    value = (data or {}).get(key) if isinstance(data, dict) else None
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"Event payload is missing {key}")
    return text


class ProductEventHandler:
    def __init__(self, catalog_client, sync_service, index_client, logger=None):
        self.catalog_client = catalog_client
        self.sync_service = sync_service
        self.index_client = index_client
        self.logger = logger or logging.getLogger("catalog_search")

    def delete_product(self, product_id) -> int:
        return self.index_client.delete_by_product_id(product_id)

    def update_product(self, product) -> int:
        if not isinstance(product, dict) or not product.get("id"):
            raise ValidationError("Product id is required for update")
        records = self.sync_service.build_records([product])
        self.index_client.delete_by_product_id(product["id"])
        if not records:
            return 0
        return self.index_client.upsert_batch(records)

    def reindex_product(self, product_id) -> int:
        product = self.catalog_client.get_product(product_id)
        if product is None or not is_published(product):
            self.logger.info("Product %s is gone or unpublished; removing its records", product_id)
            self.delete_product(product_id)
            return 0
        return self.update_product(product)

    def handle(self, event_name, data) -> bool:
        try:
            if event_name in (PRODUCT_CREATED, PRODUCT_UPDATED):
                self.reindex_product(_event_id(data, "id"))
            elif event_name == PRODUCT_DELETED:
                self.delete_product(_event_id(data, "id"))
            elif event_name in VARIANT_EVENTS:
                self.reindex_product(_event_id(data, "product_id"))
            else:
                self.logger.info("Ignoring unsupported event %s", event_name)
                return False
        except Exception as exc:
            self.logger.exception("Failed to handle %s event: %s", event_name, exc)
            return False
        self.logger.info("Handled %s event", event_name)
        return True

    def handle_many(self, events) -> int:
        handled = 0
        for event in events or []:
            if not isinstance(event, dict):
                self.logger.warning("Ignoring malformed event: %r", event)
                continue
            if self.handle(event.get("event") or event.get("name"), event.get("data")):
                handled += 1
        return handled
