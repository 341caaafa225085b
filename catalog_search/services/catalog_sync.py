from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass

from catalog_search.config import DEFAULT_CURRENCY
from catalog_search.errors import ValidationError
from catalog_search.services.record_transformer import build_product_records, is_valid_record


@dataclass
class SyncReport:
    products_fetched: int = 0
    records_built: int = 0
    records_skipped: int = 0
    records_indexed: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


class CatalogSyncService:
    def __init__(
        self,
        catalog_client,
        index_client,
        default_currency=DEFAULT_CURRENCY,
        resolver=None,
        logger=None,
    ):
        self.catalog_client = catalog_client
        self.index_client = index_client
        self.default_currency = default_currency
        self.resolver = resolver
        self.logger = logger or logging.getLogger("catalog_search")

    def build_records(self, products, report=None) -> list[dict]:
        report = report if report is not None else SyncReport()
        records = []
        for product in products or []:
            variants = product.get("variants") if isinstance(product, dict) else None
            variant_count = len(variants) if isinstance(variants, list) else 0
            try:
                product_records = list(
                    build_product_records(
                        product,
                        default_currency=self.default_currency,
                        resolver=self.resolver,
                        logger=self.logger,
                    )
                )
            except ValidationError as exc:
                self.logger.warning("Skipping product: %s", exc)
                report.records_skipped += max(variant_count, 1)
                continue
            report.records_skipped += max(variant_count - len(product_records), 0)
            records.extend(product_records)
        report.records_built += len(records)
        return records

    def index_records(self, records) -> int:
        records = list(records or [])
        valid = [record for record in records if is_valid_record(record)]
        if len(valid) != len(records):
            self.logger.warning("Dropped %s invalid records before upsert", len(records) - len(valid))
        if not valid:
            return 0
        return self.index_client.upsert_batch(valid)

    def index_products(self, products) -> int:
        records = self.build_records(products)
        if not records:
            return 0
        return self.index_client.upsert_batch(records)

    def full_resync(self) -> SyncReport:
        started = time.monotonic()
        report = SyncReport()

        products = self.catalog_client.list_published_products()
        report.products_fetched = len(products)
        self.logger.info("Fetched %s published products", report.products_fetched)
        records = self.build_records(products, report)

        self.index_client.configure_index()
        self.index_client.clear_all()
        if records:
            report.records_indexed = self.index_client.upsert_batch(records)

        report.duration_seconds = round(time.monotonic() - started, 3)
        self.logger.info(
            "Full resync done: %s records indexed, %s skipped in %ss",
            report.records_indexed,
            report.records_skipped,
            report.duration_seconds,
        )
        return report
