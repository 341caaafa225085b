from __future__ import annotations

import logging
from datetime import datetime, timezone

from catalog_search.config import DEFAULT_CURRENCY
from catalog_search.errors import TransformError, ValidationError
from catalog_search.helpers import coerce_quantity, safe_text, slugify_handle
from catalog_search.services.catalog_client import PUBLISHED

DEFAULT_VARIANT_ID = "default"


def generate_handle(title) -> str:
    return slugify_handle(title)


def _as_list(value):
    return value if isinstance(value, list) else []


def _project(items, *fields) -> list[str]:
    values = []
    for item in _as_list(items):
        if not isinstance(item, dict):
            continue
        for field in fields:
            text = safe_text(item.get(field))
            if text:
                values.append(text)
                break
    return values


def _iso_timestamp(value) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    text = safe_text(value)
    if not text:
        return ""
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.isoformat()


def _first_price(variant, default_currency):
    for price in _as_list(variant.get("prices")):
        if isinstance(price, dict):
            currency = safe_text(price.get("currency_code")) or default_currency
            return coerce_quantity(price.get("amount")), currency.lower()
    return 0, default_currency


def _first_option(variant):
    for option in _as_list(variant.get("options")):
        if not isinstance(option, dict):
            continue
        definition = option.get("option") if isinstance(option.get("option"), dict) else {}
        name = safe_text(definition.get("title")) or safe_text(option.get("option_id")) or ""
        return name, safe_text(option.get("value")) or ""
    return "", ""


def _product_fields(product, default_currency):
    title = safe_text(product.get("title")) or ""
    return {
        "product_id": str(product["id"]),
        "product_title": title,
        "created_at": _iso_timestamp(product.get("created_at")),
        "updated_at": _iso_timestamp(product.get("updated_at")),
        "status": safe_text(product.get("status")) or PUBLISHED,
        "handle": safe_text(product.get("handle")) or generate_handle(title),
        "thumbnail": safe_text(product.get("thumbnail")) or "",
        "categories": _project(product.get("categories"), "name", "title"),
        "tags": _project(product.get("tags"), "value", "name"),
        "currency_code": default_currency,
    }


def build_record(product, variant, *, default_currency=DEFAULT_CURRENCY, resolver=None) -> dict:
    if not isinstance(product, dict) or not safe_text(product.get("id")):
        raise TransformError("product.id")
    if not isinstance(variant, dict) or not safe_text(variant.get("id")):
        raise TransformError("variant.id")

    record = _product_fields(product, default_currency)
    product_id = record["product_id"]
    variant_id = str(variant["id"]).strip()
    price, currency_code = _first_price(variant, default_currency)
    option_name, option_value = _first_option(variant)

    record.update(
        {
            "objectID": f"{product_id}_{variant_id}",
            "variant_id": variant_id,
            "variant_title": safe_text(variant.get("title")) or record["product_title"],
            "sku": safe_text(variant.get("sku")) or "",
            "price": price,
            "currency_code": currency_code,
            "stocked_quantity": resolver.resolve(variant) if resolver is not None else 0,
            "option_name": option_name,
            "option_value": option_value,
        }
    )
    return record


def build_default_record(product, *, default_currency=DEFAULT_CURRENCY) -> dict:
    if not isinstance(product, dict) or not safe_text(product.get("id")):
        raise TransformError("product.id")
    record = _product_fields(product, default_currency)
    record.update(
        {
            "objectID": f"{record['product_id']}_{DEFAULT_VARIANT_ID}",
            "variant_id": DEFAULT_VARIANT_ID,
            "variant_title": record["product_title"],
            "sku": "",
            "price": 0,
            "stocked_quantity": 0,
            "option_name": "",
            "option_value": "",
        }
    )
    return record


def is_valid_record(record) -> bool:
    return bool(
        isinstance(record, dict)
        and safe_text(record.get("objectID"))
        and safe_text(record.get("product_title"))
    )


def build_product_records(product, *, default_currency=DEFAULT_CURRENCY, resolver=None, logger=None):
    """
    Yield one valid record per variant, or a single default record when the
    product has no variants. Invalid variants are logged and skipped; an
    invalid product raises ValidationError.
    """
    logger = logger or logging.getLogger("catalog_search")
    raw_variants = product.get("variants") if isinstance(product, dict) else None
    if raw_variants is not None and not isinstance(raw_variants, list):
        raise ValidationError(
            f"Product {product.get('id')} has malformed variants: {type(raw_variants).__name__}"
        )
    variants = _as_list(raw_variants)
    if not variants:
        record = build_default_record(product, default_currency=default_currency)
        if not is_valid_record(record):
            raise ValidationError(f"Product {record['product_id']} has no title")
        yield record
        return

    for variant in variants:
        try:
            record = build_record(
                product, variant, default_currency=default_currency, resolver=resolver
            )
        except TransformError as exc:
            if exc.field == "product.id":
                raise
            logger.warning("Skipping variant of product %s: %s", product.get("id"), exc)
            continue
        if not is_valid_record(record):
            logger.warning("Skipping record %s: missing product title", record["objectID"])
            continue
        yield record
