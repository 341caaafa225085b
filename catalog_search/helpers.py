from __future__ import annotations

import math
import re

HANDLE_SEPARATOR_PATTERN = re.compile(r"[^a-z0-9]+")


def parse_bool(value):
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    value = str(value).strip().lower()
    return value in {"1", "true", "yes", "y", "on", "t"}


def parse_float(value):
    if value in (None, "", " "):
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(str(value).replace(",", "."))
    except (ValueError, TypeError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def parse_int(value, default=None):
    parsed = parse_float(value)
    if parsed is None:
        return default
    return int(parsed)


def safe_text(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_count(value):
    # counts and minor-unit amounts: "1,000" is a thousands separator, not a decimal comma
    if isinstance(value, str):
        value = value.replace(",", "").replace("_", "").strip()
    return parse_float(value)


def coerce_quantity(value) -> int:
    parsed = parse_count(value)
    if parsed is None or parsed <= 0:
        return 0
    return int(parsed)


def split_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(",")
    return [text for text in (safe_text(item) for item in items) if text]


def slugify_handle(value: str | None) -> str:
    text = str(value or "").lower().strip()
    return HANDLE_SEPARATOR_PATTERN.sub("-", text).strip("-")
