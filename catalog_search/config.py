from __future__ import annotations

import os
from dataclasses import dataclass, field

from catalog_search.helpers import parse_bool, parse_float, parse_int, safe_text

DEFAULT_INDEX_NAME = "products"
DEFAULT_CURRENCY = "usd"
DEFAULT_CATALOG_EXPAND = (
    "variants,variants.prices,variants.options,variants.inventory_items,categories,tags"
)
MAX_CATALOG_PAGE_SIZE = 1000

_FLOAT_KEYS = {
    "ALGOLIA_CONNECT_TIMEOUT": 2.0,
    "ALGOLIA_READ_TIMEOUT": 5.0,
    "ALGOLIA_WRITE_TIMEOUT": 30.0,
    "CATALOG_TIMEOUT": 30.0,
    "INVENTORY_TIMEOUT": 5.0,
}
_INT_KEYS = {
    "SEARCH_BATCH_SIZE": 1000,
    "CATALOG_PAGE_SIZE": 100,
}
_BOOL_KEYS = {
    "SEARCH_AUTO_CONFIGURE": True,
    "INVENTORY_REMOTE_LOOKUP": False,
}
_TEXT_KEYS = {
    "ALGOLIA_APP_ID": None,
    "ALGOLIA_ADMIN_API_KEY": None,
    "ALGOLIA_INDEX_NAME": DEFAULT_INDEX_NAME,
    "SEARCH_DEFAULT_CURRENCY": DEFAULT_CURRENCY,
    "CATALOG_BASE_URL": "http://localhost:9000",
    "CATALOG_ADMIN_TOKEN": None,
    "CATALOG_EXPAND": DEFAULT_CATALOG_EXPAND,
    "INVENTORY_BASE_URL": None,
    "LOG_LEVEL": "INFO",
}


def load_config(environ=None) -> dict:
    env = os.environ if environ is None else environ
    config = {}
    for key, default in _TEXT_KEYS.items():
        config[key] = safe_text(env.get(key)) or default
    for key, default in _FLOAT_KEYS.items():
        value = parse_float(env.get(key))
        config[key] = value if value is not None and value > 0 else default
    for key, default in _INT_KEYS.items():
        value = parse_int(env.get(key))
        config[key] = value if value is not None and value > 0 else default
    for key, default in _BOOL_KEYS.items():
        raw = env.get(key)
        config[key] = default if raw in (None, "") else parse_bool(raw)
    return config


@dataclass(frozen=True)
class SearchSettings:
    app_id: str | None = None
    api_key: str | None = None
    index_name: str = DEFAULT_INDEX_NAME
    batch_size: int = 1000
    default_currency: str = DEFAULT_CURRENCY
    connect_timeout: float = 2.0
    read_timeout: float = 5.0
    write_timeout: float = 30.0
    catalog_base_url: str = "http://localhost:9000"
    catalog_admin_token: str | None = None
    catalog_page_size: int = 100
    catalog_timeout: float = 30.0
    catalog_expand: str = DEFAULT_CATALOG_EXPAND
    inventory_remote_lookup: bool = False
    inventory_base_url: str | None = None
    inventory_timeout: float = 5.0
    replica_suffixes: tuple = field(default=("price_asc", "price_desc"))

    @property
    def indexing_enabled(self) -> bool:
        return bool(self.app_id and self.api_key)

    @property
    def replica_names(self) -> list[str]:
        return [f"{self.index_name}_{suffix}" for suffix in self.replica_suffixes]

    @classmethod
    def from_mapping(cls, config) -> "SearchSettings":
        defaults = load_config({})
        merged = {**defaults, **{key: value for key, value in dict(config).items() if value is not None}}
        page_size = int(merged["CATALOG_PAGE_SIZE"])
        return cls(
            app_id=safe_text(merged["ALGOLIA_APP_ID"]),
            api_key=safe_text(merged["ALGOLIA_ADMIN_API_KEY"]),
            index_name=safe_text(merged["ALGOLIA_INDEX_NAME"]) or DEFAULT_INDEX_NAME,
            batch_size=max(int(merged["SEARCH_BATCH_SIZE"]), 1),
            default_currency=(safe_text(merged["SEARCH_DEFAULT_CURRENCY"]) or DEFAULT_CURRENCY).lower(),
            connect_timeout=float(merged["ALGOLIA_CONNECT_TIMEOUT"]),
            read_timeout=float(merged["ALGOLIA_READ_TIMEOUT"]),
            write_timeout=float(merged["ALGOLIA_WRITE_TIMEOUT"]),
            catalog_base_url=str(merged["CATALOG_BASE_URL"]).rstrip("/"),
            catalog_admin_token=safe_text(merged["CATALOG_ADMIN_TOKEN"]),
            catalog_page_size=min(max(page_size, 1), MAX_CATALOG_PAGE_SIZE),
            catalog_timeout=float(merged["CATALOG_TIMEOUT"]),
            catalog_expand=safe_text(merged["CATALOG_EXPAND"]) or DEFAULT_CATALOG_EXPAND,
            inventory_remote_lookup=bool(merged["INVENTORY_REMOTE_LOOKUP"]),
            inventory_base_url=(safe_text(merged["INVENTORY_BASE_URL"]) or "").rstrip("/") or None,
            inventory_timeout=float(merged["INVENTORY_TIMEOUT"]),
        )
