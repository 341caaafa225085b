from __future__ import annotations

import logging
from dataclasses import dataclass, field

from flask import current_app

from catalog_search.config import SearchSettings
from catalog_search.errors import SearchDisabledError
from catalog_search.helpers import parse_bool, parse_float, parse_int, safe_text, split_list
from catalog_search.services.catalog_client import CatalogClient
from catalog_search.services.catalog_sync import CatalogSyncService
from catalog_search.services.index_client import AlgoliaIndexClient, as_dict
from catalog_search.services.inventory_client import InventoryClient
from catalog_search.services.inventory_resolver import InventoryQuantityResolver
from catalog_search.services.product_events import ProductEventHandler

MAX_PRICE = 9007199254740991
MAX_PAGE_SIZE = 1000

RETRIEVED_ATTRIBUTES = [
    "objectID",
    "product_id",
    "variant_id",
    "product_title",
    "variant_title",
    "sku",
    "price",
    "currency_code",
    "option_name",
    "option_value",
    "stocked_quantity",
    "thumbnail",
    "handle",
    "categories",
    "tags",
    "status",
]


def _quote(value) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _format_number(value) -> str:
    number = float(value)
    return str(int(number)) if number.is_integer() else str(number)


@dataclass
class SearchFilters:
    category: str | None = None
    currency_code: str | None = None
    price_min: float | None = None
    price_max: float | None = None
    in_stock: bool = False
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_args(cls, args) -> "SearchFilters":
        return cls(
            category=safe_text(args.get("category")),
            currency_code=safe_text(args.get("currency_code")),
            price_min=parse_float(args.get("price_min")),
            price_max=parse_float(args.get("price_max")),
            in_stock=parse_bool(args.get("in_stock")),
            tags=split_list(args.get("tags")),
        )

    @classmethod
    def coerce(cls, value) -> "SearchFilters":
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls.from_args(value)


def build_filter_string(filters=None) -> str:
    filters = SearchFilters.coerce(filters)
    clauses = []
    if filters.category:
        clauses.append(f"categories:{_quote(filters.category)}")
    if filters.currency_code:
        clauses.append(f"currency_code:{_quote(filters.currency_code.lower())}")
    if filters.price_min is not None or filters.price_max is not None:
        low = filters.price_min if filters.price_min is not None else 0
        high = filters.price_max if filters.price_max is not None else MAX_PRICE
        clauses.append(f"price:{_format_number(low)} TO {_format_number(high)}")
    if filters.in_stock:
        clauses.append("stocked_quantity > 0")
    if filters.tags:
        tags = " OR ".join(f"tags:{_quote(tag)}" for tag in filters.tags)
        clauses.append(f"({tags})")
    clauses.append("status:published")
    return " AND ".join(clauses)


def _normalize_hit(hit) -> dict:
    hit = dict(as_dict(hit))
    object_id = hit.get("objectID") or ""
    if not hit.get("product_id") and object_id:
        suffix = f"_{hit.get('variant_id')}" if hit.get("variant_id") else ""
        if suffix and object_id.endswith(suffix) and len(object_id) > len(suffix):
            hit["product_id"] = object_id[: -len(suffix)]
        else:
            hit["product_id"] = object_id.rsplit("_", 1)[0]
    hit["handle"] = hit.get("handle") or ""
    return hit


@dataclass
class SearchResult:
    hits: list = field(default_factory=list)
    nb_hits: int = 0
    page: int = 0
    nb_pages: int = 0
    hits_per_page: int = 0
    processing_time_ms: int = 0
    query: str = ""

    @classmethod
    def from_response(cls, response, query="", page_size=0) -> "SearchResult":
        response = as_dict(response)
        return cls(
            hits=[_normalize_hit(hit) for hit in response.get("hits") or []],
            nb_hits=parse_int(response.get("nbHits"), 0),
            page=parse_int(response.get("page"), 0),
            nb_pages=parse_int(response.get("nbPages"), 0),
            hits_per_page=parse_int(response.get("hitsPerPage"), page_size),
            processing_time_ms=parse_int(response.get("processingTimeMS"), 0),
            query=response.get("query") if response.get("query") is not None else query,
        )

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "nbHits": self.nb_hits,
            "page": self.page,
            "nbPages": self.nb_pages,
            "hitsPerPage": self.hits_per_page,
            "processingTimeMS": self.processing_time_ms,
            "query": self.query,
        }


class ProductSearchService:
    def __init__(
        self,
        settings: SearchSettings,
        index_client=None,
        catalog_client=None,
        inventory_client=None,
        logger=None,
    ):
        self.settings = settings
        self.logger = logger or logging.getLogger("catalog_search")
        if index_client is None and settings.indexing_enabled:
            index_client = AlgoliaIndexClient.from_settings(settings, logger=self.logger)
        self.index_client = index_client
        self._catalog_client = catalog_client
        if inventory_client is None and settings.inventory_remote_lookup:
            inventory_client = InventoryClient.from_settings(settings)
        self.resolver = InventoryQuantityResolver(
            inventory_client,
            remote_lookup=settings.inventory_remote_lookup,
            logger=self.logger,
        )

    @classmethod
    def from_app(cls, app=None, **kwargs) -> "ProductSearchService":
        app = app or current_app
        kwargs.setdefault("logger", app.logger)
        return cls(SearchSettings.from_mapping(app.config), **kwargs)

    def is_enabled(self) -> bool:
        return self.index_client is not None

    def _require_index(self):
        if self.index_client is None:
            raise SearchDisabledError(
                "Search indexing is disabled; set ALGOLIA_APP_ID and ALGOLIA_ADMIN_API_KEY"
            )
        return self.index_client

    @property
    def catalog_client(self):
        if self._catalog_client is None:
            self._catalog_client = CatalogClient.from_settings(self.settings, logger=self.logger)
        return self._catalog_client

    def sync_service(self) -> CatalogSyncService:
        return CatalogSyncService(
            self.catalog_client,
            self._require_index(),
            default_currency=self.settings.default_currency,
            resolver=self.resolver,
            logger=self.logger,
        )

    def event_handler(self) -> ProductEventHandler:
        return ProductEventHandler(
            self.catalog_client,
            self.sync_service(),
            self._require_index(),
            logger=self.logger,
        )

    def initialize_index(self) -> None:
        self._require_index().configure_index()

    def index_records(self, records) -> int:
        return self.sync_service().index_records(records)

    def index_products(self, products) -> int:
        return self.sync_service().index_products(products)

    def full_resync(self):
        return self.sync_service().full_resync()

    def update_product(self, product) -> int:
        return self.event_handler().update_product(product)

    def delete_product(self, product_id) -> int:
        return self.event_handler().delete_product(product_id)

    def handle_event(self, event_name, data) -> bool:
        return self.event_handler().handle(event_name, data)

    def handle_events(self, events) -> int:
        return self.event_handler().handle_many(events)

    def clear_index(self) -> None:
        self._require_index().clear_all()

    def get_index_stats(self) -> dict:
        return self._require_index().get_stats()

    def search(self, query=None, filters=None, page=0, page_size=20) -> SearchResult:
        index_client = self._require_index()
        text_query = safe_text(query) or ""
        page = max(parse_int(page, 0), 0)
        page_size = min(max(parse_int(page_size, 20), 1), MAX_PAGE_SIZE)
        filter_string = build_filter_string(filters)
        self.logger.debug("Search %r with filters %s", text_query, filter_string)
        response = index_client.search(
            {
                "query": text_query,
                "page": page,
                "hitsPerPage": page_size,
                "filters": filter_string,
                "attributesToRetrieve": list(RETRIEVED_ATTRIBUTES),
            }
        )
        return SearchResult.from_response(response, query=text_query, page_size=page_size)

    def quick_search(self, query, limit=5) -> list[dict]:
        text_query = safe_text(query)
        if not text_query:
            return []
        result = self.search(text_query, page=0, page_size=max(1, min(limit, 20)))
        return [
            {
                "id": hit.get("objectID"),
                "product_id": hit.get("product_id"),
                "title": hit.get("product_title"),
                "variant": hit.get("variant_title"),
                "price": hit.get("price"),
                "currency": hit.get("currency_code"),
                "sku": hit.get("sku"),
                "handle": hit.get("handle"),
                "inStock": (parse_int(hit.get("stocked_quantity"), 0) or 0) > 0,
            }
            for hit in result.hits
        ]
