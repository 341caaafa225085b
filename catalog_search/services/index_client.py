from __future__ import annotations

import logging

from algoliasearch.http.exceptions import AlgoliaException
from algoliasearch.search.client import SearchClientSync
from algoliasearch.search.config import SearchConfig as AlgoliaConfig

from catalog_search.errors import IndexClientError

ENGINE_ERRORS = (AlgoliaException, OSError, ValueError)

SEARCHABLE_ATTRIBUTES = [
    "product_title",
    "variant_title",
    "sku",
    "option_value",
    "categories",
    "tags",
]
FACET_ATTRIBUTES = [
    "filterOnly(currency_code)",
    "filterOnly(categories)",
    "filterOnly(tags)",
    "filterOnly(status)",
    "filterOnly(product_id)",
    "price",
    "stocked_quantity",
]
CUSTOM_RANKING = ["desc(stocked_quantity)", "asc(price)"]
DEFAULT_RANKING = ["typo", "geo", "words", "filters", "proximity", "attribute", "exact", "custom"]
REPLICA_SORTS = {"price_asc": "asc(price)", "price_desc": "desc(price)"}
MAX_HITS_PER_PAGE = 1000


def build_algolia_client(settings) -> SearchClientSync:
    config = AlgoliaConfig(settings.app_id, settings.api_key)
    config.connect_timeout = int(settings.connect_timeout * 1000)
    config.read_timeout = int(settings.read_timeout * 1000)
    config.write_timeout = int(settings.write_timeout * 1000)
    return SearchClientSync(config=config)


def index_settings(index_name: str) -> dict:
    return {
        "searchableAttributes": list(SEARCHABLE_ATTRIBUTES),
        "attributesForFaceting": list(FACET_ATTRIBUTES),
        "customRanking": list(CUSTOM_RANKING),
        "replicas": [f"{index_name}_{suffix}" for suffix in REPLICA_SORTS],
    }


def replica_settings(sort: str) -> dict:
    return {
        "ranking": [sort, *DEFAULT_RANKING],
        "attributesForFaceting": list(FACET_ATTRIBUTES),
        "searchableAttributes": list(SEARCHABLE_ATTRIBUTES),
    }


def as_dict(value) -> dict:
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    model_dump = getattr(value, "model_dump", None)
    if callable(model_dump):
        return model_dump(by_alias=True, exclude_none=True)
    return dict(value)


def _quote(value) -> str:
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _chunked(values, chunk_size):
    for idx in range(0, len(values), chunk_size):
        yield values[idx : idx + chunk_size]


class AlgoliaIndexClient:
    def __init__(self, client, index_name, chunk_size=1000, logger=None):
        if client is None:
            raise ValueError("An Algolia client is required")
        if not index_name:
            raise ValueError("index_name is required")
        self.client = client
        self.index_name = index_name
        self.chunk_size = max(int(chunk_size), 1)
        self.logger = logger or logging.getLogger("catalog_search")

    @classmethod
    def from_settings(cls, settings, client=None, logger=None):
        return cls(
            client or build_algolia_client(settings),
            settings.index_name,
            chunk_size=settings.batch_size,
            logger=logger,
        )

    def _call(self, action, method, **kwargs):
        try:
            return getattr(self.client, method)(**kwargs)
        except ENGINE_ERRORS as exc:
            self.logger.warning("Algolia %s failed on %s: %s", action, self.index_name, exc)
            raise IndexClientError(f"Algolia {action} failed", cause=exc) from exc

    def test_connection(self) -> dict:
        return as_dict(self._call("connection check", "get_settings", index_name=self.index_name))

    def configure_index(self, settings=None) -> None:
        self.test_connection()
        self._call(
            "set settings",
            "set_settings",
            index_name=self.index_name,
            index_settings=settings or index_settings(self.index_name),
        )
        for suffix, sort in REPLICA_SORTS.items():
            self._call(
                "set replica settings",
                "set_settings",
                index_name=f"{self.index_name}_{suffix}",
                index_settings=replica_settings(sort),
            )
        self.logger.info("Configured Algolia index %s", self.index_name)

    def upsert_batch(self, records) -> int:
        records = list(records or [])
        if not records:
            return 0
        sent = 0
        for number, chunk in enumerate(_chunked(records, self.chunk_size), start=1):
            self._call(
                f"save objects (chunk {number})",
                "save_objects",
                index_name=self.index_name,
                objects=chunk,
            )
            sent += len(chunk)
        self.logger.info("Indexed %s records to %s", sent, self.index_name)
        return sent

    def find_object_ids(self, product_id) -> list[str]:
        object_ids = []
        page = 0
        while True:
            response = self.search(
                {
                    "query": "",
                    "filters": f"product_id:{_quote(product_id)}",
                    "hitsPerPage": MAX_HITS_PER_PAGE,
                    "page": page,
                    "attributesToRetrieve": ["objectID"],
                }
            )
            hits = response.get("hits") or []
            object_ids.extend(
                as_dict(hit).get("objectID") for hit in hits if as_dict(hit).get("objectID")
            )
            page += 1
            if not hits or page >= int(response.get("nbPages") or 0):
                break
        return object_ids

    def delete_objects(self, object_ids) -> int:
        object_ids = list(object_ids or [])
        if not object_ids:
            return 0
        self._call(
            "delete objects",
            "delete_objects",
            index_name=self.index_name,
            object_ids=object_ids,
        )
        return len(object_ids)

    def delete_by_product_id(self, product_id) -> int:
        if not str(product_id or "").strip():
            raise ValueError("Product ID is required for deletion")
        deleted = self.delete_objects(self.find_object_ids(product_id))
        if deleted:
            self.logger.info("Deleted %s records of product %s", deleted, product_id)
        return deleted

    def clear_all(self) -> None:
        self._call("clear objects", "clear_objects", index_name=self.index_name)
        self.logger.info("Cleared Algolia index %s", self.index_name)

    def search(self, search_params: dict) -> dict:
        response = self._call(
            "search",
            "search_single_index",
            index_name=self.index_name,
            search_params=search_params,
        )
        return as_dict(response)

    def get_stats(self) -> dict:
        settings = self.test_connection()
        response = self.search({"query": "", "hitsPerPage": 0})
        return {
            "indexName": self.index_name,
            "nbRecords": int(response.get("nbHits") or 0),
            "settings": settings,
        }
