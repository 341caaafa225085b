import copy
import re

import pytest
from algoliasearch.http.exceptions import AlgoliaException

from catalog_search import create_app
from catalog_search.blueprints.search import SERVICE_KEY
from catalog_search.config import SearchSettings
from catalog_search.errors import CatalogFetchError
from catalog_search.services.index_client import AlgoliaIndexClient
from catalog_search.services.search_service import ProductSearchService

RANGE_CLAUSE = re.compile(r"^(\w+):(-?[\d.]+) TO (-?[\d.]+)$")
COMPARE_CLAUSE = re.compile(r"^(\w+) > (-?[\d.]+)$")
MATCH_CLAUSE = re.compile(r'^(\w+):"?(.*?)"?$')


def _clause_matches(record, clause):
    clause = clause.strip()
    if clause.startswith("(") and clause.endswith(")"):
        return any(_clause_matches(record, part) for part in clause[1:-1].split(" OR "))
    match = RANGE_CLAUSE.match(clause)
    if match:
        name, low, high = match.groups()
        return float(low) <= record.get(name, 0) <= float(high)
    match = COMPARE_CLAUSE.match(clause)
    if match:
        name, bound = match.groups()
        return record.get(name, 0) > float(bound)
    match = MATCH_CLAUSE.match(clause)
    if match:
        name, value = match.groups()
        value = value.replace('\\"', '"')
        current = record.get(name)
        if isinstance(current, list):
            return value in current
        return str(current) == value
    raise AssertionError(f"Unsupported filter clause: {clause}")


def matches_filters(record, filters):
    if not filters:
        return True
    return all(_clause_matches(record, clause) for clause in filters.split(" AND "))


class FakeAlgoliaClient:
    """In-memory stand-in for algoliasearch's SearchClientSync."""

    def __init__(self):
        self.indices = {}
        self.settings = {}
        self.calls = []
        self.fail_on = {}

    def objects(self, index_name="products"):
        return self.indices.setdefault(index_name, {})

    def _record_call(self, method, **kwargs):
        self.calls.append((method, kwargs))
        count = sum(1 for name, _ in self.calls if name == method)
        if self.fail_on.get(method) == count:
            raise AlgoliaException(f"{method} call {count} rejected")

    def count(self, method):
        return sum(1 for name, _ in self.calls if name == method)

    def get_settings(self, index_name):
        self._record_call("get_settings", index_name=index_name)
        return copy.deepcopy(self.settings.get(index_name, {}))

    def set_settings(self, index_name, index_settings):
        self._record_call("set_settings", index_name=index_name, index_settings=index_settings)
        self.settings[index_name] = copy.deepcopy(index_settings)

    def save_objects(self, index_name, objects):
        self._record_call("save_objects", index_name=index_name, objects=objects)
        store = self.objects(index_name)
        for item in objects:
            store[item["objectID"]] = copy.deepcopy(item)
        return [{"taskID": len(self.calls)}]

    def delete_objects(self, index_name, object_ids):
        self._record_call("delete_objects", index_name=index_name, object_ids=object_ids)
        store = self.objects(index_name)
        for object_id in object_ids:
            store.pop(object_id, None)

    def clear_objects(self, index_name):
        self._record_call("clear_objects", index_name=index_name)
        self.objects(index_name).clear()

    def search_single_index(self, index_name, search_params):
        self._record_call("search_single_index", index_name=index_name, search_params=search_params)
        query = (search_params.get("query") or "").lower()
        matched = [
            copy.deepcopy(record)
            for _, record in sorted(self.objects(index_name).items())
            if matches_filters(record, search_params.get("filters"))
            and (not query or query in record.get("product_title", "").lower())
        ]
        per_page = search_params.get("hitsPerPage", 20)
        page = search_params.get("page", 0)
        pages = (len(matched) + per_page - 1) // per_page if per_page else 0
        start = page * per_page
        return {
            "hits": matched[start : start + per_page] if per_page else [],
            "nbHits": len(matched),
            "page": page,
            "nbPages": pages,
            "hitsPerPage": per_page,
            "processingTimeMS": 1,
            "query": search_params.get("query", ""),
        }


class FakeCatalogClient:
    base_url = "http://catalog.test"

    def __init__(self, products=None):
        self.products = {product["id"]: product for product in products or []}
        self.fail = False
        self.list_calls = 0

    def health(self):
        if self.fail:
            raise CatalogFetchError("Catalog backend is not reachable", status_code=503)
        return True

    def set_products(self, products):
        self.products = {product["id"]: product for product in products}

    def list_published_products(self):
        self.list_calls += 1
        if self.fail:
            raise CatalogFetchError("Catalog API /store/products returned 500: boom", status_code=500)
        return [
            copy.deepcopy(product)
            for product in self.products.values()
            if (product.get("status") or "published") == "published"
        ]

    def get_product(self, product_id):
        if self.fail:
            raise CatalogFetchError("Catalog API unavailable", status_code=503)
        product = self.products.get(product_id)
        return copy.deepcopy(product) if product else None


def make_product(product_id="prod_1", variants=None, **overrides):
    product = {
        "id": product_id,
        "title": "Blue T-Shirt",
        "handle": "blue-t-shirt",
        "status": "published",
        "thumbnail": "https://cdn.example.com/blue.png",
        "created_at": "2024-01-10T08:00:00.000Z",
        "updated_at": "2024-02-01T12:30:00.000Z",
        "categories": [{"name": "Shirts"}, {"name": "Summer"}],
        "tags": [{"value": "cotton"}, {"value": "new"}],
        "variants": variants if variants is not None else [make_variant()],
    }
    product.update(overrides)
    return product


def make_variant(variant_id="var_s", **overrides):
    variant = {
        "id": variant_id,
        "title": "Small",
        "sku": f"SKU-{variant_id}",
        "inventory_quantity": 5,
        "prices": [{"amount": 1999, "currency_code": "usd"}],
        "options": [{"option": {"title": "Size"}, "value": "S"}],
    }
    variant.update(overrides)
    return variant


@pytest.fixture
def settings():
    return SearchSettings(app_id="app", api_key="key", index_name="products", batch_size=1000)


@pytest.fixture
def algolia():
    return FakeAlgoliaClient()


@pytest.fixture
def index_client(algolia):
    return AlgoliaIndexClient(algolia, "products", chunk_size=1000)


@pytest.fixture
def catalog():
    return FakeCatalogClient([make_product()])


@pytest.fixture
def search_service(settings, index_client, catalog):
    return ProductSearchService(settings, index_client=index_client, catalog_client=catalog)


@pytest.fixture
def app(monkeypatch, search_service):
    for key in ("ALGOLIA_APP_ID", "ALGOLIA_ADMIN_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    app = create_app({"TESTING": True, "SEARCH_AUTO_CONFIGURE": False})
    app.extensions[SERVICE_KEY] = search_service
    return app


@pytest.fixture
def client(app):
    return app.test_client()
