from __future__ import annotations

import logging

import requests

from catalog_search.errors import CatalogFetchError

PUBLISHED = "published"


def is_published(product) -> bool:
    # the store API omits status and only lists published products
    return (product.get("status") or PUBLISHED) == PUBLISHED


class CatalogClient:
    def __init__(
        self,
        base_url,
        admin_token=None,
        page_size=100,
        expand="",
        timeout=30,
        session=None,
        logger=None,
    ):
        if not base_url:
            raise CatalogFetchError("CATALOG_BASE_URL is not configured")
        self.base_url = str(base_url).rstrip("/")
        self.admin_token = admin_token
        self.page_size = page_size
        self.expand = expand
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger("catalog_search")

    @classmethod
    def from_settings(cls, settings, session=None, logger=None):
        return cls(
            settings.catalog_base_url,
            admin_token=settings.catalog_admin_token,
            page_size=settings.catalog_page_size,
            expand=settings.catalog_expand,
            timeout=settings.catalog_timeout,
            session=session,
            logger=logger,
        )

    def _headers(self, admin):
        headers = {"Accept": "application/json"}
        if admin and self.admin_token:
            headers["Authorization"] = f"Bearer {self.admin_token}"
        return headers

    def _get_json(self, path, params=None, admin=False, allow_missing=False):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(
                url, params=params, headers=self._headers(admin), timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise CatalogFetchError(f"Failed to fetch {path}: {exc}") from exc
        if allow_missing and response.status_code == 404:
            return None
        if response.status_code != 200:
            snippet = (response.text or "").strip()[:200]
            raise CatalogFetchError(
                f"Catalog API {path} returned {response.status_code}: {snippet}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogFetchError(f"Catalog API {path} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise CatalogFetchError(f"Catalog API {path} payload is not an object")
        return payload

    def _list_all(self, scope, admin):
        path = f"/{scope}/products"
        products = []
        offset = 0
        while True:
            params = {"limit": self.page_size, "offset": offset}
            if self.expand:
                params["expand"] = self.expand
            if admin:
                params["status[]"] = PUBLISHED
            payload = self._get_json(path, params=params, admin=admin)
            page = payload.get("products")
            if not isinstance(page, list):
                raise CatalogFetchError(f"Catalog API {path} payload has no products list")
            products.extend(item for item in page if isinstance(item, dict))
            offset += len(page)
            total = payload.get("count")
            if not page:
                break
            # the server may cap limit below page_size; trust count when it is given
            if isinstance(total, int) and not isinstance(total, bool):
                if offset >= total:
                    break
            elif len(page) < self.page_size:
                break
        return products

    def list_published_products(self) -> list[dict]:
        try:
            products = self._list_all("store", admin=False)
        except CatalogFetchError as exc:
            if not self.admin_token:
                raise
            self.logger.warning("Store product listing failed, retrying with admin API: %s", exc)
            products = self._list_all("admin", admin=True)
        return [product for product in products if is_published(product)]

    def get_product(self, product_id) -> dict | None:
        if not product_id:
            raise CatalogFetchError("Product id is required")
        admin = bool(self.admin_token)
        scope = "admin" if admin else "store"
        params = {"expand": self.expand} if self.expand else None
        payload = self._get_json(
            f"/{scope}/products/{product_id}", params=params, admin=admin, allow_missing=True
        )
        if payload is None:
            return None
        product = payload.get("product")
        if not isinstance(product, dict):
            raise CatalogFetchError(f"Catalog API returned no product for {product_id}")
        return product

    def health(self) -> bool:
        url = f"{self.base_url}/health"
        try:
            response = self.session.get(url, timeout=min(self.timeout, 5))
        except requests.RequestException as exc:
            raise CatalogFetchError(f"Catalog backend is not reachable: {exc}") from exc
        if response.status_code != 200:
            raise CatalogFetchError(
                f"Catalog health check returned {response.status_code}",
                status_code=response.status_code,
            )
        return True
