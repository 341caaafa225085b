from __future__ import annotations

import json
import os
import sys

os.environ.setdefault("SEARCH_AUTO_CONFIGURE", "0")

from catalog_search import create_app
from catalog_search.blueprints.search import SERVICE_KEY
from catalog_search.errors import CatalogFetchError, IndexClientError
from catalog_search.services.search_service import ProductSearchService


def diagnose(service: ProductSearchService) -> int:
    client = service.catalog_client
    print(f"Catalog backend: {client.base_url}")
    try:
        client.health()
        print("Health check passed.")
        products = client.list_published_products()
    except CatalogFetchError as exc:
        print(f"Diagnostic failed: {exc}")
        return 1
    print(f"Found {len(products)} published products.")
    if products:
        print("Sample product:")
        print(json.dumps(products[0], indent=2, default=str)[:2000])
    return 0


def main(argv=None, app=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    app = app or create_app()
    with app.app_context():
        service = app.extensions.get(SERVICE_KEY) or ProductSearchService.from_app(app)
        if "--diagnose" in argv:
            return diagnose(service)
        if not service.is_enabled():
            print("Search indexing is disabled. Set ALGOLIA_APP_ID and ALGOLIA_ADMIN_API_KEY.")
            return 1

        print(f"Syncing published products into '{service.settings.index_name}'...")
        try:
            report = service.full_resync()
        except CatalogFetchError as exc:
            print(f"Catalog fetch failed, index left untouched: {exc}")
            return 1
        except IndexClientError as exc:
            print(f"Indexing failed, index may be partially populated: {exc}")
            return 1

        print(
            f"Done. Indexed {report.records_indexed} records from "
            f"{report.products_fetched} products ({report.records_skipped} skipped)."
        )
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
