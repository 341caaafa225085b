from __future__ import annotations

import os
import threading

from catalog_search.config import SearchSettings
from catalog_search.errors import IndexClientError
from catalog_search.services.search_service import ProductSearchService


def _configure_index(app):
    with app.app_context():
        service = ProductSearchService.from_app(app)
        if not service.is_enabled():
            return
        try:
            service.initialize_index()
        except IndexClientError as exc:
            app.logger.warning("Algolia index setup failed; search may be misconfigured: %s", exc)


def schedule_index_setup(app):
    if not SearchSettings.from_mapping(app.config).indexing_enabled:
        app.logger.warning(
            "ALGOLIA_APP_ID or ALGOLIA_ADMIN_API_KEY is not set; search indexing is disabled."
        )
        return None
    if not app.config.get("SEARCH_AUTO_CONFIGURE", True):
        return None
    if app.debug and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        return None
    thread = threading.Thread(target=_configure_index, args=(app,), daemon=True)
    thread.start()
    return thread
