import logging
import os

from flask import Flask

from catalog_search.blueprints.search import SERVICE_KEY, search_bp
from catalog_search.config import load_config
from catalog_search.services.search_indexer import schedule_index_setup
from catalog_search.services.search_service import ProductSearchService


def create_app(config=None):
    app = Flask(__name__)
    app.config.update(load_config())
    if config:
        app.config.update(config)
    app.secret_key = os.environ.get("CATALOG_SEARCH_SECRET_KEY", "change-me")
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    app.extensions[SERVICE_KEY] = ProductSearchService.from_app(app)
    app.register_blueprint(search_bp)
    schedule_index_setup(app)
    return app
