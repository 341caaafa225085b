from catalog_search import create_app
from catalog_search.blueprints.search import SERVICE_KEY
from catalog_search.config import SearchSettings, load_config
from catalog_search.services import search_indexer


class TestLoadConfig:
    def test_defaults(self):
        config = load_config({})
        assert config["ALGOLIA_APP_ID"] is None
        assert config["ALGOLIA_INDEX_NAME"] == "products"
        assert config["SEARCH_BATCH_SIZE"] == 1000
        assert config["SEARCH_AUTO_CONFIGURE"] is True
        assert config["CATALOG_TIMEOUT"] == 30.0

    def test_invalid_numbers_fall_back(self):
        config = load_config({"SEARCH_BATCH_SIZE": "-3", "CATALOG_TIMEOUT": "soon"})
        assert config["SEARCH_BATCH_SIZE"] == 1000
        assert config["CATALOG_TIMEOUT"] == 30.0

    def test_boolean_flags(self):
        config = load_config({"SEARCH_AUTO_CONFIGURE": "0", "INVENTORY_REMOTE_LOOKUP": "yes"})
        assert config["SEARCH_AUTO_CONFIGURE"] is False
        assert config["INVENTORY_REMOTE_LOOKUP"] is True


class TestSearchSettings:
    def test_indexing_requires_both_credentials(self):
        assert SearchSettings(app_id="app").indexing_enabled is False
        assert SearchSettings(app_id="app", api_key="key").indexing_enabled is True

    def test_from_mapping(self):
        settings = SearchSettings.from_mapping(
            {
                "ALGOLIA_APP_ID": "app",
                "ALGOLIA_ADMIN_API_KEY": "key",
                "ALGOLIA_INDEX_NAME": "shop",
                "SEARCH_DEFAULT_CURRENCY": "EUR",
                "CATALOG_BASE_URL": "http://shop.local/",
                "CATALOG_PAGE_SIZE": 5000,
            }
        )
        assert settings.indexing_enabled is True
        assert settings.default_currency == "eur"
        assert settings.catalog_base_url == "http://shop.local"
        assert settings.catalog_page_size == 1000
        assert settings.replica_names == ["shop_price_asc", "shop_price_desc"]


class TestCreateApp:
    def test_app_without_credentials_starts_disabled(self, monkeypatch):
        monkeypatch.delenv("ALGOLIA_APP_ID", raising=False)
        monkeypatch.delenv("ALGOLIA_ADMIN_API_KEY", raising=False)
        app = create_app({"TESTING": True})
        assert app.extensions[SERVICE_KEY].is_enabled() is False
        assert search_indexer.schedule_index_setup(app) is None

    def test_auto_configure_can_be_disabled(self):
        app = create_app(
            {
                "TESTING": True,
                "ALGOLIA_APP_ID": "app",
                "ALGOLIA_ADMIN_API_KEY": "key",
                "SEARCH_AUTO_CONFIGURE": False,
            }
        )
        assert search_indexer.schedule_index_setup(app) is None

    def test_index_setup_runs_in_background(self, monkeypatch):
        calls = []
        monkeypatch.setattr(search_indexer, "_configure_index", calls.append)
        app = create_app({"TESTING": True, "SEARCH_AUTO_CONFIGURE": False})
        app.config.update(
            {"ALGOLIA_APP_ID": "app", "ALGOLIA_ADMIN_API_KEY": "key", "SEARCH_AUTO_CONFIGURE": True}
        )

        thread = search_indexer.schedule_index_setup(app)

        thread.join(timeout=5)
        assert calls == [app]
