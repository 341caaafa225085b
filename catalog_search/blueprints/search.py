from flask import Blueprint, current_app, jsonify, request

from catalog_search.errors import (
    CatalogFetchError,
    IndexClientError,
    SearchDisabledError,
    ValidationError,
)
from catalog_search.helpers import parse_int
from catalog_search.services.search_service import ProductSearchService, SearchFilters

search_bp = Blueprint("search", __name__)

SERVICE_KEY = "product_search_service"


def get_search_service() -> ProductSearchService:
    service = current_app.extensions.get(SERVICE_KEY)
    if service is None:
        service = ProductSearchService.from_app(current_app)
        current_app.extensions[SERVICE_KEY] = service
    return service


def _error(message, status):
    return jsonify({"success": False, "error": message}), status


@search_bp.errorhandler(SearchDisabledError)
def search_disabled(exc):
    return _error(str(exc), 503)


@search_bp.errorhandler(IndexClientError)
@search_bp.errorhandler(CatalogFetchError)
def upstream_failed(exc):
    current_app.logger.warning("Search upstream call failed: %s", exc)
    return _error(str(exc), 502)


@search_bp.errorhandler(ValidationError)
def invalid_request(exc):
    return _error(str(exc), 400)


@search_bp.route("/store/search")
def store_search():
    args = request.args
    result = get_search_service().search(
        args.get("q") or args.get("query") or "",
        SearchFilters.from_args(args),
        page=parse_int(args.get("page"), 0),
        page_size=parse_int(args.get("limit"), 20),
    )
    return jsonify({"success": True, "data": result.to_dict()})


@search_bp.route("/admin/search/quick")
def quick_search():
    query = (request.args.get("q") or "").strip()
    if len(query) < 2:
        return _error("Query too short. Use ?q=search-term (minimum 2 characters)", 400)
    limit = parse_int(request.args.get("limit"), 5)
    products = get_search_service().quick_search(query, limit=limit)
    return jsonify({"success": True, "query": query, "products": products})


@search_bp.route("/admin/search/index", methods=["GET"])
def index_stats():
    return jsonify({"success": True, "data": get_search_service().get_index_stats()})


@search_bp.route("/admin/search/index", methods=["POST"])
def manage_index():
    payload = request.get_json(silent=True) or {}
    action = payload.get("action")
    service = get_search_service()
    if action == "initialize":
        service.initialize_index()
        data = None
    elif action == "clear":
        service.clear_index()
        data = None
    elif action == "reindex":
        products = payload.get("products")
        if not isinstance(products, list):
            return _error("'products' must be a list", 400)
        data = {"records_indexed": service.index_products(products)}
    elif action == "resync":
        data = service.full_resync().to_dict()
    else:
        return _error("Invalid action", 400)
    return jsonify({"success": True, "message": f"Action '{action}' completed", "data": data})


@search_bp.route("/hooks/products", methods=["POST"])
def product_events():
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        events = [payload]
    elif isinstance(payload, list):
        events = payload
    else:
        return _error("Expected an event object or a list of events", 400)
    handled = get_search_service().handle_events(events)
    return jsonify({"success": True, "received": len(events), "handled": handled})
