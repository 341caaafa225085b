from __future__ import annotations


class CatalogSearchError(Exception):
    pass


class ValidationError(CatalogSearchError):
    pass


class TransformError(ValidationError):
    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Missing required field: {field}")


class IndexClientError(CatalogSearchError):
    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class CatalogFetchError(CatalogSearchError, RuntimeError):
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class InventoryLookupError(CatalogSearchError):
    pass


class SearchDisabledError(CatalogSearchError):
    pass
