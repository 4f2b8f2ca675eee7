"""FastAPI JSON surface over the resource query service."""
import logging
from dataclasses import asdict
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from vet1stop.app.config import Settings, get_settings
from vet1stop.app.paths import ensure_dirs
from vet1stop.errors import InvalidFilterError, NotFoundError, RepositoryError
from vet1stop.search.filters import ResourceFilter
from vet1stop.search.service import DEFAULT_RELATED_LIMIT, ResourceQueryService
from vet1stop.storage.dao import SqliteResourceStore
from vet1stop.storage.models import Resource

logger = logging.getLogger("vet1stop.web")

_FILTER_PARAMS = (
    "category", "subcategory", "source", "featured",
    "isPremiumContent", "tags", "q", "limit",
)


def _error(status: int, message: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message, "details": str(exc)})


def resource_json(resource: Resource) -> dict:
    return resource.to_document()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SqliteResourceStore] = None,
) -> FastAPI:
    """Build the app around one store instance shared by all requests."""
    settings = settings or get_settings()
    if store is None:
        ensure_dirs(settings)
        store = SqliteResourceStore(settings.db_path).init()

    app = FastAPI(title="Vet1Stop Resources")
    app.state.settings = settings
    app.state.store = store
    app.state.service = ResourceQueryService(store.catalog())

    @app.exception_handler(InvalidFilterError)
    async def invalid_filter(request: Request, exc: InvalidFilterError):
        return _error(400, "Invalid filter", exc)

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return _error(404, "Resource not found", exc)

    @app.exception_handler(RepositoryError)
    async def repository_failed(request: Request, exc: RepositoryError):
        logger.error("Repository failure on %s: %s", request.url.path, exc)
        return _error(500, "Failed to fetch resources", exc)

    @app.get("/resources")
    def list_resources(request: Request):
        params = {k: v for k, v in request.query_params.items() if k in _FILTER_PARAMS}
        options = ResourceFilter.from_query_params(params)
        logger.info("Fetching resources with filter: %s", asdict(options))
        resources = app.state.service.get_resources(options)
        return [resource_json(r) for r in resources]

    # Declared before /resources/{resource_id} so these are not taken as ids.
    @app.get("/resources/counts")
    def resource_counts():
        return app.state.service.get_resource_counts()

    @app.get("/resources/featured")
    def featured_resources(category: Optional[str] = None, limit: int = DEFAULT_RELATED_LIMIT):
        resources = app.state.service.get_featured_resources(category, limit=limit)
        return [resource_json(r) for r in resources]

    @app.get("/resources/{resource_id}")
    def get_resource(resource_id: str, includeRelated: bool = False):
        service: ResourceQueryService = app.state.service
        resource = service.get_resource_by_id(resource_id)
        if not includeRelated:
            return resource_json(resource)
        related = service.get_related_resources(resource_id, limit=settings.related_limit)
        return {
            "resource": resource_json(resource),
            "related": [resource_json(r) for r in related],
        }

    return app
