"""aiohttp request handlers.

Thin handlers that validate the request body, delegate to the payload parser
or the batch coordinator, and stream the rendered export back with summary
counters in response headers.
"""

import json
import logging
from typing import Any

from aiohttp import web
from pydantic import ValidationError

from ..core.container import Container
from ..errors import SessionInitError
from ..scrapers.payload import process_payloads
from ..services.exporter import ExportFile, export_records
from .schemas import ExtractRequest, ScrapeRequest

logger = logging.getLogger(__name__)

CONTAINER_KEY = web.AppKey("container", Container)

routes = web.RouteTableDef()


def _error(message: str, status: int, details: Any = None) -> web.Response:
    body: dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)


async def _read_body(request: web.Request, schema: type) -> Any:
    """Parse and validate the JSON body.

    Raises:
        web.HTTPBadRequest: If the body is not JSON or fails validation.
    """
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Request body must be JSON", "details": str(e)}),
            content_type="application/json",
        ) from e

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Invalid request", "details": json.loads(e.json(include_url=False))}),
            content_type="application/json",
        ) from e


def _file_response(export: ExportFile, counters: dict[str, int]) -> web.Response:
    headers = {
        "Content-Type": export.content_type,
        "Content-Disposition": f'attachment; filename="{export.filename}"',
    }
    headers.update({name: str(value) for name, value in counters.items()})
    return web.Response(body=export.content, headers=headers)


@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    """Liveness probe."""
    return web.json_response({"status": "ok"})


@routes.post("/api/extract")
async def extract(request: web.Request) -> web.Response:
    """Parse captured search payloads and return them as a file.

    Responds 400 when no payload yields a product, listing the per-item
    errors.
    """
    body: ExtractRequest = await _read_body(request, ExtractRequest)
    logger.info(f"Extract request: {len(body.json_strings)} payloads, format={body.format}")

    result = process_payloads(body.json_strings)
    if not result.records:
        return _error("No products found", 400, result.stats.errors)

    try:
        export = export_records(result.records, body.format, basename="products")
    except Exception as e:
        logger.error(f"Export failed: {e}")
        return _error("Failed to process data", 500, str(e))

    return _file_response(
        export,
        {
            "X-Total-Products": result.stats.total_products,
            "X-Sold-Out": result.stats.sold_out,
            "X-Available": result.stats.available,
            "X-Total-Files": result.stats.total_files,
        },
    )


@routes.post("/api/scrape")
async def scrape(request: web.Request) -> web.Response:
    """Harvest storefront URLs with the headless browser and return a file.

    Responds 400 when the batch produced no records and 500 when the browser
    session could not be started.
    """
    body: ScrapeRequest = await _read_body(request, ScrapeRequest)
    logger.info(
        f"Scrape request: {len(body.urls)} URLs, format={body.format}, "
        f"auto_paginate={body.auto_paginate}, product_details={body.product_details}"
    )

    coordinator = request.app[CONTAINER_KEY].batch_coordinator()
    try:
        result = await coordinator.run_batch(
            body.urls,
            auto_paginate=body.auto_paginate,
            product_details=body.product_details,
            max_products=body.max_products,
        )
    except SessionInitError as e:
        logger.error(f"Browser session failed to start: {e}")
        return _error("Failed to start browser session", 500, str(e))

    if not result.all_records:
        return _error("No products found or scraping failed", 400, result.per_url_errors)

    try:
        export = export_records(result.all_records, body.format, basename="scraped_products")
    except Exception as e:
        logger.error(f"Export failed: {e}")
        return _error("Failed to scrape data", 500, str(e))

    return _file_response(
        export,
        {
            "X-Total-Products": result.stats.total_records,
            "X-Pages-Visited": result.stats.pages_visited,
            "X-Failed-Urls": result.stats.failed_urls,
        },
    )


def create_app(container: Container | None = None) -> web.Application:
    """Build the aiohttp application.

    Args:
        container: DI container, a fresh one when None.

    Returns:
        Configured web.Application with all routes registered.
    """
    if container is None:
        container = Container()

    settings = container.config().server
    app = web.Application(client_max_size=settings.max_request_mb * 1024 * 1024)
    app[CONTAINER_KEY] = container
    app.add_routes(routes)
    return app
