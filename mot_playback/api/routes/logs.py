"""Log Routes - Runtime log level, tick trace and log file tail."""

from typing import Optional, Tuple

from aiohttp import web

from ..controller import PlaybackController
from ..middleware import create_error_response, parse_json_body


def setup_log_routes(app: web.Application, controller: PlaybackController) -> None:
    """Register log routes."""
    app.router.add_get("/api/v1/logging", get_logging_handler)
    app.router.add_put("/api/v1/logging", update_logging_handler)
    app.router.add_get("/api/v1/logs/tail", tail_log_handler)


def _parse_limit(request: web.Request) -> Tuple[Optional[int], Optional[web.Response]]:
    try:
        limit = int(request.query.get("limit", 100))
    except ValueError:
        return None, create_error_response("INVALID_PARAMETER", "limit must be an integer", status=400)
    if limit < 1:
        return None, create_error_response("INVALID_PARAMETER", "limit must be >= 1", status=400)
    return limit, None


async def get_logging_handler(request: web.Request) -> web.Response:
    """GET /api/v1/logging - Current level, tick trace and log file."""
    controller: PlaybackController = request.app["controller"]
    return web.json_response(await controller.get_logging())


async def update_logging_handler(request: web.Request) -> web.Response:
    """PUT /api/v1/logging - Change level and/or tick trace."""
    controller: PlaybackController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    return web.json_response(await controller.update_logging(body))


async def tail_log_handler(request: web.Request) -> web.Response:
    """GET /api/v1/logs/tail - Last lines of the rotating log file."""
    controller: PlaybackController = request.app["controller"]
    limit, err = _parse_limit(request)
    if err:
        return err
    result = await controller.tail_log(limit)
    if result is None:
        return create_error_response("NO_LOG_FILE", "Logging to a file is not enabled", status=404)
    return web.json_response(result)
