"""
System Routes - Health and reset endpoints.
"""

from aiohttp import web

from ..controller import PlaybackController


def setup_system_routes(app: web.Application, controller: PlaybackController) -> None:
    """Register system routes."""
    app.router.add_get("/api/v1/health", health_handler)
    app.router.add_post("/api/v1/reset", reset_handler)


async def health_handler(request: web.Request) -> web.Response:
    """GET /api/v1/health - Health check."""
    controller: PlaybackController = request.app["controller"]
    return web.json_response(await controller.health_check())


async def reset_handler(request: web.Request) -> web.Response:
    """POST /api/v1/reset - Disconnect and clear every slot."""
    controller: PlaybackController = request.app["controller"]
    return web.json_response(await controller.reset())
