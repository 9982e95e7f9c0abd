"""Playback Routes - play, pause, speed, seek, step and visibility."""

from aiohttp import web

from ..controller import PlaybackController
from ..middleware import create_error_response, parse_json_body, result_to_response


def setup_playback_routes(app: web.Application, controller: PlaybackController) -> None:
    """Register playback routes."""
    app.router.add_get("/api/v1/playback", get_playback_handler)
    app.router.add_post("/api/v1/playback/play", play_handler)
    app.router.add_post("/api/v1/playback/pause", pause_handler)
    app.router.add_put("/api/v1/playback/speed", speed_handler)
    app.router.add_post("/api/v1/playback/seek", seek_handler)
    app.router.add_post("/api/v1/playback/step", step_handler)
    app.router.add_post("/api/v1/playback/rewind", rewind_handler)
    app.router.add_post("/api/v1/playback/visibility", visibility_handler)


async def get_playback_handler(request: web.Request) -> web.Response:
    """GET /api/v1/playback - Mode, speed and cursor."""
    controller: PlaybackController = request.app["controller"]
    return web.json_response(await controller.get_playback())


async def play_handler(request: web.Request) -> web.Response:
    """POST /api/v1/playback/play - Start playback (refused while live)."""
    controller: PlaybackController = request.app["controller"]
    return result_to_response(await controller.play())


async def pause_handler(request: web.Request) -> web.Response:
    """POST /api/v1/playback/pause - Pause playback."""
    controller: PlaybackController = request.app["controller"]
    return result_to_response(await controller.pause())


async def speed_handler(request: web.Request) -> web.Response:
    """PUT /api/v1/playback/speed - Set playback speed."""
    controller: PlaybackController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    if "speed" not in body:
        return create_error_response("MISSING_SPEED", "'speed' field is required", status=400)
    return result_to_response(await controller.set_speed(body["speed"]))


async def seek_handler(request: web.Request) -> web.Response:
    """POST /api/v1/playback/seek - Jump to an index (clamped)."""
    controller: PlaybackController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    return result_to_response(await controller.seek(body["index"]))


async def step_handler(request: web.Request) -> web.Response:
    """POST /api/v1/playback/step - Pause and move by delta frames."""
    controller: PlaybackController = request.app["controller"]
    body, err = await parse_json_body(request, required=False)
    if err:
        return err
    return result_to_response(await controller.step(body.get("delta", 1)))


async def rewind_handler(request: web.Request) -> web.Response:
    """POST /api/v1/playback/rewind - Pause and return to the first frame."""
    controller: PlaybackController = request.app["controller"]
    return result_to_response(await controller.rewind())


async def visibility_handler(request: web.Request) -> web.Response:
    """POST /api/v1/playback/visibility - Report viewer foreground state."""
    controller: PlaybackController = request.app["controller"]
    body, err = await parse_json_body(request)
    if err:
        return err
    return result_to_response(await controller.set_visibility(body["visible"]))
