"""Slot Routes - inspect, clear and disconnect slots."""

from aiohttp import web

from ..controller import PlaybackController
from ..middleware import result_to_response


def setup_slot_routes(app: web.Application, controller: PlaybackController) -> None:
    """Register slot routes."""
    app.router.add_get("/api/v1/slots", list_slots_handler)
    app.router.add_get("/api/v1/slots/{slot}/frame", slot_frame_handler)
    app.router.add_delete("/api/v1/slots/{slot}", clear_slot_handler)
    app.router.add_post("/api/v1/slots/{slot}/disconnect", disconnect_slot_handler)


def _slot_index(request: web.Request) -> int:
    raw = request.match_info["slot"]
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"slot index must be an integer, got {raw!r}") from None


async def list_slots_handler(request: web.Request) -> web.Response:
    """GET /api/v1/slots - Every slot's status."""
    controller: PlaybackController = request.app["controller"]
    return web.json_response(await controller.list_slots())


async def slot_frame_handler(request: web.Request) -> web.Response:
    """GET /api/v1/slots/{slot}/frame - Frame shown at the current cursor."""
    controller: PlaybackController = request.app["controller"]
    slot = _slot_index(request)
    result = await controller.get_slot_frame(slot)
    return result_to_response(result, "SLOT_EMPTY", f"Slot {slot} is empty")


async def clear_slot_handler(request: web.Request) -> web.Response:
    """DELETE /api/v1/slots/{slot} - Empty a slot, closing its stream."""
    controller: PlaybackController = request.app["controller"]
    slot = _slot_index(request)
    result = await controller.clear_slot(slot)
    return result_to_response(result, "SLOT_EMPTY", f"Slot {slot} is empty")


async def disconnect_slot_handler(request: web.Request) -> web.Response:
    """POST /api/v1/slots/{slot}/disconnect - Stop a stream, keep its frames."""
    controller: PlaybackController = request.app["controller"]
    slot = _slot_index(request)
    result = await controller.disconnect_slot(slot)
    return result_to_response(result, "SLOT_EMPTY", f"Slot {slot} is empty")
