import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from pinpoint.api.deps import resolve_token_actor
from pinpoint.core.errors import AnnotationError
from pinpoint.schemas.annotation import Actor
from pinpoint.services.annotation_store import AnnotationStore, QueueNotifier
from pinpoint.services.coordinates import PointerEvent, rect_from_payload
from pinpoint.services.gateway import ServiceAnnotationGateway
from pinpoint.services.interaction import InteractionController
from pinpoint.services.permissions import can_view_image
from pinpoint.services.render import overlay_to_svg

router = APIRouter(prefix="/ws", tags=["editor"])
logger = logging.getLogger(__name__)


def _pointer(payload: dict[str, Any]) -> PointerEvent:
    return PointerEvent(float(payload.get("clientX", 0)), float(payload.get("clientY", 0)))


def _annotation_id(payload: dict[str, Any]) -> Optional[int]:
    raw = payload.get("id", payload.get("annotationId"))
    if raw is None:
        return None
    return int(raw)


def _state_message(controller: InteractionController) -> dict[str, Any]:
    state = controller.state
    store = controller.store
    return {
        "type": "state",
        "imageId": store.image.id,
        "mode": state.mode.value,
        "stagedPoint": state.staged_point._asdict() if state.staged_point else None,
        "selectedId": store.selected_id,
        "showAnnotations": state.show_annotations,
        "signInRequired": state.sign_in_required,
        "annotations": [annotation.to_wire() for annotation in store.list()],
        "svg": overlay_to_svg(controller.shapes(), dimensions=controller.dimensions),
    }


async def _handle(controller: InteractionController, event_type: str, payload: dict[str, Any]) -> Optional[dict]:
    store = controller.store
    rect = rect_from_payload(payload.get("rect"))

    if event_type == "tool:select":
        controller.select_tool(payload.get("tool"))
    elif event_type == "tool:clear":
        controller.select_tool(None)
    elif event_type == "pointer:down":
        return _created(await controller.pointer_down(_pointer(payload), rect))
    elif event_type == "pointer:up":
        return _created(await controller.pointer_up(_pointer(payload), rect))
    elif event_type == "pointer:click":
        return _created(await controller.click(_pointer(payload), rect))
    elif event_type == "annotation:list":
        await store.load()
    elif event_type == "annotation:update":
        fields = {key: value for key, value in payload.items() if key not in ("id", "annotationId")}
        annotation = await store.update(_required_id(payload), fields)
        return {"type": "ack", "event": event_type, "annotation": annotation.to_wire()}
    elif event_type == "annotation:delete":
        annotation_id = _required_id(payload)
        await store.delete(annotation_id)
        return {"type": "ack", "event": event_type, "annotationId": annotation_id}
    elif event_type == "annotation:toggle":
        annotation = await store.toggle_visibility(_required_id(payload))
        return {"type": "ack", "event": event_type, "annotation": annotation.to_wire() if annotation else None}
    elif event_type == "selection:update":
        store.select(_required_id(payload))
    elif event_type == "selection:clear":
        store.select(None)
    elif event_type == "overlay:toggle":
        controller.toggle_overlay()
    elif event_type == "viewport:update":
        controller.set_container(rect)
    else:
        raise ValueError(f"Unsupported event type: {event_type}")
    return None


def _created(annotation) -> Optional[dict]:
    if annotation is None:
        return None
    return {"type": "ack", "event": "annotation:create", "annotation": annotation.to_wire()}


def _parse_message(raw: str) -> tuple[Optional[str], dict[str, Any]]:
    message = json.loads(raw)
    if not isinstance(message, dict):
        raise ValueError("Message must be a JSON object")
    payload = message.get("payload") or {}
    if not isinstance(payload, dict):
        raise ValueError("Message payload must be a JSON object")
    return message.get("type"), payload


def _required_id(payload: dict[str, Any]) -> int:
    annotation_id = _annotation_id(payload)
    if annotation_id is None:
        raise ValueError("Annotation id is required")
    return annotation_id


@router.websocket("/images/{image_id}")
async def image_editor(websocket: WebSocket, image_id: int, token: str | None = None):
    service = websocket.app.state.annotation_service
    actor: Optional[Actor] = None

    if token:
        try:
            actor = await resolve_token_actor(service, token)
        except HTTPException as exc:
            logger.info("Editor closing for image_id=%s: %s", image_id, exc.detail)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    try:
        image = await service.get_image(image_id)
    except AnnotationError as exc:
        logger.info("Editor closing for image_id=%s: %s", image_id, exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    if not can_view_image(actor, image):
        logger.info("Editor closing: actor=%s cannot view image_id=%s", actor.id if actor else None, image_id)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    notifier = QueueNotifier()
    store = AnnotationStore(image, ServiceAnnotationGateway(service, actor), actor=actor, notifier=notifier)
    controller = InteractionController(store, actor)
    logger.info("Editor opened image_id=%s actor=%s", image_id, actor.id if actor else None)

    try:
        await store.load()
        await websocket.send_json(_state_message(controller))

        while True:
            raw = await websocket.receive_text()
            event_type = None

            try:
                event_type, payload = _parse_message(raw)
                reply = await _handle(controller, event_type, payload)
            except AnnotationError as exc:
                reply = {"type": "error", "event": event_type, "kind": exc.kind, "message": exc.message}
            except (TypeError, ValueError) as exc:
                reply = {"type": "error", "event": event_type, "kind": "validation", "message": str(exc)}

            if reply is not None:
                await websocket.send_json(reply)
            for notification in notifier.drain():
                await websocket.send_json({"type": "notification", **notification.to_wire()})
            await websocket.send_json(_state_message(controller))
    except WebSocketDisconnect:
        pass
    finally:
        store.close()
        logger.info("Editor closed image_id=%s actor=%s", image_id, actor.id if actor else None)
