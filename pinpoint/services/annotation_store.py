from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from pinpoint.core.errors import AnnotationError, AnnotationNotFound, AnnotationValidationError
from pinpoint.schemas.annotation import (
    Actor,
    Annotation,
    AnnotationCreate,
    AnnotationUpdate,
    ImageRef,
    check_geometry,
    parse_create,
    parse_update,
)
from pinpoint.services.gateway import AnnotationGateway
from pinpoint.services.permissions import Action, ensure_can_perform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    level: str
    title: str
    message: str

    def to_wire(self) -> dict[str, str]:
        return {"level": self.level, "title": self.title, "message": self.message}


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class LoggingNotifier:
    def notify(self, notification: Notification) -> None:
        level = logging.ERROR if notification.level == "error" else logging.INFO
        logger.log(level, "%s: %s", notification.title, notification.message)


class QueueNotifier:
    """Collects notifications until the caller drains them."""

    def __init__(self) -> None:
        self.pending: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.pending.append(notification)

    def drain(self) -> list[Notification]:
        drained, self.pending = self.pending, []
        return drained


class AnnotationStore:
    """Client-held annotation collection for one image.

    Local state only changes once the gateway confirms a mutation. Concurrent
    mutations against one id are not queued: whichever response arrives last
    is what the collection shows.
    """

    def __init__(
        self,
        image: ImageRef,
        gateway: AnnotationGateway,
        actor: Optional[Actor] = None,
        notifier: Optional[Notifier] = None,
        annotations: Optional[list[Annotation]] = None,
    ):
        self.image = image
        self.gateway = gateway
        self.actor = actor
        self.notifier = notifier or LoggingNotifier()
        self._annotations: dict[int, Annotation] = {}
        self._selected_id: Optional[int] = None
        self._closed = False
        for annotation in annotations or []:
            self._annotations[annotation.id] = annotation

    def list(self) -> list[Annotation]:
        return list(self._annotations.values())

    def get(self, annotation_id: int) -> Optional[Annotation]:
        return self._annotations.get(annotation_id)

    def __contains__(self, annotation_id: int) -> bool:
        return annotation_id in self._annotations

    def __len__(self) -> int:
        return len(self._annotations)

    @property
    def selected(self) -> Optional[Annotation]:
        if self._selected_id is None:
            return None
        return self._annotations.get(self._selected_id)

    @property
    def selected_id(self) -> Optional[int]:
        return self.selected.id if self.selected else None

    def select(self, annotation_id: Optional[int]) -> Optional[Annotation]:
        if annotation_id is not None and annotation_id not in self._annotations:
            logger.warning("Ignoring selection of unknown annotation_id=%s", annotation_id)
            annotation_id = None
        self._selected_id = annotation_id
        return self.selected

    def close(self) -> None:
        """Stop applying responses; requests already sent still complete."""
        self._closed = True

    def _notify(self, level: str, title: str, message: str) -> None:
        self.notifier.notify(Notification(level=level, title=title, message=message))

    def _report(self, exc: AnnotationError) -> None:
        self._notify("error", "Error", exc.message)

    def _forget(self, annotation_id: int) -> None:
        self._annotations.pop(annotation_id, None)
        if self._selected_id == annotation_id:
            self._selected_id = None

    async def load(self) -> list[Annotation]:
        try:
            annotations = await self.gateway.fetch_annotations(self.image.id)
        except AnnotationError as exc:
            self._report(exc)
            raise

        if not self._closed:
            self._annotations = {annotation.id: annotation for annotation in annotations}
            if self._selected_id not in self._annotations:
                self._selected_id = None
        return self.list()

    async def create(self, data: "AnnotationCreate | dict[str, Any]") -> Annotation:
        try:
            if isinstance(data, dict) and "imageId" not in data and "image_id" not in data:
                data = {**data, "image_id": self.image.id}
            payload = parse_create(data)
            if payload.image_id != self.image.id:
                raise AnnotationValidationError("Annotation belongs to a different image")
            ensure_can_perform(self.actor, Action.CREATE_ANNOTATION, self.image)
            annotation = await self.gateway.create_annotation(payload)
        except AnnotationError as exc:
            self._report(exc)
            raise

        if not self._closed:
            self._annotations[annotation.id] = annotation
        self._notify("success", "Success", "Annotation created successfully")
        return annotation

    async def update(self, annotation_id: int, fields: "AnnotationUpdate | dict[str, Any]") -> Annotation:
        try:
            current = self._annotations.get(annotation_id)
            if current is None:
                raise AnnotationNotFound()
            changes = parse_update(fields)
            ensure_can_perform(self.actor, Action.UPDATE_ANNOTATION, current)
            merged = changes.changes()
            check_geometry(current.type, merged.get("end_x", current.end_x), merged.get("end_y", current.end_y))
            annotation = await self.gateway.update_annotation(annotation_id, changes)
        except AnnotationNotFound as exc:
            self._forget(annotation_id)
            self._report(exc)
            raise
        except AnnotationError as exc:
            self._report(exc)
            raise

        if not self._closed:
            if annotation_id in self._annotations:
                self._annotations[annotation_id] = annotation
            else:
                logger.warning("Dropping update response for removed annotation_id=%s", annotation_id)
        self._notify("success", "Success", "Annotation updated successfully")
        return annotation

    async def delete(self, annotation_id: int) -> None:
        try:
            current = self._annotations.get(annotation_id)
            if current is None:
                raise AnnotationNotFound()
            ensure_can_perform(self.actor, Action.DELETE_ANNOTATION, current)
            await self.gateway.delete_annotation(annotation_id)
        except AnnotationNotFound as exc:
            self._forget(annotation_id)
            self._report(exc)
            raise
        except AnnotationError as exc:
            self._report(exc)
            raise

        if not self._closed:
            self._forget(annotation_id)
        self._notify("success", "Success", "Annotation deleted successfully")

    async def toggle_visibility(self, annotation_id: int) -> Optional[Annotation]:
        current = self._annotations.get(annotation_id)
        if current is None:
            logger.warning("Visibility toggle skipped for unknown annotation_id=%s", annotation_id)
            return None
        return await self.update(annotation_id, {"is_hidden": not current.is_hidden})
