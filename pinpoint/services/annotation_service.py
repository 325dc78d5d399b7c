import asyncio
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pinpoint.core.errors import AnnotationNotFound, AnnotationPermissionError, AnnotationTransportError
from pinpoint.models.annotation import Annotation as AnnotationRow
from pinpoint.models.image import Image as ImageRow
from pinpoint.models.user import User as UserRow
from pinpoint.schemas.annotation import (
    Actor,
    Annotation,
    AnnotationCreate,
    AnnotationType,
    AnnotationUpdate,
    ImageRef,
    Role,
    check_geometry,
)
from pinpoint.services.permissions import Action, can_view_image, ensure_can_perform

logger = logging.getLogger(__name__)


def serialize_annotation(row: AnnotationRow) -> Annotation:
    return Annotation.model_validate(row)


def serialize_image(row: ImageRow) -> ImageRef:
    return ImageRef(
        id=row.id,
        url=row.url,
        owner_id=row.user_id,
        is_public=row.is_public,
        width=row.width,
        height=row.height,
    )


class AnnotationService:
    """Persistence side of the annotation core.

    Each operation opens its own session and runs in a worker thread so the
    event loop stays responsive during the round-trip.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _load_image(self, session: Session, image_id: int) -> ImageRef:
        row = session.get(ImageRow, image_id)
        if row is None:
            raise AnnotationNotFound("Image not found")
        return serialize_image(row)

    def _load_annotation(self, session: Session, annotation_id: int) -> AnnotationRow:
        row = session.get(AnnotationRow, annotation_id)
        if row is None:
            raise AnnotationNotFound()
        return row

    def _resolve_actor_sync(self, user_id: int) -> Optional[Actor]:
        session = self.session_factory()
        try:
            user = session.get(UserRow, user_id)
            if user is None:
                return None
            if user.is_banned:
                raise AnnotationPermissionError("This account has been banned")
            return Actor(id=user.id, role=Role(user.role))
        finally:
            session.close()

    def _get_image_sync(self, image_id: int) -> ImageRef:
        session = self.session_factory()
        try:
            return self._load_image(session, image_id)
        finally:
            session.close()

    def _list_annotations_sync(self, image_id: int, actor: Optional[Actor]) -> list[Annotation]:
        session = self.session_factory()
        try:
            image = self._load_image(session, image_id)
            if not can_view_image(actor, image):
                raise AnnotationPermissionError("No access to this image")

            stmt = (
                select(AnnotationRow)
                .where(AnnotationRow.image_id == image_id)
                .order_by(AnnotationRow.created_at, AnnotationRow.id)
            )
            return [serialize_annotation(row) for row in session.scalars(stmt)]
        except SQLAlchemyError as exc:
            logger.exception("Listing annotations failed image_id=%s", image_id)
            raise AnnotationTransportError("Database error") from exc
        finally:
            session.close()

    def _create_annotation_sync(self, data: AnnotationCreate, actor: Optional[Actor]) -> Annotation:
        ensure_can_perform(actor, Action.CREATE_ANNOTATION)

        session = self.session_factory()
        try:
            image = self._load_image(session, data.image_id)
            if not can_view_image(actor, image):
                raise AnnotationPermissionError("No access to this image")

            row = AnnotationRow(
                type=data.type.value,
                x=data.x,
                y=data.y,
                end_x=data.end_x,
                end_y=data.end_y,
                label=data.label,
                description=data.description,
                is_hidden=False,
                image_id=data.image_id,
                user_id=actor.id,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return serialize_annotation(row)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Annotation write failed")
            raise AnnotationTransportError("Database error") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _update_annotation_sync(
        self, annotation_id: int, fields: AnnotationUpdate, actor: Optional[Actor]
    ) -> Annotation:
        session = self.session_factory()
        try:
            row = self._load_annotation(session, annotation_id)
            ensure_can_perform(actor, Action.UPDATE_ANNOTATION, {"user_id": row.user_id})

            changes = fields.changes()
            check_geometry(
                AnnotationType(row.type),
                changes.get("end_x", row.end_x),
                changes.get("end_y", row.end_y),
            )
            for name, value in changes.items():
                setattr(row, name, value)

            session.commit()
            session.refresh(row)
            return serialize_annotation(row)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Annotation write failed")
            raise AnnotationTransportError("Database error") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _delete_annotation_sync(self, annotation_id: int, actor: Optional[Actor]) -> Annotation:
        session = self.session_factory()
        try:
            row = self._load_annotation(session, annotation_id)
            ensure_can_perform(actor, Action.DELETE_ANNOTATION, {"user_id": row.user_id})

            deleted = serialize_annotation(row)
            session.delete(row)
            session.commit()
            return deleted
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Annotation write failed")
            raise AnnotationTransportError("Database error") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    async def resolve_actor(self, user_id: int) -> Optional[Actor]:
        return await asyncio.to_thread(self._resolve_actor_sync, user_id)

    async def get_image(self, image_id: int) -> ImageRef:
        return await asyncio.to_thread(self._get_image_sync, image_id)

    async def list_annotations(self, image_id: int, actor: Optional[Actor]) -> list[Annotation]:
        return await asyncio.to_thread(self._list_annotations_sync, image_id, actor)

    async def create_annotation(self, data: AnnotationCreate, actor: Optional[Actor]) -> Annotation:
        annotation = await asyncio.to_thread(self._create_annotation_sync, data, actor)
        logger.info(
            "Annotation created annotation_id=%s image_id=%s user_id=%s",
            annotation.id,
            annotation.image_id,
            annotation.user_id,
        )
        return annotation

    async def update_annotation(
        self, annotation_id: int, fields: AnnotationUpdate, actor: Optional[Actor]
    ) -> Annotation:
        annotation = await asyncio.to_thread(self._update_annotation_sync, annotation_id, fields, actor)
        logger.info("Annotation updated annotation_id=%s user_id=%s", annotation_id, actor.id if actor else None)
        return annotation

    async def delete_annotation(self, annotation_id: int, actor: Optional[Actor]) -> Annotation:
        deleted = await asyncio.to_thread(self._delete_annotation_sync, annotation_id, actor)
        logger.info("Annotation deleted annotation_id=%s user_id=%s", annotation_id, actor.id if actor else None)
        return deleted
