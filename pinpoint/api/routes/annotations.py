import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from pinpoint.api.deps import get_annotation_service, get_current_actor, require_actor
from pinpoint.core.errors import (
    AnnotationError,
    AnnotationNotFound,
    AnnotationPermissionError,
    AnnotationValidationError,
)
from pinpoint.schemas.annotation import Actor, AnnotationCreate, AnnotationUpdate
from pinpoint.services.annotation_service import AnnotationService

router = APIRouter(prefix="/annotations", tags=["annotations"])

logger = logging.getLogger(__name__)


def _http_error(exc: AnnotationError) -> HTTPException:
    if isinstance(exc, AnnotationValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, AnnotationPermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)
    if isinstance(exc, AnnotationNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    logger.error("Unhandled annotation error kind=%s message=%s", exc.kind, exc.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)


@router.get("", summary="List annotations for an image")
async def list_annotations(
    image_id: int = Query(..., alias="imageId"),
    actor: Optional[Actor] = Depends(get_current_actor),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict[str, Any]:
    try:
        annotations = await service.list_annotations(image_id, actor)
    except AnnotationError as exc:
        raise _http_error(exc) from exc
    return {"data": [annotation.to_wire() for annotation in annotations]}


@router.post("", summary="Create an annotation", status_code=status.HTTP_201_CREATED)
async def create_annotation(
    payload: AnnotationCreate,
    actor: Actor = Depends(require_actor),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict[str, Any]:
    try:
        annotation = await service.create_annotation(payload, actor)
    except AnnotationError as exc:
        raise _http_error(exc) from exc
    return {"data": annotation.to_wire(), "message": "Annotation created successfully"}


@router.put("/{annotation_id}", summary="Update an annotation")
async def update_annotation(
    annotation_id: int,
    payload: AnnotationUpdate,
    actor: Actor = Depends(require_actor),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict[str, Any]:
    try:
        annotation = await service.update_annotation(annotation_id, payload, actor)
    except AnnotationError as exc:
        raise _http_error(exc) from exc
    return {"data": annotation.to_wire(), "message": "Annotation updated successfully"}


@router.delete("/{annotation_id}", summary="Delete an annotation")
async def delete_annotation(
    annotation_id: int,
    actor: Actor = Depends(require_actor),
    service: AnnotationService = Depends(get_annotation_service),
) -> dict[str, Any]:
    try:
        await service.delete_annotation(annotation_id, actor)
    except AnnotationError as exc:
        raise _http_error(exc) from exc
    return {"message": "Annotation deleted successfully"}
