"""Transports between an :class:`AnnotationStore` and the persistence side."""

import logging
from typing import Any, Optional, Protocol

import httpx

from pinpoint.core.errors import (
    AnnotationNotFound,
    AnnotationPermissionError,
    AnnotationTransportError,
    AnnotationValidationError,
)
from pinpoint.schemas.annotation import Actor, Annotation, AnnotationCreate, AnnotationUpdate
from pinpoint.services.annotation_service import AnnotationService

logger = logging.getLogger(__name__)


class AnnotationGateway(Protocol):
    async def fetch_annotations(self, image_id: int) -> list[Annotation]: ...

    async def create_annotation(self, data: AnnotationCreate) -> Annotation: ...

    async def update_annotation(self, annotation_id: int, fields: AnnotationUpdate) -> Annotation: ...

    async def delete_annotation(self, annotation_id: int) -> None: ...


class ServiceAnnotationGateway:
    """In-process gateway bound to one actor."""

    def __init__(self, service: AnnotationService, actor: Optional[Actor]):
        self.service = service
        self.actor = actor

    async def fetch_annotations(self, image_id: int) -> list[Annotation]:
        return await self.service.list_annotations(image_id, self.actor)

    async def create_annotation(self, data: AnnotationCreate) -> Annotation:
        return await self.service.create_annotation(data, self.actor)

    async def update_annotation(self, annotation_id: int, fields: AnnotationUpdate) -> Annotation:
        return await self.service.update_annotation(annotation_id, fields, self.actor)

    async def delete_annotation(self, annotation_id: int) -> None:
        await self.service.delete_annotation(annotation_id, self.actor)


def _error_detail(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return body.get("detail") or body.get("error") or body
    return body


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return

    detail = _error_detail(response)
    code = response.status_code
    if code in (400, 422):
        if isinstance(detail, list):
            messages = [str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail]
            raise AnnotationValidationError(messages)
        raise AnnotationValidationError(str(detail))
    if code in (401, 403):
        raise AnnotationPermissionError(str(detail))
    if code == 404:
        raise AnnotationNotFound(str(detail))
    raise AnnotationTransportError(f"Server responded with {code}: {detail}")


class HttpAnnotationGateway:
    """Talks to the ``/annotations`` REST routes through an ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, token: Optional[str] = None):
        self.client = client
        self.token = token

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Annotation request failed method=%s url=%s error=%s", method, url, exc)
            raise AnnotationTransportError(str(exc)) from exc
        _raise_for_status(response)
        return response

    async def fetch_annotations(self, image_id: int) -> list[Annotation]:
        response = await self._request("GET", "/annotations", params={"imageId": image_id})
        return [Annotation.model_validate(item) for item in response.json()["data"]]

    async def create_annotation(self, data: AnnotationCreate) -> Annotation:
        payload = data.model_dump(mode="json", by_alias=True)
        response = await self._request("POST", "/annotations", json=payload)
        return Annotation.model_validate(response.json()["data"])

    async def update_annotation(self, annotation_id: int, fields: AnnotationUpdate) -> Annotation:
        response = await self._request("PUT", f"/annotations/{annotation_id}", json=fields.to_wire())
        return Annotation.model_validate(response.json()["data"])

    async def delete_annotation(self, annotation_id: int) -> None:
        await self._request("DELETE", f"/annotations/{annotation_id}")
