from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pinpoint.core.auth import decode_token, user_id_from_claims
from pinpoint.core.errors import AnnotationPermissionError
from pinpoint.schemas.annotation import Actor
from pinpoint.services.annotation_service import AnnotationService

bearer_scheme = HTTPBearer(auto_error=False)


def get_annotation_service(request: Request) -> AnnotationService:
    return request.app.state.annotation_service


async def resolve_token_actor(service: AnnotationService, token: str) -> Optional[Actor]:
    claims = decode_token(token)
    try:
        return await service.resolve_actor(user_id_from_claims(claims))
    except AnnotationPermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    service: AnnotationService = Depends(get_annotation_service),
) -> Optional[Actor]:
    """Actor behind the bearer token, or ``None`` for anonymous requests."""
    if credentials is None:
        return None
    return await resolve_token_actor(service, credentials.credentials)


async def require_actor(actor: Optional[Actor] = Depends(get_current_actor)) -> Actor:
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return actor
