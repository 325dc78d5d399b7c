from enum import Enum
from typing import Any, Optional

from pinpoint.core.errors import AnnotationPermissionError
from pinpoint.schemas.annotation import Actor, Role


class Action(str, Enum):
    CREATE_ANNOTATION = "create:annotation"
    UPDATE_ANNOTATION = "update:annotation"
    DELETE_ANNOTATION = "delete:annotation"
    UPDATE_IMAGE = "update:image"


_ACTION_ALIASES = {
    "edit:annotation": Action.UPDATE_ANNOTATION,
    "edit:image": Action.UPDATE_IMAGE,
}


def _resolve_action(action: "Action | str") -> Optional[Action]:
    if isinstance(action, Action):
        return action
    if action in _ACTION_ALIASES:
        return _ACTION_ALIASES[action]
    try:
        return Action(action)
    except ValueError:
        return None


def _attribute(resource: Any, *names: str) -> Any:
    if resource is None:
        return None
    for name in names:
        if isinstance(resource, dict):
            if resource.get(name) is not None:
                return resource[name]
        elif getattr(resource, name, None) is not None:
            return getattr(resource, name)
    return None


def _is_author(resource: Any, actor_id: int) -> bool:
    creator = _attribute(resource, "created_by", "createdBy")
    return actor_id in (_attribute(resource, "user_id", "userId"), _attribute(creator, "id"))


def _owner_id(resource: Any) -> Any:
    # ImageRef exposes owner_id; image rows and legacy payloads carry user_id.
    return _attribute(resource, "owner_id", "ownerId", "user_id", "userId")


def can_perform(actor: Optional[Actor], action: "Action | str", resource: Any = None) -> bool:
    """Decide whether ``actor`` may perform ``action`` on ``resource``.

    Evaluated on every call: roles and ownership can change between renders.
    The server re-checks the same rules before accepting a write, so a
    ``False`` here only hides an affordance.
    """
    if actor is None:
        return False
    if actor.role == Role.ADMIN:
        return True

    resolved = _resolve_action(action)
    if resolved == Action.CREATE_ANNOTATION:
        return True
    if resolved in (Action.UPDATE_ANNOTATION, Action.DELETE_ANNOTATION):
        return _is_author(resource, actor.id)
    if resolved == Action.UPDATE_IMAGE:
        return _owner_id(resource) == actor.id
    return False


def ensure_can_perform(actor: Optional[Actor], action: "Action | str", resource: Any = None) -> None:
    if not can_perform(actor, action, resource):
        if actor is None:
            raise AnnotationPermissionError("You must be signed in to do that")
        raise AnnotationPermissionError()


def can_view_image(actor: Optional[Actor], image: Any) -> bool:
    if _attribute(image, "is_public", "isPublic"):
        return True
    if actor is None:
        return False
    return actor.role == Role.ADMIN or _owner_id(image) == actor.id
