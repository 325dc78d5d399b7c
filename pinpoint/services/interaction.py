"""Tool state machine for turning pointer input into new annotations.

``transition`` is a pure function over :class:`EditorState` and the action
types below; :class:`InteractionController` runs it and carries out the
effects it returns against an :class:`AnnotationStore`.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from pinpoint.core.config import settings
from pinpoint.core.errors import AnnotationPermissionError
from pinpoint.schemas.annotation import Actor, Annotation, AnnotationType
from pinpoint.services.annotation_store import AnnotationStore
from pinpoint.services.coordinates import Dimensions, Point, PointerEvent, Rect, to_normalized
from pinpoint.services.geometry import distance
from pinpoint.services.permissions import Action, can_perform
from pinpoint.services.render import OverlayShape, annotation_at, render_overlay

logger = logging.getLogger(__name__)


class Tool(str, Enum):
    DOT = "dot"
    ARROW = "arrow"


class Mode(str, Enum):
    IDLE = "idle"
    ARMED_DOT = "armed-dot"
    ARMED_ARROW_FIRST = "armed-arrow-first"
    ARMED_ARROW_SECOND = "armed-arrow-second"


@dataclass(frozen=True)
class EditorState:
    mode: Mode = Mode.IDLE
    staged_point: Optional[Point] = None
    # True while the press that staged the start point has not been released.
    press_pending: bool = False
    show_annotations: bool = True
    sign_in_required: bool = False

    @property
    def tool(self) -> Optional[Tool]:
        if self.mode == Mode.ARMED_DOT:
            return Tool.DOT
        if self.mode in (Mode.ARMED_ARROW_FIRST, Mode.ARMED_ARROW_SECOND):
            return Tool.ARROW
        return None

    @property
    def drawing_points(self) -> tuple[Point, ...]:
        return (self.staged_point,) if self.staged_point is not None else ()


@dataclass(frozen=True)
class SelectTool:
    tool: Tool
    can_create: bool


@dataclass(frozen=True)
class DeselectTool:
    pass


@dataclass(frozen=True)
class PointerDown:
    point: Point


@dataclass(frozen=True)
class PointerUp:
    point: Point


@dataclass(frozen=True)
class ToggleOverlay:
    pass


@dataclass(frozen=True)
class ActorChanged:
    can_create: bool


EditorAction = Union[SelectTool, DeselectTool, PointerDown, PointerUp, ToggleOverlay, ActorChanged]


@dataclass(frozen=True)
class CreateAnnotation:
    type: AnnotationType
    start: Point
    end: Optional[Point] = None


@dataclass(frozen=True)
class SelectAt:
    point: Point


Effect = Union[CreateAnnotation, SelectAt]


@dataclass(frozen=True)
class Transition:
    state: EditorState
    effect: Optional[Effect] = None


IDLE = EditorState()


def transition(state: EditorState, action: EditorAction, drag_threshold: float = settings.drag_threshold) -> Transition:
    if isinstance(action, SelectTool):
        if not action.can_create:
            return Transition(replace(state, mode=Mode.IDLE, staged_point=None, press_pending=False, sign_in_required=True))
        mode = Mode.ARMED_DOT if action.tool == Tool.DOT else Mode.ARMED_ARROW_FIRST
        return Transition(replace(state, mode=mode, staged_point=None, press_pending=False, sign_in_required=False))

    if isinstance(action, DeselectTool):
        return Transition(replace(state, mode=Mode.IDLE, staged_point=None, press_pending=False))

    if isinstance(action, ActorChanged):
        if action.can_create or state.mode == Mode.IDLE:
            return Transition(state)
        return Transition(replace(state, mode=Mode.IDLE, staged_point=None, press_pending=False, sign_in_required=True))

    if isinstance(action, ToggleOverlay):
        return Transition(replace(state, show_annotations=not state.show_annotations))

    if isinstance(action, PointerDown):
        if state.mode == Mode.ARMED_ARROW_FIRST:
            return Transition(replace(state, mode=Mode.ARMED_ARROW_SECOND, staged_point=action.point, press_pending=True))
        return Transition(state)

    if isinstance(action, PointerUp):
        if state.mode == Mode.IDLE:
            return Transition(state, SelectAt(action.point))
        if state.mode == Mode.ARMED_DOT:
            return Transition(state, CreateAnnotation(AnnotationType.DOT, action.point))
        if state.mode == Mode.ARMED_ARROW_SECOND:
            start = state.staged_point
            if state.press_pending and distance(start, action.point) < drag_threshold:
                # Release of the first click; wait for the second one.
                return Transition(replace(state, press_pending=False))
            completed = replace(state, mode=Mode.ARMED_ARROW_FIRST, staged_point=None, press_pending=False)
            return Transition(completed, CreateAnnotation(AnnotationType.ARROW, start, action.point))
        return Transition(state)

    raise TypeError(f"Unsupported editor action: {action!r}")


class InteractionController:
    def __init__(
        self,
        store: AnnotationStore,
        actor: Optional[Actor] = None,
        *,
        dot_label: str = settings.default_dot_label,
        arrow_label: str = settings.default_arrow_label,
        drag_threshold: float = settings.drag_threshold,
    ):
        self.store = store
        self.actor = actor
        self.dot_label = dot_label
        self.arrow_label = arrow_label
        self.drag_threshold = drag_threshold
        self.state = IDLE
        self.container: Optional[Rect] = None

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def dimensions(self) -> Optional[Dimensions]:
        if self.container is None or self.container.width <= 0 or self.container.height <= 0:
            return None
        return Dimensions(self.container.width, self.container.height)

    def set_container(self, container: Optional[Rect]) -> None:
        if container is not None:
            self.container = container

    def _can_create(self) -> bool:
        return can_perform(self.actor, Action.CREATE_ANNOTATION, self.store.image)

    def _apply(self, action: EditorAction) -> Optional[Effect]:
        result = transition(self.state, action, self.drag_threshold)
        self.state = result.state
        return result.effect

    def select_tool(self, tool: Optional[Tool | str]) -> Mode:
        if tool is None:
            self._apply(DeselectTool())
            return self.mode
        self._apply(SelectTool(Tool(tool), self._can_create()))
        if self.state.sign_in_required:
            logger.info("Tool selection refused for actor=%s", self.actor.id if self.actor else None)
        return self.mode

    def set_actor(self, actor: Optional[Actor]) -> None:
        self.actor = actor
        self.store.actor = actor
        self._apply(ActorChanged(self._can_create()))

    def toggle_overlay(self) -> bool:
        self._apply(ToggleOverlay())
        return self.state.show_annotations

    async def pointer_down(self, event: PointerEvent, container: Optional[Rect]) -> Optional[Annotation]:
        self.set_container(container)
        return await self._run(self._apply(PointerDown(to_normalized(event, container))))

    async def pointer_up(self, event: PointerEvent, container: Optional[Rect]) -> Optional[Annotation]:
        self.set_container(container)
        return await self._run(self._apply(PointerUp(to_normalized(event, container))))

    async def click(self, event: PointerEvent, container: Optional[Rect]) -> Optional[Annotation]:
        created = await self.pointer_down(event, container)
        return created or await self.pointer_up(event, container)

    async def _run(self, effect: Optional[Effect]) -> Optional[Annotation]:
        if isinstance(effect, SelectAt):
            self.store.select(annotation_at(self.shapes(), effect.point, self.dimensions or Dimensions(100, 100)))
            return None

        if isinstance(effect, CreateAnnotation):
            if not self._can_create():
                self._apply(ActorChanged(False))
                raise AnnotationPermissionError("Sign in to annotate")
            payload = {"type": effect.type, "x": effect.start.x, "y": effect.start.y, "label": self.dot_label}
            if effect.type == AnnotationType.ARROW:
                payload.update(end_x=effect.end.x, end_y=effect.end.y, label=self.arrow_label)
            return await self.store.create(payload)

        return None

    def shapes(self) -> list[OverlayShape]:
        return render_overlay(
            self.store.list(),
            show_annotations=self.state.show_annotations,
            selected_id=self.store.selected_id,
            drawing_points=self.state.drawing_points,
        )
