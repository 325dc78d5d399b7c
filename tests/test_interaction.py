import pytest

from helpers import FakeGateway, make_annotation
from pinpoint.core.errors import AnnotationPermissionError, AnnotationTransportError
from pinpoint.schemas.annotation import AnnotationType
from pinpoint.services.annotation_store import AnnotationStore, QueueNotifier
from pinpoint.services.coordinates import Point, PointerEvent, Rect
from pinpoint.services.interaction import (
    IDLE,
    ActorChanged,
    CreateAnnotation,
    DeselectTool,
    EditorState,
    InteractionController,
    Mode,
    PointerDown,
    PointerUp,
    SelectAt,
    SelectTool,
    Tool,
    ToggleOverlay,
    transition,
)

RECT = Rect(0, 0, 100, 100)


def at(x, y):
    return PointerEvent(x, y)


class TestTransition:
    def test_select_tool_arms(self):
        assert transition(IDLE, SelectTool(Tool.DOT, True)).state.mode == Mode.ARMED_DOT
        assert transition(IDLE, SelectTool(Tool.ARROW, True)).state.mode == Mode.ARMED_ARROW_FIRST

    def test_select_tool_without_permission_requires_sign_in(self):
        result = transition(IDLE, SelectTool(Tool.DOT, False))
        assert result.state.mode == Mode.IDLE
        assert result.state.sign_in_required is True
        assert result.effect is None

    def test_dot_release_creates(self):
        state = EditorState(mode=Mode.ARMED_DOT)
        result = transition(state, PointerUp(Point(25, 75)))
        assert result.effect == CreateAnnotation(AnnotationType.DOT, Point(25, 75))
        assert result.state.mode == Mode.ARMED_DOT

    def test_arrow_first_press_stages_point(self):
        state = EditorState(mode=Mode.ARMED_ARROW_FIRST)
        result = transition(state, PointerDown(Point(10, 10)))
        assert result.state.mode == Mode.ARMED_ARROW_SECOND
        assert result.state.staged_point == Point(10, 10)
        assert result.state.drawing_points == (Point(10, 10),)
        assert result.effect is None

    def test_release_of_first_click_waits_for_second(self):
        state = EditorState(mode=Mode.ARMED_ARROW_SECOND, staged_point=Point(10, 10), press_pending=True)
        result = transition(state, PointerUp(Point(10.5, 10)))
        assert result.effect is None
        assert result.state.mode == Mode.ARMED_ARROW_SECOND
        assert result.state.press_pending is False

    def test_drag_completes_arrow(self):
        state = EditorState(mode=Mode.ARMED_ARROW_SECOND, staged_point=Point(10, 10), press_pending=True)
        result = transition(state, PointerUp(Point(50, 50)))
        assert result.effect == CreateAnnotation(AnnotationType.ARROW, Point(10, 10), Point(50, 50))
        assert result.state.mode == Mode.ARMED_ARROW_FIRST
        assert result.state.staged_point is None

    def test_idle_release_selects(self):
        assert transition(IDLE, PointerUp(Point(3, 4))).effect == SelectAt(Point(3, 4))

    def test_deselect_discards_staged_point(self):
        state = EditorState(mode=Mode.ARMED_ARROW_SECOND, staged_point=Point(10, 10))
        result = transition(state, DeselectTool())
        assert result.state.mode == Mode.IDLE
        assert result.state.staged_point is None

    def test_losing_permission_disarms(self):
        state = EditorState(mode=Mode.ARMED_DOT)
        result = transition(state, ActorChanged(False))
        assert result.state.mode == Mode.IDLE
        assert result.state.sign_in_required is True
        assert transition(IDLE, ActorChanged(False)).state == IDLE

    def test_toggle_overlay(self):
        assert transition(IDLE, ToggleOverlay()).state.show_annotations is False

    def test_unknown_action(self):
        with pytest.raises(TypeError):
            transition(IDLE, "click")


@pytest.fixture
async def controller(image, fake_gateway, owner):
    store = AnnotationStore(image, fake_gateway, actor=owner, notifier=QueueNotifier())
    await store.load()
    return InteractionController(store, owner)


async def test_two_clicks_create_arrow(controller, fake_gateway):
    controller.select_tool("arrow")

    assert await controller.click(at(10, 10), RECT) is None
    assert controller.mode == Mode.ARMED_ARROW_SECOND

    created = await controller.click(at(60, 40), RECT)

    assert created.type == AnnotationType.ARROW
    assert (created.x, created.y, created.end_x, created.end_y) == pytest.approx((10, 10, 60, 40))
    assert created.label == "New arrow"
    assert controller.mode == Mode.ARMED_ARROW_FIRST
    assert controller.state.staged_point is None
    assert len([call for call in fake_gateway.calls if call[0] == "create"]) == 1


async def test_dot_tool_stays_armed(controller):
    controller.select_tool(Tool.DOT)

    first = await controller.click(at(25, 75), RECT)
    second = await controller.click(at(30, 30), RECT)

    assert (first.x, first.y) == pytest.approx((25, 75))
    assert first.label == "New annotation"
    assert second.id == first.id + 1
    assert controller.mode == Mode.ARMED_DOT


async def test_click_is_normalized_against_container(controller):
    controller.select_tool("dot")
    created = await controller.click(at(300, 150), Rect(100, 50, 400, 200))
    assert (created.x, created.y) == (50, 50)


async def test_anonymous_actor_cannot_arm(image, fake_gateway):
    store = AnnotationStore(image, fake_gateway, notifier=QueueNotifier())
    controller = InteractionController(store, None)

    assert controller.select_tool("dot") == Mode.IDLE
    assert controller.state.sign_in_required is True


async def test_sign_out_disarms(controller):
    controller.select_tool("arrow")
    controller.set_actor(None)
    assert controller.mode == Mode.IDLE
    assert controller.state.sign_in_required is True
    with pytest.raises(AnnotationPermissionError):
        await controller.store.create({"type": "DOT", "x": 1, "y": 1, "label": "x"})


async def test_failed_create_keeps_tool_armed(controller, fake_gateway):
    controller.select_tool("dot")
    fake_gateway.fail_with = AnnotationTransportError()

    with pytest.raises(AnnotationTransportError):
        await controller.click(at(25, 75), RECT)

    assert controller.mode == Mode.ARMED_DOT
    assert [annotation.id for annotation in controller.store.list()] == [1, 2, 3]


async def test_idle_click_selects_annotation_under_pointer(image, owner):
    annotations = [
        make_annotation(1, x=80.0, y=20.0),
        make_annotation(2, type="ARROW", x=5.0, y=5.0, end_x=50.0, end_y=50.0),
    ]
    store = AnnotationStore(image, FakeGateway(annotations), actor=owner, notifier=QueueNotifier())
    await store.load()
    controller = InteractionController(store, owner)

    await controller.click(at(80, 20), RECT)
    assert store.selected_id == 1

    await controller.click(at(30, 30), RECT)
    assert store.selected_id == 2

    await controller.click(at(90, 90), RECT)
    assert store.selected_id is None


async def test_hidden_overlay_renders_nothing(controller):
    assert controller.shapes()
    controller.toggle_overlay()
    assert controller.shapes() == []
