"""Conversion between pointer positions and image-relative percentages.

Annotations are stored as percentages (0-100) of the displayed image's width
and height so they stay anchored whatever size the image is rendered at.
"""

from typing import NamedTuple, Optional


class Point(NamedTuple):
    x: float
    y: float


class Rect(NamedTuple):
    """Rendered bounding box of the image container, in viewport pixels."""

    left: float
    top: float
    width: float
    height: float


class Dimensions(NamedTuple):
    width: float
    height: float


class PointerEvent(NamedTuple):
    client_x: float
    client_y: float


ORIGIN = Point(0.0, 0.0)


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def to_normalized(event: PointerEvent, container: Optional[Rect]) -> Point:
    # An unmounted container must not break the gesture pipeline.
    if container is None or container.width <= 0 or container.height <= 0:
        return ORIGIN

    x = (event.client_x - container.left) / container.width * 100
    y = (event.client_y - container.top) / container.height * 100
    return Point(clamp_percent(x), clamp_percent(y))


def to_viewport(point: Point, dimensions: Dimensions) -> Point:
    return Point(point.x / 100 * dimensions.width, point.y / 100 * dimensions.height)


def from_viewport(point: Point, dimensions: Dimensions) -> Point:
    """Percentage position of a pixel offset inside a surface of ``dimensions``."""
    if dimensions.width <= 0 or dimensions.height <= 0:
        return ORIGIN
    return Point(point.x / dimensions.width * 100, point.y / dimensions.height * 100)


def rect_from_payload(payload: Optional[dict]) -> Optional[Rect]:
    if not payload:
        return None
    try:
        return Rect(
            float(payload["left"]),
            float(payload["top"]),
            float(payload["width"]),
            float(payload["height"]),
        )
    except (KeyError, TypeError, ValueError):
        return None
