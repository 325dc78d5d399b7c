import math
from dataclasses import dataclass
from html import escape
from typing import Sequence

from pinpoint.services.coordinates import Dimensions, Point, Rect

HEAD_ANGLE = math.pi / 6
LABEL_BOX_WIDTH = 80.0
LABEL_BOX_HEIGHT = 20.0
LABEL_BASELINE_OFFSET = 5.0


@dataclass(frozen=True)
class ArrowStyle:
    head_size: float = 10.0
    stroke_width: float = 2.0


@dataclass(frozen=True)
class ArrowPath:
    start: Point
    end: Point
    head_left: Point
    head_right: Point
    stroke_width: float

    @property
    def d(self) -> str:
        """SVG path data: the shaft, then both head strokes meeting at ``end``."""
        return (
            f"M {_fmt(self.start.x)},{_fmt(self.start.y)} "
            f"L {_fmt(self.end.x)},{_fmt(self.end.y)} "
            f"M {_fmt(self.head_left.x)},{_fmt(self.head_left.y)} "
            f"L {_fmt(self.end.x)},{_fmt(self.end.y)} "
            f"L {_fmt(self.head_right.x)},{_fmt(self.head_right.y)}"
        )


def _fmt(value: float) -> str:
    rounded = round(value, 4)
    if rounded == 0:
        rounded = 0.0
    return f"{rounded:g}"


def distance(p1: Point, p2: Point) -> float:
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


def is_nearby(p1: Point, p2: Point, radius: float) -> bool:
    return distance(p1, p2) <= radius


def midpoint(p1: Point, p2: Point) -> Point:
    return Point((p1.x + p2.x) / 2, (p1.y + p2.y) / 2)


def arrow_head(start: Point, end: Point, head_size: float) -> tuple[Point, Point]:
    if start.x == end.x and start.y == end.y:
        return end, end

    angle = math.atan2(end.y - start.y, end.x - start.x)
    left = Point(
        end.x - head_size * math.cos(angle - HEAD_ANGLE),
        end.y - head_size * math.sin(angle - HEAD_ANGLE),
    )
    right = Point(
        end.x - head_size * math.cos(angle + HEAD_ANGLE),
        end.y - head_size * math.sin(angle + HEAD_ANGLE),
    )
    return left, right


def arrow_path(start: Point, end: Point, style: ArrowStyle | None = None) -> ArrowPath:
    style = style or ArrowStyle()
    left, right = arrow_head(start, end, style.head_size)
    return ArrowPath(start=start, end=end, head_left=left, head_right=right, stroke_width=style.stroke_width)


def curved_path(points: Sequence[Point], tension: float = 0.5) -> str:
    """Cubic path through ``points``; ``tension`` offsets control points along x."""
    if len(points) < 2:
        return ""

    tension = max(0.0, min(1.0, tension))
    first = points[0]
    parts = [f"M {_fmt(first.x)},{_fmt(first.y)}"]

    for current, following in zip(points, points[1:]):
        span = following.x - current.x
        control1 = Point(current.x + span * tension, current.y)
        control2 = Point(following.x - span * tension, following.y)
        parts.append(
            f"C {_fmt(control1.x)},{_fmt(control1.y)} "
            f"{_fmt(control2.x)},{_fmt(control2.y)} "
            f"{_fmt(following.x)},{_fmt(following.y)}"
        )

    return " ".join(parts)


def segment_distance(point: Point, start: Point, end: Point) -> float:
    """Shortest distance from ``point`` to the segment ``start``-``end``."""
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return distance(point, start)

    t = ((point.x - start.x) * dx + (point.y - start.y) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return distance(point, Point(start.x + t * dx, start.y + t * dy))


def label_position(point: Point, label_width: float, label_height: float, surface: Dimensions) -> Point:
    """Place a label box at ``point`` flipped back inside ``surface`` when it would overflow."""
    x, y = point.x, point.y

    if x + label_width > surface.width:
        x -= label_width
    if y + label_height > surface.height:
        y -= label_height

    return Point(max(0.0, x), max(0.0, y))


@dataclass(frozen=True)
class LabelledLine:
    start: Point
    end: Point
    label: str
    box: Rect
    text_anchor: Point

    def svg(
        self,
        *,
        color: str = "#3B82F6",
        background: str = "#FFFFFF",
        stroke_width: float = 2.0,
        font_size: float = 12.0,
    ) -> str:
        return (
            f'<line x1="{_fmt(self.start.x)}" y1="{_fmt(self.start.y)}" '
            f'x2="{_fmt(self.end.x)}" y2="{_fmt(self.end.y)}" '
            f'stroke="{color}" stroke-width="{stroke_width:g}" />'
            f'<rect x="{_fmt(self.box.left)}" y="{_fmt(self.box.top)}" '
            f'width="{_fmt(self.box.width)}" height="{_fmt(self.box.height)}" fill="{background}" rx="4" />'
            f'<text x="{_fmt(self.text_anchor.x)}" y="{_fmt(self.text_anchor.y)}" text-anchor="middle" '
            f'font-size="{font_size:g}" fill="{color}">{escape(self.label)}</text>'
        )


def labelled_line(
    start: Point,
    end: Point,
    label: str,
    box_width: float = LABEL_BOX_WIDTH,
    box_height: float = LABEL_BOX_HEIGHT,
) -> LabelledLine:
    """Line from ``start`` to ``end`` with a label box centred on its midpoint."""
    centre = midpoint(start, end)
    box = Rect(centre.x - box_width / 2, centre.y - box_height / 2, box_width, box_height)
    return LabelledLine(
        start=start,
        end=end,
        label=label,
        box=box,
        text_anchor=Point(centre.x, centre.y + LABEL_BASELINE_OFFSET),
    )
