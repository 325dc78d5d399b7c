"""Overlay drawing for an image's annotations.

Everything here reads state and returns shapes or markup; selection clicks
are resolved to an annotation id and handed back to the caller.
"""

from dataclasses import dataclass
from html import escape
from typing import Iterable, Optional, Sequence

from pinpoint.core.config import settings
from pinpoint.schemas.annotation import Annotation, AnnotationType
from pinpoint.services.coordinates import Dimensions, Point, from_viewport, to_viewport
from pinpoint.services.geometry import (
    LABEL_BASELINE_OFFSET,
    LABEL_BOX_HEIGHT,
    LABEL_BOX_WIDTH,
    ArrowStyle,
    arrow_path,
    is_nearby,
    label_position,
    labelled_line,
    segment_distance,
)

DOT = "dot"
ARROW = "arrow"
DRAWING = "drawing"


@dataclass(frozen=True)
class RenderStyle:
    dot_radius: float = settings.dot_radius
    stroke_width: float = settings.arrow_stroke_width
    head_size: float = settings.arrow_head_size
    hidden_opacity: float = settings.hidden_opacity
    color: str = "#374151"
    selected_color: str = "#3B82F6"
    marker_id: str = "arrowhead"
    label_background: str = "#FFFFFF"
    font_size: float = 12.0


@dataclass(frozen=True)
class OverlayShape:
    kind: str
    start: Point
    end: Optional[Point] = None
    annotation_id: Optional[int] = None
    label: str = ""
    opacity: float = 1.0
    selected: bool = False
    color: str = RenderStyle.color


def render_overlay(
    annotations: Iterable[Annotation],
    *,
    show_annotations: bool = True,
    selected_id: Optional[int] = None,
    drawing_points: Sequence[Point] = (),
    style: Optional[RenderStyle] = None,
) -> list[OverlayShape]:
    if not show_annotations:
        return []

    style = style or RenderStyle()
    shapes: list[OverlayShape] = []

    for annotation in annotations:
        selected = annotation.id == selected_id
        common = dict(
            annotation_id=annotation.id,
            label=annotation.label,
            opacity=style.hidden_opacity if annotation.is_hidden else 1.0,
            selected=selected,
            color=style.selected_color if selected else style.color,
        )
        if annotation.type == AnnotationType.DOT:
            shapes.append(OverlayShape(kind=DOT, start=Point(annotation.x, annotation.y), **common))
        else:
            shapes.append(
                OverlayShape(
                    kind=ARROW,
                    start=Point(annotation.x, annotation.y),
                    end=Point(annotation.end_x, annotation.end_y),
                    **common,
                )
            )

    # A staged first endpoint is shown as a zero-length line until the arrow completes.
    if len(drawing_points) == 1:
        point = drawing_points[0]
        shapes.append(OverlayShape(kind=DRAWING, start=point, end=point, color=style.color))

    return shapes


def _pct(value: float) -> str:
    return f"{round(value, 4):g}%"


def _shape_markup(shape: OverlayShape, style: RenderStyle, dimensions: Optional[Dimensions]) -> str:
    if shape.kind == DRAWING:
        return (
            f'<line x1="{_pct(shape.start.x)}" y1="{_pct(shape.start.y)}" '
            f'x2="{_pct(shape.end.x)}" y2="{_pct(shape.end.y)}" '
            f'stroke="{shape.color}" stroke-width="{style.stroke_width:g}" stroke-dasharray="4" />'
        )

    title = f"<title>{escape(shape.label)}</title>"
    if shape.kind == DOT:
        body = (
            f'<circle cx="{_pct(shape.start.x)}" cy="{_pct(shape.start.y)}" '
            f'r="{style.dot_radius:g}" fill="currentColor" />'
        )
    elif dimensions is not None:
        # Known surface size: draw the head in pixels instead of relying on the marker.
        body = (
            f'<path d="{arrow_outline(shape, dimensions, style)}" fill="none" stroke="currentColor" '
            f'stroke-width="{style.stroke_width:g}" />'
        )
    else:
        body = (
            f'<line x1="{_pct(shape.start.x)}" y1="{_pct(shape.start.y)}" '
            f'x2="{_pct(shape.end.x)}" y2="{_pct(shape.end.y)}" stroke="currentColor" '
            f'stroke-width="{style.stroke_width:g}" marker-end="url(#{style.marker_id})" />'
        )
    selected = ' data-selected="true"' if shape.selected else ""
    return (
        f'<g data-annotation-id="{shape.annotation_id}" opacity="{shape.opacity:g}" '
        f'color="{shape.color}"{selected}>{title}{body}</g>'
    )


def label_markup(shape: OverlayShape, dimensions: Dimensions, style: Optional[RenderStyle] = None) -> str:
    """Visible label for one annotation, kept inside a surface of ``dimensions``."""
    style = style or RenderStyle()
    if shape.kind == ARROW:
        line = labelled_line(to_viewport(shape.start, dimensions), to_viewport(shape.end, dimensions), shape.label)
        return line.svg(
            color=shape.color,
            background=style.label_background,
            stroke_width=style.stroke_width,
            font_size=style.font_size,
        )

    anchor = to_viewport(shape.start, dimensions)
    offset = Point(anchor.x + style.dot_radius, anchor.y + style.dot_radius)
    corner = label_position(offset, LABEL_BOX_WIDTH, LABEL_BOX_HEIGHT, dimensions)
    box = from_viewport(corner, dimensions)
    text = from_viewport(
        Point(corner.x + LABEL_BOX_WIDTH / 2, corner.y + LABEL_BOX_HEIGHT / 2 + LABEL_BASELINE_OFFSET),
        dimensions,
    )
    return (
        f'<rect x="{_pct(box.x)}" y="{_pct(box.y)}" width="{LABEL_BOX_WIDTH:g}" '
        f'height="{LABEL_BOX_HEIGHT:g}" fill="{style.label_background}" rx="4" />'
        f'<text x="{_pct(text.x)}" y="{_pct(text.y)}" text-anchor="middle" '
        f'font-size="{style.font_size:g}" fill="{shape.color}">{escape(shape.label)}</text>'
    )


def overlay_to_svg(
    shapes: Sequence[OverlayShape],
    style: Optional[RenderStyle] = None,
    dimensions: Optional[Dimensions] = None,
) -> str:
    """SVG overlay positioned in percentages so it tracks the image at any size.

    With ``dimensions`` the arrows are drawn as pixel paths and the selected
    annotation gets a visible label.
    """
    style = style or RenderStyle()
    marker = (
        f'<defs><marker id="{style.marker_id}" markerWidth="10" markerHeight="7" '
        f'refX="9" refY="3.5" orient="auto"><polygon points="0 0, 10 3.5, 0 7" '
        f'fill="currentColor" /></marker></defs>'
    )
    body = "".join(_shape_markup(shape, style, dimensions) for shape in shapes)
    if dimensions is not None:
        body += "".join(
            f'<g class="annotation-label">{label_markup(shape, dimensions, style)}</g>'
            for shape in shapes
            if shape.selected
        )
    return f'<svg xmlns="http://www.w3.org/2000/svg" width="100%" height="100%">{marker}{body}</svg>'


def arrow_outline(shape: OverlayShape, dimensions: Dimensions, style: Optional[RenderStyle] = None) -> str:
    """Pixel-space path for an arrow shape, for surfaces without marker support."""
    style = style or RenderStyle()
    start = to_viewport(shape.start, dimensions)
    end = to_viewport(shape.end or shape.start, dimensions)
    return arrow_path(start, end, ArrowStyle(head_size=style.head_size, stroke_width=style.stroke_width)).d


def annotation_at(
    shapes: Sequence[OverlayShape],
    point: Point,
    dimensions: Dimensions,
    radius: float = settings.hit_radius_px,
) -> Optional[int]:
    """Id of the topmost annotation under ``point`` (normalized), if any."""
    target = to_viewport(point, dimensions)
    for shape in reversed(shapes):
        if shape.annotation_id is None:
            continue
        start = to_viewport(shape.start, dimensions)
        if shape.kind == DOT:
            if is_nearby(start, target, radius):
                return shape.annotation_id
        elif segment_distance(target, start, to_viewport(shape.end, dimensions)) <= radius:
            return shape.annotation_id
    return None
