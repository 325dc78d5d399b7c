from helpers import make_annotation
from pinpoint.services.coordinates import Dimensions, Point
from pinpoint.services.render import (
    ARROW,
    DOT,
    DRAWING,
    RenderStyle,
    annotation_at,
    arrow_outline,
    label_markup,
    overlay_to_svg,
    render_overlay,
)

ANNOTATIONS = [
    make_annotation(1, x=20.0, y=30.0, label="Nest"),
    make_annotation(2, type="ARROW", x=0.0, y=50.0, end_x=100.0, end_y=50.0, label="Branch"),
    make_annotation(3, x=70.0, y=70.0, is_hidden=True, label="Hidden <b>"),
]


def test_shapes_follow_annotation_types():
    shapes = render_overlay(ANNOTATIONS)

    assert [shape.kind for shape in shapes] == [DOT, ARROW, DOT]
    assert shapes[1].start == Point(0, 50)
    assert shapes[1].end == Point(100, 50)


def test_hidden_annotations_are_dimmed_not_dropped():
    shapes = render_overlay(ANNOTATIONS)
    assert shapes[2].opacity == RenderStyle().hidden_opacity
    assert shapes[0].opacity == 1.0


def test_selected_annotation_is_highlighted():
    shapes = render_overlay(ANNOTATIONS, selected_id=2)
    style = RenderStyle()
    assert shapes[1].selected and shapes[1].color == style.selected_color
    assert not shapes[0].selected and shapes[0].color == style.color


def test_overlay_can_be_hidden():
    assert render_overlay(ANNOTATIONS, show_annotations=False) == []


def test_single_staged_point_draws_indicator():
    shapes = render_overlay([], drawing_points=(Point(10, 10),))
    assert len(shapes) == 1
    assert shapes[0].kind == DRAWING
    assert shapes[0].start == shapes[0].end == Point(10, 10)

    assert render_overlay([], drawing_points=(Point(1, 1), Point(2, 2))) == []


def test_svg_markup():
    svg = overlay_to_svg(render_overlay(ANNOTATIONS, selected_id=1, drawing_points=(Point(5, 5),)))

    assert svg.startswith('<svg xmlns="http://www.w3.org/2000/svg"')
    assert '<marker id="arrowhead"' in svg
    assert '<circle cx="20%" cy="30%"' in svg
    assert 'x1="0%" y1="50%" x2="100%" y2="50%"' in svg
    assert 'marker-end="url(#arrowhead)"' in svg
    assert '<g data-annotation-id="1"' in svg and 'data-selected="true"' in svg
    assert 'opacity="0.3"' in svg
    assert "<title>Hidden &lt;b&gt;</title>" in svg
    assert 'stroke-dasharray="4"' in svg


def test_arrow_outline_in_pixels():
    shapes = render_overlay(ANNOTATIONS)
    d = arrow_outline(shapes[1], Dimensions(200, 100))
    assert d.startswith("M 0,50 L 200,50 M ")


def test_annotation_at_hits_topmost_shape():
    shapes = render_overlay(ANNOTATIONS)
    size = Dimensions(100, 100)

    assert annotation_at(shapes, Point(21, 31), size) == 1
    assert annotation_at(shapes, Point(40, 52), size) == 2
    assert annotation_at(shapes, Point(70, 70), size) == 3
    assert annotation_at(shapes, Point(95, 5), size) is None


def test_annotation_at_ignores_drawing_indicator():
    shapes = render_overlay([], drawing_points=(Point(10, 10),))
    assert annotation_at(shapes, Point(10, 10), Dimensions(100, 100)) is None


def test_dot_label_is_flipped_back_inside_the_surface():
    shape = render_overlay([make_annotation(9, x=95.0, y=95.0, label="Corner")])[0]

    markup = label_markup(shape, Dimensions(200, 100))

    assert '<rect x="57%" y="79%" width="80" height="20"' in markup
    assert '<text x="77%" y="94%"' in markup
    assert ">Corner</text>" in markup


def test_arrow_label_sits_on_the_shaft_midpoint():
    shape = render_overlay(ANNOTATIONS)[1]

    markup = label_markup(shape, Dimensions(200, 100))

    assert '<rect x="60" y="40" width="80" height="20"' in markup
    assert ">Branch</text>" in markup


def test_sized_overlay_draws_pixel_arrows_and_selected_label():
    svg = overlay_to_svg(render_overlay(ANNOTATIONS, selected_id=1), dimensions=Dimensions(200, 100))

    assert '<path d="M 0,50 L 200,50 M ' in svg
    assert 'marker-end="url(#arrowhead)"' not in svg
    assert svg.count('<g class="annotation-label">') == 1
    assert ">Nest</text>" in svg
