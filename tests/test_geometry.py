import math

import pytest

from outline2fourier.types import Point2D, Polygon2D


def _unit_square() -> Polygon2D:
    return Polygon2D.from_array([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)])


def test_square_area_orientation_and_centroid():
    square = _unit_square()
    assert square.signed_area() == pytest.approx(1.0)
    assert not square.is_clockwise()
    assert square.centroid().as_tuple() == pytest.approx((0.5, 0.5))
    assert square.perimeter() == pytest.approx(4.0)

    reversed_square = square.reversed_keep_first()
    assert reversed_square[0] == square[0]
    assert reversed_square.signed_area() == pytest.approx(-1.0)
    assert reversed_square.is_clockwise()


def test_collinear_points_have_zero_area_and_mean_centroid():
    line = Polygon2D.from_array([(0.0, 0.0), (1.0, 0.0), (2.0, 0.0)])
    assert line.area() == 0.0
    assert line.centroid().as_tuple() == pytest.approx((1.0, 0.0))


def test_point_transforms():
    p = Point2D(1.0, 0.0)
    q = p.rotate(math.pi / 2.0)
    assert q.as_tuple() == pytest.approx((0.0, 1.0))
    assert p.rotate(math.pi, about=Point2D(2.0, 0.0)).as_tuple() == pytest.approx((3.0, 0.0))
    assert p.translate(1.0, 2.0).scale(2.0).as_tuple() == (4.0, 4.0)
    assert Point2D(0.0, 0.0).distance_to(Point2D(3.0, 4.0)) == 5.0


def test_polygon_transform_keeps_area_under_rotation():
    square = _unit_square()
    moved = square.transformed(scale=2.0, rotation=0.3, dx=5.0, dy=-1.0, about=square.centroid())
    assert moved.area() == pytest.approx(4.0)
    assert moved.centroid().as_tuple() == pytest.approx((5.5, -0.5))
