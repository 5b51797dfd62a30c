import pytest

from core.geo import GeoPoint, distance_between, distance_km


def test_same_point_is_zero():
    assert distance_km(37.5665, 126.9780, 37.5665, 126.9780) == 0.0


def test_one_degree_of_latitude_is_about_111_km():
    assert distance_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)


def test_seoul_to_busan():
    seoul = GeoPoint(37.5665, 126.9780)
    busan = GeoPoint(35.1796, 129.0756)

    assert distance_between(seoul, busan) == pytest.approx(325, abs=5)


def test_distance_is_symmetric():
    a = GeoPoint(37.5665, 126.9780)
    b = GeoPoint(37.4563, 126.7052)

    assert distance_between(a, b) == pytest.approx(distance_between(b, a))
