"""Unit tests for school distances from headquarters."""

import pytest

from app.models.school import School
from app.utils.geo import distance_km_for_school, haversine_km, hq_coordinates

HQ = (36.8056, 128.6239)


def test_hq_comes_from_settings():
    assert hq_coordinates() == HQ


def test_haversine_same_point_is_zero():
    assert haversine_km(*HQ, *HQ) == 0


@pytest.mark.parametrize(
    "lat_offset, expected_km",
    [
        (0.27, 30),
        (0.45, 50),
        (1.0, 111),
    ],
)
def test_haversine_along_meridian(lat_offset, expected_km):
    lat, lon = HQ
    assert haversine_km(lat, lon, lat + lat_offset, lon) == expected_km
    assert haversine_km(lat + lat_offset, lon, lat, lon) == expected_km


def test_preset_distance_wins_over_coordinates():
    school = School(name="Yeongju Elementary", region="Gyeongbuk", distance_km=12.5, latitude=37.8, longitude=128.6)
    assert distance_km_for_school(school) == 12.5


def test_distance_computed_from_coordinates():
    school = School(name="Andong High", region="Gyeongbuk", latitude=HQ[0] + 0.45, longitude=HQ[1])
    assert distance_km_for_school(school) == 50.0


def test_custom_origin():
    school = School(name="Andong High", region="Gyeongbuk", latitude=36.0, longitude=128.0)
    assert distance_km_for_school(school, origin=(36.27, 128.0)) == 30.0


@pytest.mark.parametrize(
    "school",
    [
        None,
        School(name="Unknown", region="Seoul"),
        School(name="Half located", region="Seoul", latitude=37.5),
    ],
)
def test_unknown_distance(school):
    assert distance_km_for_school(school) is None
