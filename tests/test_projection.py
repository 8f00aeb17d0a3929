"""Tests for Web Mercator projection helpers."""

import math

import numpy as np
import pytest

from pystaticmap.gis.projection import (
    coords_to_pixels,
    lat_to_y,
    lon_to_x,
    meter_to_pixel,
    quad_key_to_tile_xy,
    round_half_away,
    tile_xy_to_quad_key,
    to_pixel,
    x_to_lon,
    y_to_lat,
)


@pytest.mark.parametrize('zoom', range(1, 18))
def test_round_trip_all_zooms(zoom):
    for lon in np.linspace(-180, 180, 37):
        assert x_to_lon(lon_to_x(lon, zoom), zoom) == pytest.approx(lon, abs=1e-9)
    for lat in np.linspace(-85, 85, 35):
        assert y_to_lat(lat_to_y(lat, zoom), zoom) == pytest.approx(lat, abs=1e-9)


def test_known_tile_fractions():
    assert lon_to_x(-180, 0) == 0
    assert lon_to_x(0, 1) == 1.0
    assert lat_to_y(0, 1) == pytest.approx(1.0)
    # Berlin at zoom 10 falls in tile 550/335
    assert math.floor(lon_to_x(13.4, 10)) == 550
    assert math.floor(lat_to_y(52.5, 10)) == 335


def test_meter_to_pixel_scales_with_latitude():
    assert meter_to_pixel(156543.03392, 0, 0) == pytest.approx(1.0)
    assert meter_to_pixel(100, 10, 0) * 2 == pytest.approx(meter_to_pixel(100, 11, 0))
    assert meter_to_pixel(100, 10, 60) == pytest.approx(2 * meter_to_pixel(100, 10, 0))


def test_quad_key_example():
    key = tile_xy_to_quad_key(2, 1, 3)
    assert len(key) == 3
    assert key == '021'
    assert quad_key_to_tile_xy(key) == (2, 1, 3)


def test_quad_key_round_trip_and_errors():
    for x, y, z in [(0, 0, 1), (3, 5, 3), (1023, 511, 10)]:
        assert quad_key_to_tile_xy(tile_xy_to_quad_key(x, y, z)) == (x, y, z)
    with pytest.raises(ValueError):
        quad_key_to_tile_xy('0142')


def test_rounding_is_half_away_from_zero():
    assert round_half_away(0.5) == 1
    assert round_half_away(1.5) == 2
    assert round_half_away(2.5) == 3
    assert round_half_away(-0.5) == -1
    assert round_half_away(-2.4) == -2
    assert to_pixel(0, 0, 256, 1) == 1
    assert to_pixel(-1 / 512, 0, 256, 0) == -1


def test_coords_to_pixels_matches_scalar_projection():
    zoom, cx, cy = 12, lon_to_x(13.4, 12), lat_to_y(52.5, 12)
    coords = [(13.35, 52.48), (13.4, 52.5), (13.47, 52.53), (181.0, 52.5)]
    pixels = coords_to_pixels(coords, zoom, cx, cy, 256, 600, 400)
    for (lon, lat), (px, py) in zip(coords, pixels.tolist()):
        assert px == to_pixel(lon_to_x(lon, zoom), cx, 256, 600)
        assert py == to_pixel(lat_to_y(lat, zoom), cy, 256, 400)


def test_poles_clamp_to_pyramid_edges():
    for zoom in (0, 3, 12):
        assert lat_to_y(-90, zoom) == pytest.approx(2 ** zoom, abs=1e-6)
        assert lat_to_y(90, zoom) == pytest.approx(0, abs=1e-6)
        assert lat_to_y(-89.9, zoom) == lat_to_y(-90, zoom)

    pixels = coords_to_pixels([(0, -90), (0, 90)], 3, 4.0, 4.0, 256, 512, 512)
    assert pixels.tolist() == [[256, 1280], [256, -768]]
