"""Tests for the tile grid planner."""

import re

import numpy as np
import pytest

from pystaticmap import StaticMap
from pystaticmap.gis.projection import lat_to_y, lon_to_x


def planned_map(center, zoom, width=600, height=400, **kwargs):
    kwargs.setdefault('tile_url', 'https://tiles.test/{z}/{x}/{y}.png')
    smap = StaticMap(width=width, height=height, offload='thread', **kwargs)
    smap.zoom = zoom
    smap.center_x = lon_to_x(center[0], zoom)
    smap.center_y = lat_to_y(center[1], zoom)
    return smap


@pytest.mark.parametrize('center, zoom', [
    ((13.4, 52.5), 12),
    ((0.0, 0.0), 1),
    ((-122.42, 37.77), 17),
    ((179.9, -45.0), 5),
])
def test_every_canvas_pixel_is_covered(center, zoom):
    smap = planned_map(center, zoom)
    covered = np.zeros((smap.height, smap.width), dtype=bool)
    for plan in smap.plan_tiles():
        left, top, right, bottom = plan.box
        covered[max(top, 0):max(min(bottom, smap.height), 0),
                max(left, 0):max(min(right, smap.width), 0)] = True
    assert covered.all()


def test_adjacent_tiles_share_edges():
    smap = planned_map((13.4, 52.5), 12)
    boxes = {plan.cache_key: plan.box for plan in smap.plan_tiles()}
    for key, (left, top, right, bottom) in boxes.items():
        assert right - left == 256
        assert bottom - top == 256
        _, z, x, y = re.match(r'(\d+)/(\d+)_(-?\d+)_(-?\d+)', key).groups()
        neighbour = boxes.get(f"256/{z}_{int(x) + 1}_{y}")
        if neighbour:
            assert neighbour[0] == right


def test_wraps_across_antimeridian():
    smap = planned_map((180.0, 0.0), 2, width=512, height=256)
    plans = smap.plan_tiles()
    urls = [p.url for p in plans]
    keys = [p.cache_key for p in plans]

    for url in urls:
        _, x, y = map(int, re.search(r'/(\d+)/(\d+)/(\d+)\.png$', url).groups())
        assert 0 <= x < 4
        assert 0 <= y < 4
    # the tile east of the antimeridian is fetched as x=0 but keyed unwrapped
    assert 'https://tiles.test/2/0/1.png' in urls
    assert '256/2_4_1' in keys
    east = next(p for p in plans if p.cache_key == '256/2_4_1')
    assert east.box[0] == 256


def test_reverse_y():
    smap = planned_map((0.0, 0.0), 1, width=256, height=256, reverse_y=True)
    urls = sorted(p.url for p in smap.plan_tiles())
    keys = sorted(p.cache_key for p in smap.plan_tiles())
    assert keys == ['256/1_0_0', '256/1_0_1', '256/1_1_0', '256/1_1_1']
    # y is flipped for the remote lookup only
    by_key = {p.cache_key: p.url for p in smap.plan_tiles()}
    assert by_key['256/1_0_0'] == 'https://tiles.test/1/0/1.png'
    assert by_key['256/1_1_1'] == 'https://tiles.test/1/1/0.png'
    assert len(urls) == 4


def test_quadkey_url():
    smap = StaticMap(width=256, height=256, tile_url='https://q.test/tiles/{quadkey}.jpeg', offload='thread')
    smap.zoom = 3
    smap.center_x, smap.center_y = 2.5, 1.5
    plans = smap.plan_tiles()
    assert len(plans) == 1
    assert plans[0].url == 'https://q.test/tiles/021.jpeg'
    assert plans[0].box == (0, 0, 256, 256)
    assert plans[0].cache_key == '256/3_2_1'


def test_subdomains_are_substituted():
    smap = planned_map((13.4, 52.5), 10, tile_url='https://{s}.tiles.test/{z}/{x}/{y}.png',
                       tile_subdomains=['a', 'b', 'c'])
    for plan in smap.plan_tiles():
        assert re.match(r'https://[abc]\.tiles\.test/10/\d+/\d+\.png$', plan.url)


def test_no_tile_url_plans_nothing():
    smap = planned_map((13.4, 52.5), 10, tile_url=None)
    assert smap.plan_tiles() == []
