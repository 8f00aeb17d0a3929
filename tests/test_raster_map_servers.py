"""Tests for tile fetching, caching and concurrency limits."""

import os

import pytest
import requests

from conftest import FakeResponse, FakeSession, make_tile_png
from pystaticmap import TileFetchError
from pystaticmap.map import RasterTileServer, TilePlan


def plan(x, y, z=3):
    return TilePlan(url=f'https://tiles.test/{z}/{x}/{y}.png', cache_key=f'256/{z}_{x}_{y}', box=(0, 0, 256, 256))


def make_server(session, cache_dir, **kwargs):
    kwargs.setdefault('url_template', 'https://tiles.test/{z}/{x}/{y}.png')
    return RasterTileServer(session=session, tiles_cache_dir=cache_dir, **kwargs)


def test_second_fetch_is_served_from_cache(session, cache_dir):
    server = make_server(session, cache_dir)
    first = server.fetch_tile(plan(2, 1))
    second = server.fetch_tile(plan(2, 1))

    assert first.success and second.success
    assert len(session.calls) == 1
    assert second.body == first.body
    assert os.path.isfile(os.path.join(cache_dir, '256', '3_2_1.png'))


def test_request_uses_headers_and_timeout(session, cache_dir):
    server = make_server(session, cache_dir, tile_request_timeout=5,
                         tile_request_header={'User-Agent': 'pystaticmap-tests'})
    server.fetch_tile(plan(0, 0))
    assert session.calls[0]['timeout'] == 5
    assert session.calls[0]['headers'] == {'User-Agent': 'pystaticmap-tests'}


def test_non_image_response_is_a_failed_tile(cache_dir):
    session = FakeSession(lambda url: FakeResponse(content=b'<html/>', content_type='text/html'))
    server = make_server(session, cache_dir)
    result = server.fetch_tile(plan(1, 1))

    assert not result.success
    assert isinstance(result.error, TileFetchError)
    assert result.box == (0, 0, 256, 256)
    assert not os.path.exists(os.path.join(cache_dir, '256', '3_1_1.png'))


def test_http_error_is_a_failed_tile(cache_dir):
    session = FakeSession(lambda url: FakeResponse(status_code=404, content=make_tile_png()))
    result = make_server(session, cache_dir).fetch_tile(plan(1, 1))
    assert not result.success
    assert '404' in str(result.error)


def test_network_error_is_a_failed_tile(cache_dir):
    def refuse(url):
        raise requests.ConnectionError('connection refused')

    result = make_server(FakeSession(refuse), cache_dir).fetch_tile(plan(1, 1))
    assert not result.success
    assert isinstance(result.error, requests.ConnectionError)


def test_cache_write_failure_does_not_fail_tile(session, tmp_path):
    blocker = tmp_path / 'not-a-dir'
    blocker.write_text('occupied')
    server = make_server(session, str(blocker))

    result = server.fetch_tile(plan(2, 2))
    assert result.success
    assert result.body == make_tile_png()


def test_cache_extension_follows_url_template(session, cache_dir):
    server = make_server(session, cache_dir, url_template='https://q.test/a{quadkey}.jpeg?g=1')
    assert server.cache_path('256/3_2_1').endswith(os.path.join('256', '3_2_1.jpeg'))
    server = make_server(session, cache_dir, url_template='https://esri.test/tile/{z}/{y}/{x}')
    assert server.cache_path('256/3_2_1').endswith('3_2_1.png')


def test_chunked_fetch_never_exceeds_limit(cache_dir):
    session = FakeSession(delay=0.05)
    server = make_server(session, cache_dir, tile_request_limit=2)
    plans = [plan(x, 0) for x in range(5)]

    results = server.fetch_tiles(plans)

    assert len(results) == 5
    assert all(r.success for r in results)
    assert session.max_in_flight == 2

    # a chunk starts only after the previous one settled
    log = session.log
    for i in range(0, 5, 2):
        chunk = {p.url for p in plans[i:i + 2]}
        following = {p.url for p in plans[i + 2:i + 4]}
        if not following:
            continue
        last_end = max(n for n, (kind, url) in enumerate(log) if kind == 'end' and url in chunk)
        first_start = min(n for n, (kind, url) in enumerate(log) if kind == 'start' and url in following)
        assert last_end < first_start


def test_unlimited_fetch_runs_all_at_once(cache_dir):
    session = FakeSession(delay=0.2)
    server = make_server(session, cache_dir, tile_request_limit=0)
    results = server.fetch_tiles([plan(x, 0) for x in range(5)])
    assert len(results) == 5
    assert session.max_in_flight == 5


def test_one_failure_does_not_stop_the_others(cache_dir):
    def flaky(url):
        if url.endswith('/3/1/0.png'):
            return FakeResponse(content=b'oops', content_type='text/plain')
        return FakeResponse(content=make_tile_png())

    results = make_server(FakeSession(flaky), cache_dir).fetch_tiles([plan(x, 0) for x in range(4)])
    assert sorted(r.success for r in results) == [False, True, True, True]


def test_provider_registry():
    assert 'OSM.Standard' in RasterTileServer.get_available_providers()
    info = RasterTileServer.get_provider_info('Carto.Positron')
    assert info['tile_size'] == 512
    with pytest.raises(ValueError, match='Unknown provider'):
        RasterTileServer('Nope.Tiles')

    server = RasterTileServer('Carto.Positron', session=FakeSession())
    assert server.tile_size == 512
    url = server.build_tile_url(3, 2, 1)
    assert url.startswith('https://') and url.endswith('/light_all/3/2/1@2x.png')
    assert '{s}' not in url


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv('THUNDERFOREST_API_KEY', 'secret')
    server = RasterTileServer('Thunderforest.Landscape', session=FakeSession())
    assert server.build_tile_url(1, 0, 0).endswith('/landscape/1/0/0.png?apikey=secret')

    monkeypatch.delenv('THUNDERFOREST_API_KEY')
    with pytest.warns(UserWarning, match='requires an API key'):
        RasterTileServer('Thunderforest.Landscape', session=FakeSession())

    server = RasterTileServer('Thunderforest.Landscape', api_key='given', session=FakeSession())
    assert server.api_key == 'given'
    assert RasterTileServer('OSM.Standard', session=FakeSession()).api_key is None


def test_license_info():
    server = RasterTileServer('OSM.Standard', session=FakeSession())
    assert server.get_license_info(year='2026') == '© OpenStreetMap contributors (2026)'
    assert 'openstreetmap.org/copyright' in server.get_license_info(year='2026', include_url=True)
