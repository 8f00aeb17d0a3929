"""Shared fixtures: an in-memory tile server and generated tile images."""

from io import BytesIO
import threading
import time

import pytest
from PIL import Image


def make_tile_png(color=(255, 0, 0, 255), size=256):
    """PNG bytes of a solid tile."""
    out = BytesIO()
    Image.new('RGBA', (size, size), color).save(out, format='PNG')
    return out.getvalue()


class FakeResponse:
    def __init__(self, status_code=200, content=b'', content_type='image/png'):
        self.status_code = status_code
        self.content = content
        self.headers = {'content-type': content_type} if content_type else {}


class FakeSession:
    """
    Stand-in for ``requests.Session`` that records every request.

    Args:
        handler: ``handler(url) -> FakeResponse``, default serves a red tile
        delay: Seconds each request takes
    """

    def __init__(self, handler=None, delay=0.0):
        self.handler = handler
        self.delay = delay
        self.calls = []
        self.log = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def get(self, url, headers=None, timeout=None):
        with self._lock:
            self.calls.append({'url': url, 'headers': headers, 'timeout': timeout})
            self.log.append(('start', url))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.handler is not None:
                return self.handler(url)
            return FakeResponse(content=make_tile_png())
        finally:
            with self._lock:
                self.in_flight -= 1
                self.log.append(('end', url))


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def cache_dir(tmp_path):
    return str(tmp_path / 'tiles')
