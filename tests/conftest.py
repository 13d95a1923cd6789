import asyncio
from collections import Counter

import pytest
from aiohttp import web

from hlsdl import RetryPolicy


class FakeOrigin:
    """Serves playlist, key and segment bytes and records every request."""

    def __init__(self):
        self.files = {}
        self.hits = Counter()
        self.failures = Counter()
        self.delays = {}
        self.server = None

    def add(self, path: str, body) -> None:
        self.files[path] = body.encode() if isinstance(body, str) else body

    def url(self, path: str) -> str:
        return str(self.server.make_url(path))

    @property
    def total_hits(self) -> int:
        return sum(self.hits.values())

    async def handle(self, request: web.Request) -> web.Response:
        path = request.path
        self.hits[path] += 1
        if path in self.delays:
            await asyncio.sleep(self.delays[path])
        if self.failures[path] > 0:
            self.failures[path] -= 1
            return web.Response(status=503)
        if path not in self.files:
            return web.Response(status=404)
        return web.Response(body=self.files[path])


@pytest.fixture
async def origin(aiohttp_server):
    origin = FakeOrigin()
    app = web.Application()
    app.router.add_get('/{tail:.*}', origin.handle)
    origin.server = await aiohttp_server(app)
    return origin


@pytest.fixture
def fast_policy():
    return RetryPolicy(max_retries=2, backoff=0, backoff_max=0, timeout=5)
