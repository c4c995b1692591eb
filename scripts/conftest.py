"""
Shared fixtures: a fake SportMonks upstream and a fake news provider, both
served by real aiohttp test servers.
"""

import asyncio
from typing import Any, Dict, List, Tuple

import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from khelinfo_backend.client import UpstreamClient
from khelinfo_backend.config import UpstreamConfig


class FakeUpstream:
    """Serves canned responses per endpoint and records every request"""

    def __init__(self):
        self.responses: Dict[str, Tuple[int, Any]] = {}
        self.requests: List[Tuple[str, Dict[str, str]]] = []
        self.delay = 0.0
        self.base_url = ""
        self.news_url = ""

        self.app = web.Application()
        self.app.router.add_get('/api/v2.0/{endpoint}', self.handle)
        self.app.router.add_get('/v2/everything', self.handle_news)

    def set(self, endpoint: str, body: Any, status: int = 200):
        self.responses[endpoint] = (status, body)

    def hits(self, endpoint: str) -> int:
        return sum(1 for name, _ in self.requests if name == endpoint)

    async def _respond(self, name: str, request: web.Request) -> web.Response:
        self.requests.append((name, dict(request.query)))
        if self.delay:
            await asyncio.sleep(self.delay)

        status, body = self.responses.get(name, (404, {'error': {'message': 'Not found'}}))
        if isinstance(body, str):
            return web.Response(status=status, text=body)
        return web.json_response(body, status=status)

    async def handle(self, request: web.Request) -> web.Response:
        return await self._respond(request.match_info['endpoint'], request)

    async def handle_news(self, request: web.Request) -> web.Response:
        return await self._respond('news', request)


@pytest_asyncio.fixture
async def upstream():
    fake = FakeUpstream()
    async with test_utils.TestServer(fake.app) as server:
        fake.base_url = str(server.make_url('/api/v2.0'))
        fake.news_url = str(server.make_url('/v2/everything'))
        yield fake


@pytest_asyncio.fixture
async def upstream_client(upstream):
    config = UpstreamConfig(base_url=upstream.base_url, api_token='secret-token')
    async with UpstreamClient(config) as client:
        yield client


@pytest.fixture
def sample_teams():
    return [
        {
            'resource': 'teams',
            'id': 1,
            'name': 'India',
            'code': 'IND',
            'image_path': 'https://cdn.sportmonks.com/images/cricket/teams/1.png',
            'country_id': 153732,
            'national_team': True,
            'updated_at': '2024-01-01T00:00:00.000000Z',
        },
        {
            'resource': 'teams',
            'id': 2,
            'name': 'Australia',
            'code': 'AUS',
            'image_path': 'https://cdn.sportmonks.com/images/cricket/teams/2.png',
            'country_id': 98,
            'national_team': True,
            'updated_at': '2024-01-01T00:00:00.000000Z',
        },
    ]
