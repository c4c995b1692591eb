"""
Tests for the HTTP surface: cached resource routes, ping, news proxy, CORS
and the status report.
"""

import pytest
import pytest_asyncio
from aiohttp import test_utils

from khelinfo_backend.cache import CacheStore
from khelinfo_backend.client import FetchError
from khelinfo_backend.config import NewsConfig, ServerConfig
from khelinfo_backend.news import NewsProxy
from khelinfo_backend.resources import RESOURCES, ResourceType
from khelinfo_backend.server import ReadAPI, create_app

FRONTEND = 'https://khelinfo-frontend.vercel.app'


@pytest.fixture
def store():
    return CacheStore()


@pytest_asyncio.fixture
async def news_proxy(upstream):
    proxy = NewsProxy(NewsConfig(base_url=upstream.news_url, api_key='news-key'))
    yield proxy
    await proxy.close()


@pytest_asyncio.fixture
async def http(store, news_proxy):
    app = create_app(store, news_proxy, ServerConfig())
    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        yield client


def test_read_api_is_a_plain_view(store):
    api = ReadAPI(store)
    store.replace(ResourceType.SEASONS, [{'id': 1}])

    assert api.get(ResourceType.SEASONS) == [{'id': 1}]
    assert api.ping() == 'pong'


@pytest.mark.asyncio
@pytest.mark.parametrize('path', ['/api/ping', '/ping'])
async def test_ping_returns_pong_on_empty_cache(http, path):
    response = await http.get(path)

    assert response.status == 200
    assert await response.text() == 'pong'


@pytest.mark.asyncio
async def test_ping_ignores_cache_errors(http, store):
    for resource_type in store.resource_types:
        store.record_error(resource_type, FetchError(None, 'down'))

    response = await http.get('/api/ping')

    assert response.status == 200
    assert await response.text() == 'pong'


@pytest.mark.asyncio
async def test_every_cached_resource_has_a_route(http, store):
    for resource_type in store.resource_types:
        store.replace(resource_type, [{'id': resource_type.value}])

    for resource_type in store.resource_types:
        response = await http.get(RESOURCES[resource_type].route)
        assert response.status == 200
        assert await response.json() == {'data': [{'id': resource_type.value}]}


@pytest.mark.asyncio
async def test_empty_slot_is_a_valid_response(http):
    response = await http.get('/api/livescores')

    assert response.status == 200
    assert await response.json() == {'data': []}


@pytest.mark.asyncio
async def test_resource_route_never_calls_upstream(http, upstream):
    await http.get('/api/teams')

    assert upstream.requests == []


@pytest.mark.asyncio
async def test_unknown_route_is_404(http):
    response = await http.get('/api/unknown')

    assert response.status == 404


@pytest.mark.asyncio
async def test_news_proxies_fixed_query(http, upstream):
    provider_payload = {'status': 'ok', 'totalResults': 1, 'articles': [{'title': 'Headline'}]}
    upstream.set('news', provider_payload)

    response = await http.get('/api/news')

    assert response.status == 200
    assert await response.json() == provider_payload
    _, query = upstream.requests[-1]
    assert query == {
        'q': 'sports',
        'pageSize': '13',
        'language': 'en',
        'sortBy': 'publishedAt',
        'apiKey': 'news-key',
    }


@pytest.mark.asyncio
async def test_news_failure_is_500(http, upstream):
    upstream.set('news', {'status': 'error', 'code': 'apiKeyInvalid'}, status=401)

    response = await http.get('/api/news')

    assert response.status == 500
    assert await response.json() == {'error': 'Failed to fetch news'}


@pytest.mark.asyncio
async def test_cors_allowed_origin(http):
    response = await http.get('/api/teams', headers={'Origin': FRONTEND})

    assert response.headers['Access-Control-Allow-Origin'] == FRONTEND


@pytest.mark.asyncio
async def test_cors_unknown_origin_gets_no_header(http):
    response = await http.get('/api/teams', headers={'Origin': 'https://evil.example.com'})

    assert response.status == 200
    assert 'Access-Control-Allow-Origin' not in response.headers


@pytest.mark.asyncio
async def test_cors_preflight(http):
    allowed = await http.options('/api/teams', headers={
        'Origin': 'http://localhost:5173',
        'Access-Control-Request-Method': 'GET',
    })
    rejected = await http.options('/api/teams', headers={
        'Origin': 'https://evil.example.com',
        'Access-Control-Request-Method': 'GET',
    })

    assert allowed.status == 204
    assert allowed.headers['Access-Control-Allow-Origin'] == 'http://localhost:5173'
    assert 'GET' in allowed.headers['Access-Control-Allow-Methods']
    assert rejected.status == 403


@pytest.mark.asyncio
async def test_status_reports_cache(http, store):
    store.replace(ResourceType.COUNTRIES, [{'id': 1, 'name': 'India'}])

    response = await http.get('/api/status')
    report = await response.json()

    assert response.status == 200
    assert report['cache']['countries']['items'] == 1
    assert 'polling' not in report


@pytest.mark.asyncio
async def test_cors_header_on_error_responses(http):
    response = await http.get('/api/unknown', headers={'Origin': FRONTEND})

    assert response.status == 404
    assert response.headers['Access-Control-Allow-Origin'] == FRONTEND
