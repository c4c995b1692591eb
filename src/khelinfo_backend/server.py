"""
HTTP surface for the Khelinfo backend

Serves the current cache snapshot for every resource type, the liveness
probe, the news proxy and a status report. Resource handlers only ever read
the cache store; they never reach the upstream API.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from aiohttp import web

from .cache import CacheStore, Record
from .config import ServerConfig
from .news import NewsProxy, ProxyError
from .poller import RefreshScheduler
from .resources import RESOURCES, ResourceType

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class ReadAPI:
    """Synchronous, non-blocking view over the cache store"""

    def __init__(self, cache: CacheStore):
        self.cache = cache

    def get(self, resource_type: ResourceType) -> List[Record]:
        return self.cache.read(resource_type)

    def ping(self) -> str:
        return "pong"


READ_API = web.AppKey("read_api", ReadAPI)
NEWS_PROXY = web.AppKey("news_proxy", NewsProxy)
SCHEDULER = web.AppKey("scheduler", RefreshScheduler)


def _allow_origin(response: web.StreamResponse, origin: Optional[str], allowed_origins: frozenset):
    if origin and origin in allowed_origins:
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Vary'] = 'Origin'


def cors_middleware(origins: Iterable[str], methods: Iterable[str]):
    """Allow cross-origin calls from the configured frontend origins only"""
    allowed_origins = frozenset(origins)
    allowed_methods = ", ".join(methods)

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        origin = request.headers.get('Origin')

        if (request.method == 'OPTIONS' and origin
                and 'Access-Control-Request-Method' in request.headers):
            if origin not in allowed_origins:
                logger.debug(f"Rejected CORS preflight from {origin}")
                return web.Response(status=403)
            headers = {
                'Access-Control-Allow-Origin': origin,
                'Access-Control-Allow-Methods': allowed_methods,
                'Vary': 'Origin',
            }
            requested_headers = request.headers.get('Access-Control-Request-Headers')
            if requested_headers:
                headers['Access-Control-Allow-Headers'] = requested_headers
            return web.Response(status=204, headers=headers)

        try:
            response = await handler(request)
        except web.HTTPException as e:
            _allow_origin(e, origin, allowed_origins)
            raise
        _allow_origin(response, origin, allowed_origins)
        return response

    return middleware


def _resource_handler(resource_type: ResourceType) -> Handler:
    async def handler(request: web.Request) -> web.Response:
        return web.json_response({'data': request.app[READ_API].get(resource_type)})

    handler.__name__ = f"get_{resource_type.value}"
    return handler


async def ping(request: web.Request) -> web.Response:
    return web.Response(text=request.app[READ_API].ping())


async def news(request: web.Request) -> web.Response:
    try:
        payload = await request.app[NEWS_PROXY].fetch_news()
    except ProxyError as e:
        logger.error(f"News proxy failed: {e} (status={e.status})")
        return web.json_response({'error': 'Failed to fetch news'}, status=500)
    return web.json_response(payload)


async def status(request: web.Request) -> web.Response:
    report: Dict[str, Any] = {'cache': request.app[READ_API].cache.get_cache_stats()}
    scheduler = request.app.get(SCHEDULER)
    if scheduler is not None:
        report['polling'] = scheduler.get_polling_stats()
    return web.json_response(report)


def create_app(cache: CacheStore, news_proxy: NewsProxy,
               config: Optional[ServerConfig] = None,
               scheduler: Optional[RefreshScheduler] = None) -> web.Application:
    """Build the aiohttp application wired to the given cache and collaborators"""
    config = config or ServerConfig()

    app = web.Application(middlewares=[cors_middleware(config.cors_origins, config.cors_methods)])
    app[READ_API] = ReadAPI(cache)
    app[NEWS_PROXY] = news_proxy
    if scheduler is not None:
        app[SCHEDULER] = scheduler

    for resource_type in cache.resource_types:
        app.router.add_get(RESOURCES[resource_type].route, _resource_handler(resource_type))

    app.router.add_get('/api/ping', ping)
    app.router.add_get('/ping', ping)
    app.router.add_get('/api/news', news)
    app.router.add_get('/api/status', status)

    return app
