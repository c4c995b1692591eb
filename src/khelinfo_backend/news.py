"""
Sports news proxy

Forwards a fixed query to the news provider on every request. There is no
cache behind this endpoint, so a provider failure surfaces as a ProxyError
for the handler to turn into an error response.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from .config import NewsConfig

logger = logging.getLogger(__name__)


class ProxyError(Exception):
    """News provider unreachable, non-2xx status or non-JSON body"""

    def __init__(self, status: Optional[int], message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class NewsProxy:
    """Request-scoped proxy for the news provider"""

    def __init__(self, config: NewsConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.session = session
        self._owns_session = session is None

    def build_params(self) -> Dict[str, str]:
        return {
            'q': self.config.query,
            'pageSize': str(self.config.page_size),
            'language': self.config.language,
            'sortBy': self.config.sort_by,
            'apiKey': self.config.api_key or '',
        }

    async def close(self):
        if self.session and self._owns_session:
            await self.session.close()
        self.session = None

    async def fetch_news(self) -> Dict[str, Any]:
        """Return the provider's JSON payload unchanged"""
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True

        try:
            async with self.session.get(self.config.base_url, params=self.build_params()) as response:
                if not 200 <= response.status < 300:
                    raise ProxyError(response.status, f"News provider returned HTTP {response.status}")
                try:
                    return await response.json(content_type=None)
                except (json.JSONDecodeError, ValueError) as e:
                    raise ProxyError(response.status, f"Invalid JSON from news provider: {e}")

        except aiohttp.ClientError as e:
            raise ProxyError(None, f"News provider unreachable: {e}")
        except asyncio.TimeoutError:
            raise ProxyError(None, "News provider timeout")
