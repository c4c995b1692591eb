"""
Upstream client for the SportMonks cricket API

Issues one GET per call with the access token attached and hands back the
decoded JSON payload. There is no retry and no timeout tuning: a failed
attempt surfaces as a FetchError straight away.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from .config import UpstreamConfig

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Upstream unreachable, non-2xx status or malformed payload"""

    def __init__(self, status: Optional[int], message: str):
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"HTTP {self.status}: {self.message}"


class UpstreamClient:
    """Thin aiohttp wrapper around the SportMonks REST API"""

    def __init__(self, config: UpstreamConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self.session = session
        self._owns_session = session is None

    async def start(self):
        """Open the HTTP session if one was not injected"""
        if self.session is None:
            self.session = aiohttp.ClientSession(
                headers={'User-Agent': self.config.user_agent}
            )
            self._owns_session = True

    async def close(self):
        if self.session and self._owns_session:
            await self.session.close()
        self.session = None

    async def __aenter__(self) -> 'UpstreamClient':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def build_url(self, endpoint: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    async def fetch(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """GET an endpoint and return its decoded payload, or raise FetchError"""
        if self.session is None:
            await self.start()

        url = self.build_url(endpoint)
        query = dict(params or {})
        query['api_token'] = self.config.api_token or ''

        start_time = time.time()
        try:
            async with self.session.get(url, params=query) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    raise FetchError(response.status, _error_message(body) or response.reason or "request failed")

                try:
                    payload = await response.json(content_type=None)
                except (json.JSONDecodeError, ValueError) as e:
                    raise FetchError(response.status, f"Invalid JSON: {e}")

                if not isinstance(payload, dict) or not isinstance(payload.get('data'), list):
                    raise FetchError(response.status, "Malformed payload: missing 'data' list")

        except aiohttp.ClientError as e:
            raise FetchError(None, f"Upstream unreachable: {e}")
        except asyncio.TimeoutError:
            raise FetchError(None, "Request timeout")

        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"Fetched {endpoint}: {len(payload['data'])} records in {duration_ms}ms")
        return payload


def _error_message(body: str) -> str:
    """Pull the provider's error message out of an error body when present"""
    try:
        decoded = json.loads(body)
    except (json.JSONDecodeError, ValueError):
        return body.strip()[:200]

    if isinstance(decoded, dict):
        error = decoded.get('error') or decoded.get('message')
        if isinstance(error, dict):
            return str(error.get('message', error))
        if error:
            return str(error)
    return body.strip()[:200]
