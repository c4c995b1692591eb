"""
Refresh scheduler for the Khelinfo backend

Handles:
- One supervised tick loop per cached resource type at its own cadence
- An immediate first refresh at startup
- Skipping a tick while that resource's previous refresh is still running
- Recording upstream failures without disturbing the cached snapshot
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .cache import CacheStore
from .client import FetchError, UpstreamClient
from .config import PollingConfig
from .parser import DataParser
from .resources import RESOURCES, ResourceSpec, ResourceType

logger = logging.getLogger(__name__)


class RefreshState(Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class RefreshResult:
    """Result of a single refresh run"""
    resource_type: ResourceType
    success: bool
    skipped: bool = False
    item_count: int = 0
    http_status: Optional[int] = None
    error_message: str = ""
    duration_ms: int = 0


@dataclass
class ScheduledResource:
    """Schedule entry and run bookkeeping for one resource type"""
    spec: ResourceSpec
    interval: int
    state: RefreshState = RefreshState.IDLE
    task: Optional[asyncio.Task] = None
    last_run_time: float = 0
    last_successful_run: float = 0
    consecutive_failures: int = 0
    total_runs: int = 0
    skipped_ticks: int = 0

    @property
    def resource_type(self) -> ResourceType:
        return self.spec.resource_type


class RefreshScheduler:
    """Drives per-resource refreshes from upstream into the cache store"""

    def __init__(self, polling: PollingConfig, cache: CacheStore,
                 client: UpstreamClient, parser: DataParser):
        self.cache = cache
        self.client = client
        self.parser = parser

        self.schedule: Dict[ResourceType, ScheduledResource] = {}
        for resource_type in cache.resource_types:
            spec = RESOURCES[resource_type]
            self.schedule[resource_type] = ScheduledResource(
                spec=spec, interval=spec.interval(polling)
            )

        self.polling_active = False
        self.loop_tasks: Dict[ResourceType, asyncio.Task] = {}

    async def start_polling(self):
        """Start one tick loop per resource type"""
        if self.polling_active:
            logger.warning("Polling already active")
            return

        self.polling_active = True

        for resource_type in self.schedule:
            task = asyncio.create_task(self._tick_loop(resource_type))
            self.loop_tasks[resource_type] = task

        logger.info(f"Started refresh scheduler for {len(self.schedule)} resources")

    async def stop_polling(self):
        """Cancel tick loops and any refresh still in flight"""
        if not self.polling_active:
            return

        self.polling_active = False

        tasks = list(self.loop_tasks.values())
        tasks.extend(entry.task for entry in self.schedule.values()
                     if entry.task and not entry.task.done())
        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self.loop_tasks.clear()
        logger.info("Stopped refresh scheduler")

    async def _tick_loop(self, resource_type: ResourceType):
        """Fire a tick now, then once per interval, for a single resource type"""
        entry = self.schedule[resource_type]

        while self.polling_active:
            try:
                self.trigger(resource_type)
                await asyncio.sleep(entry.interval)
            except asyncio.CancelledError:
                logger.debug(f"Tick loop cancelled for {resource_type.value}")
                break
            except Exception:
                logger.exception(f"Error in tick loop for {resource_type.value}")
                await asyncio.sleep(entry.interval)

    def trigger(self, resource_type: ResourceType) -> Optional[asyncio.Task]:
        """Spawn a refresh unless one is already running; returns the spawned task"""
        entry = self.schedule[resource_type]

        if entry.state is RefreshState.RUNNING:
            entry.skipped_ticks += 1
            logger.debug(f"Skipping tick for {resource_type.value}: previous refresh still running")
            return None

        # Flip the guard before the task gets a chance to run
        entry.state = RefreshState.RUNNING
        entry.task = asyncio.create_task(self._run_refresh(entry))
        return entry.task

    async def refresh(self, resource_type: ResourceType) -> RefreshResult:
        """Run one refresh inline, honouring the same not-already-running guard"""
        entry = self.schedule[resource_type]

        if entry.state is RefreshState.RUNNING:
            entry.skipped_ticks += 1
            return RefreshResult(resource_type=resource_type, success=False, skipped=True)

        entry.state = RefreshState.RUNNING
        return await self._run_refresh(entry)

    async def _run_refresh(self, entry: ScheduledResource) -> RefreshResult:
        """Fetch, normalize and write one resource; always returns to IDLE"""
        resource_type = entry.resource_type
        spec = entry.spec
        start_time = time.time()

        entry.total_runs += 1
        entry.last_run_time = start_time

        try:
            payload = await self.client.fetch(spec.endpoint, spec.params)
            items = self.parser.normalize(resource_type, payload['data'])

            if resource_type is ResourceType.LIVE_SCORES:
                self.cache.merge_live_matches(items)
            else:
                self.cache.replace(resource_type, items)

        except FetchError as e:
            entry.consecutive_failures += 1
            self.cache.record_error(resource_type, e)
            logger.warning(f"Refresh failed for {resource_type.value}: {e}")
            return RefreshResult(
                resource_type=resource_type,
                success=False,
                http_status=e.status,
                error_message=str(e),
                duration_ms=int((time.time() - start_time) * 1000)
            )

        except Exception as e:
            entry.consecutive_failures += 1
            self.cache.record_error(resource_type, e)
            logger.exception(f"Unexpected error refreshing {resource_type.value}")
            return RefreshResult(
                resource_type=resource_type,
                success=False,
                error_message=str(e),
                duration_ms=int((time.time() - start_time) * 1000)
            )

        finally:
            entry.state = RefreshState.IDLE

        entry.consecutive_failures = 0
        entry.last_successful_run = time.time()

        logger.debug(f"Refreshed {resource_type.value}: {len(items)} items, "
                     f"next in {entry.interval}s")

        return RefreshResult(
            resource_type=resource_type,
            success=True,
            item_count=len(items),
            duration_ms=int((time.time() - start_time) * 1000)
        )

    def get_polling_stats(self) -> Dict[str, Any]:
        """Get per-resource scheduling statistics"""
        stats = {
            'polling_active': self.polling_active,
            'total_resources': len(self.schedule),
            'resources': {}
        }

        for resource_type, entry in self.schedule.items():
            stats['resources'][resource_type.value] = {
                'state': entry.state.value,
                'interval': entry.interval,
                'last_run_time': entry.last_run_time,
                'last_successful_run': entry.last_successful_run,
                'consecutive_failures': entry.consecutive_failures,
                'total_runs': entry.total_runs,
                'skipped_ticks': entry.skipped_ticks,
            }

        return stats


def create_scheduler(polling: PollingConfig, cache: CacheStore,
                     client: UpstreamClient, parser: DataParser) -> RefreshScheduler:
    """Create and initialize the refresh scheduler"""
    return RefreshScheduler(polling, cache, client, parser)
