"""
In-memory resource cache for the Khelinfo backend

Holds one slot per cached resource type:
- Whole-collection replacement for static resources
- Merge-by-id with a bounded window for live matches
- Last error bookkeeping that never touches the cached items

Each slot is an immutable CacheSlot. Writers build a new slot and swap the
reference under a lock held only for that in-memory write; readers grab the
current reference without locking, so a read sees either the old or the new
collection and never a mix of both.
"""

import itertools
import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import CacheConfig
from .resources import CACHED_RESOURCES, ResourceType

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


@dataclass(frozen=True)
class ErrorInfo:
    """Last refresh failure recorded for a slot"""
    status: Optional[int]
    message: str
    occurred_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'message': self.message,
            'occurred_at': self.occurred_at,
        }


@dataclass(frozen=True)
class CacheSlot:
    """Snapshot of one resource type"""
    items: Tuple[Record, ...] = ()
    last_updated: Optional[float] = None
    last_error: Optional[ErrorInfo] = None


class CacheStore:
    """Owned cache of the latest normalized collection per resource type"""

    def __init__(self, config: Optional[CacheConfig] = None,
                 resource_types: Iterable[ResourceType] = CACHED_RESOURCES):
        self.config = config or CacheConfig()
        self._slots: Dict[ResourceType, CacheSlot] = {
            resource_type: CacheSlot() for resource_type in resource_types
        }
        self._write_lock = threading.Lock()

        # Live match id -> sequence number of its last merge
        self._touch_sequence = itertools.count()
        self._touched: Dict[Any, int] = {}

    @property
    def resource_types(self) -> List[ResourceType]:
        return list(self._slots)

    def get_slot(self, resource_type: ResourceType) -> CacheSlot:
        """Current slot for a resource type; raises KeyError if not cached"""
        return self._slots[resource_type]

    def read(self, resource_type: ResourceType) -> List[Record]:
        """Return the current items without waiting on any writer"""
        return list(self._slots[resource_type].items)

    def replace(self, resource_type: ResourceType, items: Iterable[Record]):
        """Swap the slot's items wholesale and clear its last error"""
        if resource_type is ResourceType.LIVE_SCORES:
            # Live matches keep their id and size rules even on a full swap
            self._write_live_matches(items, start_empty=True)
            return

        new_items = tuple(items)

        with self._write_lock:
            current = self._slots[resource_type]
            self._slots[resource_type] = replace(
                current, items=new_items, last_updated=time.time(), last_error=None
            )

        logger.debug(f"Replaced {resource_type.value}: {len(new_items)} items")

    def merge_live_matches(self, new_matches: Iterable[Record]):
        """Update-or-append live matches by id, keeping the most recently touched ones"""
        self._write_live_matches(new_matches, start_empty=False)

    def _write_live_matches(self, new_matches: Iterable[Record], start_empty: bool):
        limit = self.config.live_match_limit
        skipped = 0

        with self._write_lock:
            current = self._slots[ResourceType.LIVE_SCORES]
            merged: List[Record] = []
            positions: Dict[Any, int] = {}
            touched: Dict[Any, int] = {}

            if not start_empty:
                for match in current.items:
                    match_id = match.get('id') if isinstance(match, dict) else None
                    if match_id is None or match_id in positions:
                        continue
                    positions[match_id] = len(merged)
                    merged.append(match)
                    touched[match_id] = self._touched.get(match_id, -1)

            for match in new_matches:
                if not isinstance(match, dict) or match.get('id') is None:
                    skipped += 1
                    continue

                match_id = match['id']
                if match_id in positions:
                    merged[positions[match_id]] = match
                else:
                    positions[match_id] = len(merged)
                    merged.append(match)
                touched[match_id] = next(self._touch_sequence)

            evicted = []
            if len(merged) > limit:
                by_age = sorted(positions, key=lambda match_id: touched[match_id])
                evicted = by_age[:len(merged) - limit]
                keep = set(by_age[len(merged) - limit:])
                merged = [match for match in merged if match['id'] in keep]
                touched = {match_id: seq for match_id, seq in touched.items() if match_id in keep}

            self._touched = touched
            self._slots[ResourceType.LIVE_SCORES] = replace(
                current, items=tuple(merged), last_updated=time.time(), last_error=None
            )

        if skipped:
            logger.warning(f"Ignored {skipped} live matches without an id")
        if evicted:
            logger.debug(f"Evicted live matches {evicted}")

    def record_error(self, resource_type: ResourceType, error: Exception):
        """Remember the latest failure without touching the cached items"""
        info = ErrorInfo(
            status=getattr(error, 'status', None),
            message=getattr(error, 'message', None) or str(error) or type(error).__name__,
            occurred_at=time.time(),
        )

        with self._write_lock:
            current = self._slots[resource_type]
            self._slots[resource_type] = replace(current, last_error=info)

    def get_cache_stats(self) -> Dict[str, Any]:
        """Per-slot item counts, ages and last errors"""
        current_time = time.time()
        stats = {}

        for resource_type, slot in self._slots.items():
            stats[resource_type.value] = {
                'items': len(slot.items),
                'last_updated': slot.last_updated,
                'age_seconds': (
                    round(current_time - slot.last_updated, 1)
                    if slot.last_updated is not None else None
                ),
                'last_error': slot.last_error.to_dict() if slot.last_error else None,
            }

        return stats
