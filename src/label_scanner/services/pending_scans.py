"""Transient store for scans awaiting confirmation."""

import asyncio
import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from label_scanner.domain.scans import PendingScan

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class EvictionPolicy:
    """Bounds on how long and how many unconfirmed scans are kept."""

    ttl_seconds: int = 1800
    max_entries: int = 1000


@dataclass
class PendingScanStore:
    """Thread-safe map from scan id to image bytes.

    Entries are kept in insertion order so the oldest one is evicted first
    when ``max_entries`` is reached. ``take`` removes under the lock, so a
    scan id can be consumed at most once.
    """

    policy: EvictionPolicy = field(default_factory=EvictionPolicy)
    clock: Callable[[], datetime] = _utcnow
    _entries: "OrderedDict[str, PendingScan]" = field(
        default_factory=OrderedDict, init=False, repr=False
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def put(self, scan_id: str, image_bytes: bytes) -> None:
        """Store image bytes for a scan id, overwriting any previous entry."""
        entry = PendingScan(
            scan_id=scan_id, image_bytes=image_bytes, stored_at=self.clock()
        )
        with self._lock:
            self._entries.pop(scan_id, None)
            self._entries[scan_id] = entry
            while len(self._entries) > self.policy.max_entries:
                evicted_id, _ = self._entries.popitem(last=False)
                _logger.warning(
                    "Evicted pending scan at capacity",
                    extra={"scan_id": evicted_id},
                )

    def take(self, scan_id: str) -> bytes | None:
        """Remove and return the image bytes for a scan id, if present."""
        with self._lock:
            entry = self._entries.pop(scan_id, None)
        if entry is None or self._expired(entry, self.clock()):
            return None
        return entry.image_bytes

    def discard(self, scan_id: str) -> bool:
        """Drop a pending scan without consuming it."""
        with self._lock:
            return self._entries.pop(scan_id, None) is not None

    def sweep(self, now: datetime | None = None) -> int:
        """Drop expired entries and return how many were removed."""
        current = now or self.clock()
        with self._lock:
            expired = [
                scan_id
                for scan_id, entry in self._entries.items()
                if self._expired(entry, current)
            ]
            for scan_id in expired:
                del self._entries[scan_id]
        if expired:
            _logger.info("Swept %d expired pending scans", len(expired))
        return len(expired)

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep expired entries until cancelled."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, scan_id: object) -> bool:
        with self._lock:
            return scan_id in self._entries

    def _expired(self, entry: PendingScan, now: datetime) -> bool:
        return now - entry.stored_at >= timedelta(seconds=self.policy.ttl_seconds)
