"""Per-client window state and the store that owns it.

Notes:
- One WindowRecord per client key at any time.
- The store lock is re-entrant; limiters hold it across a whole
  read-modify-write so concurrent checks for one key cannot both take
  the last slot.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class WindowRecord:
    """Admission state of one client.

    Attributes:
        count: Requests counted in the current window.
        window_start: When the current window (or lockout) opened, in ms.
        reset_at: When the record stops constraining the client, in ms.
        violations: Consecutive rejected requests.
        blocked_until: Lockout deadline used by the sliding strategy.
        hits: Admitted timestamps inside the trailing window (sliding only).
    """

    count: int
    window_start: float
    reset_at: float
    violations: int = 0
    blocked_until: float = 0.0
    hits: deque[float] = field(default_factory=deque)

    def is_expired(self, now: float) -> bool:
        return now >= self.reset_at


class WindowStore:
    """Mapping from client key to WindowRecord, owned by a single limiter."""

    def __init__(self) -> None:
        self._records: dict[str, WindowRecord] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._records

    @contextmanager
    def locked(self) -> Iterator["WindowStore"]:
        """Hold the store lock for a multi-step update."""
        with self._lock:
            yield self

    def get(self, key: str) -> WindowRecord | None:
        with self._lock:
            return self._records.get(key)

    def put(self, key: str, record: WindowRecord) -> None:
        with self._lock:
            self._records[key] = record

    def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def remove_expired(self, now: float) -> int:
        """Delete every record whose reset_at has passed.

        Args:
            now: Current timestamp in ms.

        Returns:
            Number of deleted records.
        """
        with self._lock:
            expired = [key for key, record in self._records.items() if record.is_expired(now)]
            for key in expired:
                del self._records[key]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
