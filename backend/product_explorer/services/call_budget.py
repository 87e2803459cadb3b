"""
Per-identity call budget for the hosted completion service.

Cost control only: read-check-increment with no cross-process coordination,
so concurrent requests may briefly overshoot. The store is injected so tests
can reset it and a shared store can replace the in-memory one.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

DAY_SECONDS = 24 * 60 * 60


@dataclass
class BudgetWindow:
    started_at: float
    count: int


class BudgetStore(Protocol):
    def get(self, key: str) -> Optional[BudgetWindow]:
        ...

    def set(self, key: str, window: BudgetWindow) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryBudgetStore:
    """Process-local store; resets on restart."""

    def __init__(self) -> None:
        self._windows: dict[str, BudgetWindow] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[BudgetWindow]:
        with self._lock:
            return self._windows.get(key)

    def set(self, key: str, window: BudgetWindow) -> None:
        with self._lock:
            self._windows[key] = window

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()


class CallBudget:
    """Fixed number of calls per identity per window (24h by default)."""

    def __init__(
        self,
        limit: int,
        store: Optional[BudgetStore] = None,
        window_seconds: int = DAY_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limit = limit
        self.store = store if store is not None else InMemoryBudgetStore()
        self.window_seconds = window_seconds
        self.clock = clock

    def _current(self, identity: str) -> BudgetWindow:
        now = self.clock()
        window = self.store.get(identity)
        if window is None or now - window.started_at >= self.window_seconds:
            window = BudgetWindow(started_at=now, count=0)
        return window

    def remaining(self, identity: str) -> int:
        return max(self.limit - self._current(identity).count, 0)

    def try_acquire(self, identity: str) -> bool:
        """Count one call for identity; False (nothing counted) once the budget is spent."""
        window = self._current(identity)
        if window.count >= self.limit:
            return False
        window.count += 1
        self.store.set(identity, window)
        return True

    def refund(self, identity: str) -> None:
        """Give back one call counted in the current window (no call was actually made)."""
        window = self._current(identity)
        if window.count > 0:
            window.count -= 1
            self.store.set(identity, window)

    def reset(self) -> None:
        self.store.clear()
