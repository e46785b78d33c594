"""Coalescing of bursty attribute writes before they reach the store."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Hashable

from .store import COLORS, COUNTS, RADII, AttributeStore

_LOGGER = logging.getLogger("depotmap.debounce")

DEFAULT_DELAY_S = 0.3


class Debouncer:
    """Per-key last-write-wins delay; a newer submit discards the pending one."""

    def __init__(
        self,
        delay_s: float = DEFAULT_DELAY_S,
        *,
        timer_factory: Callable[[float, Callable[[], None]], Any] = threading.Timer,
    ) -> None:
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        self.delay_s = delay_s
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: dict[Hashable, tuple[Any, Callable[[], None]]] = {}

    @property
    def pending_keys(self) -> tuple[Hashable, ...]:
        with self._lock:
            return tuple(self._pending)

    def submit(self, key: Hashable, action: Callable[[], None]) -> None:
        with self._lock:
            previous = self._pending.pop(key, None)
            if previous is not None:
                previous[0].cancel()
            timer = self._timer_factory(self.delay_s, lambda: self._fire(key, timer))
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._pending[key] = (timer, action)
        timer.start()

    def flush(self) -> int:
        """Run every pending action now, in submission order."""
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for timer, action in pending:
            timer.cancel()
            action()
        return len(pending)

    def cancel(self, key: Hashable | None = None) -> None:
        with self._lock:
            if key is None:
                entries = list(self._pending.values())
                self._pending.clear()
            else:
                entry = self._pending.pop(key, None)
                entries = [] if entry is None else [entry]
        for timer, _ in entries:
            timer.cancel()

    def _fire(self, key: Hashable, timer: Any) -> None:
        with self._lock:
            entry = self._pending.get(key)
            if entry is None or entry[0] is not timer:
                return
            del self._pending[key]
        entry[1]()


class AttributeSync:
    """Debounced writes to the store with a busy flag and the last failure."""

    def __init__(self, store: AttributeStore, debouncer: Debouncer | None = None) -> None:
        self.store = store
        self.debouncer = debouncer or Debouncer(store.cfg.debounce_s)
        self.last_error: str | None = None
        self._in_flight = 0
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        with self._lock:
            in_flight = self._in_flight
        return in_flight > 0 or bool(self.debouncer.pending_keys)

    def set_count(self, city_name: str, count: int) -> None:
        self._schedule(COUNTS, city_name, count)

    def set_color(self, city_name: str, color: str) -> None:
        self._schedule(COLORS, city_name, color)

    def set_radius(self, depot_id: str, radius_km: float) -> None:
        self._schedule(RADII, depot_id, radius_km)

    def flush(self) -> int:
        return self.debouncer.flush()

    def _schedule(self, collection: str, key: str, value: Any) -> None:
        self.debouncer.submit((collection, key), lambda: self._write(collection, key, value))

    def _write(self, collection: str, key: str, value: Any) -> None:
        with self._lock:
            self._in_flight += 1
        try:
            ok = self.store.upsert(collection, key, value)
        finally:
            with self._lock:
                self._in_flight -= 1
        if ok:
            self.last_error = None
        else:
            self.last_error = f"{collection} update for '{key}' was not persisted"
            _LOGGER.warning("%s", self.last_error)
