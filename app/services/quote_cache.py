from __future__ import annotations

import threading
import time
from typing import Callable

from pydantic import BaseModel, ConfigDict

from app.schemas.quote import Quote


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    quote: Quote
    inserted_at: float


class PriceCache:
    """TTL-bounded quote cache keyed by (symbol, exchange), case-insensitive.

    The lock only guards dict access; it is never held across network I/O.
    """

    def __init__(self, ttl_sec: float = 60.0, clock: Callable[[], float] | None = None) -> None:
        self.ttl_sec = ttl_sec
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._rows: dict[tuple[str, str], CacheEntry] = {}
        self.evictions = 0

    @staticmethod
    def _key(symbol: str, exchange: str) -> tuple[str, str]:
        return str(symbol).strip().upper(), str(exchange).strip().upper()

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return (now - entry.inserted_at) > self.ttl_sec

    def get(self, symbol: str, exchange: str) -> Quote | None:
        key = self._key(symbol, exchange)
        now = self._clock()
        with self._lock:
            entry = self._rows.get(key)
            if entry is None:
                return None
            if self._expired(entry, now):
                self._rows.pop(key, None)
                self.evictions += 1
                return None
            return entry.quote

    def put(self, quote: Quote) -> None:
        key = self._key(quote.symbol, quote.exchange)
        entry = CacheEntry(quote=quote, inserted_at=self._clock())
        with self._lock:
            self._rows[key] = entry

    def clear(self) -> int:
        with self._lock:
            count = len(self._rows)
            self._rows.clear()
            return count

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, entry in self._rows.items() if self._expired(entry, now)]
            for k in expired:
                self._rows.pop(k, None)
            self.evictions += len(expired)
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)
