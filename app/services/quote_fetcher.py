from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

import requests

from app.errors import (
    PayloadInvalidError,
    QuoteError,
    QuoteUnavailableError,
    TransportFailureError,
)
from app.integrations.yahoo_chart import QuoteRoute, extract_meta, resolve_price
from app.schemas.quote import (
    Quote,
    QuoteRequest,
    QuoteResult,
    normalize_exchange,
    normalize_symbol,
)
from app.services.quote_cache import PriceCache


class QuoteFetcher:
    """Cache-first price resolver that rotates through provider routes."""

    def __init__(
        self,
        *,
        client,
        routes: list[QuoteRoute],
        cache: PriceCache | None = None,
        max_attempts: int | None = None,
        batch_workers: int = 6,
    ) -> None:
        if not routes:
            raise ValueError("at least one quote route is required")
        if batch_workers < 1:
            raise ValueError("batch_workers must be at least 1")
        self.client = client
        self.routes = list(routes)
        self.cache = cache if cache is not None else PriceCache()
        self.max_attempts = max(1, max_attempts or len(self.routes))
        self.batch_workers = batch_workers

        self._cursor = 0
        self._cursor_lock = threading.Lock()
        self._metrics_lock = threading.Lock()
        self.metrics_counters = {
            "cache_hits": 0,
            "cache_misses": 0,
            "network_attempts": 0,
            "route_failures": 0,
            "quotes_fetched": 0,
            "quotes_unavailable": 0,
        }
        self.last_batch_requests = 0
        self.last_batch_succeeded = 0
        self.last_batch_failed = 0

    def _inc(self, key: str, value: int = 1) -> None:
        with self._metrics_lock:
            self.metrics_counters[key] = self.metrics_counters.get(key, 0) + value

    @property
    def route_cursor(self) -> int:
        with self._cursor_lock:
            return self._cursor

    def _advance_past(self, index: int) -> None:
        # concurrent failures of the same route move the cursor only once
        with self._cursor_lock:
            if self._cursor == index:
                self._cursor = (index + 1) % len(self.routes)

    def _attempt(self, route: QuoteRoute, provider_symbol: str, symbol: str, exchange: str) -> float:
        context = {"symbol": symbol, "exchange": exchange}
        try:
            payload = self.client.get_chart(route, provider_symbol)
        except requests.JSONDecodeError as exc:
            raise PayloadInvalidError(f"undecodable response: {exc}", **context) from exc
        except (requests.RequestException, OSError) as exc:
            raise TransportFailureError(f"{type(exc).__name__}: {exc}", route=route.name, **context) from exc
        except ValueError as exc:
            raise PayloadInvalidError(f"undecodable response: {exc}", **context) from exc

        try:
            meta = extract_meta(payload)
        except ValueError as exc:
            raise PayloadInvalidError(str(exc), **context) from exc

        price = resolve_price(meta)
        if price is not None:
            price = round(price, 2)
        if not price or price <= 0:
            raise PayloadInvalidError("no positive live price or previous close in chart meta", **context)
        return price

    def _fetch_network(self, symbol: str, exchange: str) -> Quote:
        provider_symbol = self.client.provider_symbol(symbol, exchange)
        start = self.route_cursor
        attempts: list[str] = []

        for attempt in range(self.max_attempts):
            index = (start + attempt) % len(self.routes)
            route = self.routes[index]
            self._inc("network_attempts")
            try:
                price = self._attempt(route, provider_symbol, symbol, exchange)
            except (TransportFailureError, PayloadInvalidError) as exc:
                attempts.append(f"{route.name}:{exc.code}")
                self._inc("route_failures")
                self._advance_past(index)
                print(
                    f"[QUOTE][route_failed] symbol={provider_symbol} route={route.name} "
                    f"attempt={attempt + 1}/{self.max_attempts} code={exc.code} error={exc.message}",
                    flush=True,
                )
                continue

            quote = Quote(
                symbol=symbol,
                exchange=exchange,
                price=price,
                fetched_at=int(time.time()),
                source=route.name,
            )
            self.cache.put(quote)
            self._inc("quotes_fetched")
            print(
                f"[QUOTE][fetched] symbol={provider_symbol} price={price:.2f} route={route.name} "
                f"attempts={attempt + 1}",
                flush=True,
            )
            return quote

        self._inc("quotes_unavailable")
        print(
            f"[QUOTE][unavailable] symbol={provider_symbol} code=QUOTE_UNAVAILABLE attempts={','.join(attempts)}",
            flush=True,
        )
        raise QuoteUnavailableError(
            f"Failed to fetch price for {symbol} on {exchange}. "
            f"Please verify: (1) Symbol is correct (2) Stock is listed on {exchange} "
            f"(3) Try again in a moment.",
            symbol=symbol,
            exchange=exchange,
            attempts=attempts,
        )

    def fetch_price(self, symbol: str, exchange: str) -> Quote:
        normalized = normalize_symbol(symbol)
        exchange = normalize_exchange(exchange)

        cached = self.cache.get(normalized, exchange)
        if cached is not None:
            self._inc("cache_hits")
            return cached

        self._inc("cache_misses")
        return self._fetch_network(normalized, exchange)

    def _resolve(self, request: QuoteRequest) -> QuoteResult:
        try:
            quote = self.fetch_price(request.symbol, request.exchange)
        except QuoteError as exc:
            return QuoteResult(request=request, error=exc.code, message=exc.message)
        return QuoteResult(request=request, quote=quote)

    def fetch_batch(self, batch: Iterable[QuoteRequest | tuple]) -> list[QuoteResult]:
        """Resolve every request on a fixed-size pool, keeping input order.

        Individual failures come back as error results. Only a malformed request
        raises, and it does so before any network activity.
        """
        items = [QuoteRequest.coerce(r) for r in batch]
        if not items:
            return []

        with ThreadPoolExecutor(max_workers=self.batch_workers, thread_name_prefix="quote-fetch") as pool:
            results = list(pool.map(self._resolve, items))

        succeeded = sum(1 for r in results if r.ok)
        self.last_batch_requests = len(results)
        self.last_batch_succeeded = succeeded
        self.last_batch_failed = len(results) - succeeded
        print(
            "[QUOTE][batch_resolve] "
            f"target_count={len(results)} succeeded={succeeded} failed={len(results) - succeeded} "
            f"workers={self.batch_workers}",
            flush=True,
        )
        return results

    def invalidate(self) -> None:
        cleared = self.cache.clear()
        print(f"[QUOTE][cache_invalidate] cleared={cleared}", flush=True)

    def metrics(self) -> dict[str, int]:
        self.cache.purge_expired()
        with self._metrics_lock:
            out = dict(self.metrics_counters)
        out.update(
            {
                "route_cursor": self.route_cursor,
                "cached_symbols": len(self.cache),
                "cache_evictions": self.cache.evictions,
                "batch_requests": self.last_batch_requests,
                "batch_succeeded": self.last_batch_succeeded,
                "batch_failed": self.last_batch_failed,
            }
        )
        return out
