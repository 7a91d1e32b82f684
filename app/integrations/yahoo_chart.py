from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote, urlsplit

import requests
from pydantic import BaseModel, ConfigDict


class QuoteRoute(BaseModel):
    """One network path to the provider: direct, or a URL-prefix proxy."""

    model_config = ConfigDict(frozen=True)

    name: str
    prefix: str = ""

    @classmethod
    def parse(cls, raw: str) -> "QuoteRoute":
        value = raw.strip()
        if not value or value.lower() == "direct":
            return cls(name="direct")
        host = urlsplit(value).hostname
        if not host:
            raise ValueError(f"route must be 'direct' or an http(s) prefix: {raw!r}")
        return cls(name=host, prefix=value)

    def wrap(self, url: str) -> str:
        if not self.prefix:
            return url
        return self.prefix + quote(url, safe="")


def build_routes(raw_routes: list[str]) -> list[QuoteRoute]:
    routes = [QuoteRoute.parse(r) for r in raw_routes]
    if not routes:
        raise ValueError("at least one quote route is required")
    return routes


def _positive(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if number != number or number <= 0 or number == float("inf"):
        return None
    return number


def extract_meta(payload: Any) -> Dict[str, Any]:
    """Return ``chart.result[0].meta`` or raise ValueError on any other shape."""
    if not isinstance(payload, dict):
        raise ValueError("payload must be an object")
    chart = payload.get("chart")
    if not isinstance(chart, dict):
        raise ValueError("missing chart in payload")
    result = chart.get("result")
    if not isinstance(result, list) or not result or not isinstance(result[0], dict):
        raise ValueError("missing chart.result in payload")
    meta = result[0].get("meta")
    if not isinstance(meta, dict):
        raise ValueError("missing chart.result[0].meta in payload")
    return meta


def resolve_price(meta: Dict[str, Any]) -> Optional[float]:
    """Live trading price if usable, else the prior session's close."""
    for field in ("regularMarketPrice", "previousClose", "chartPreviousClose"):
        price = _positive(meta.get(field))
        if price is not None:
            return price
    return None


class YahooChartClient:
    """Yahoo Finance chart lookups for NSE/BSE listed symbols."""

    _EXCHANGE_SUFFIX = {"NSE": ".NS", "BSE": ".BO"}

    def __init__(
        self,
        base_url: str = "https://query1.finance.yahoo.com",
        timeout_sec: float = 8.0,
        session: Optional[Any] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.session = session or requests

    def provider_symbol(self, symbol: str, exchange: str) -> str:
        suffix = self._EXCHANGE_SUFFIX.get(exchange)
        if suffix is None:
            raise ValueError("exchange must be one of: NSE, BSE")
        return f"{symbol.upper()}{suffix}"

    def chart_url(self, provider_symbol: str) -> str:
        return f"{self.base_url}/v8/finance/chart/{provider_symbol}?interval=1d&range=1d"

    def get_chart(self, route: QuoteRoute, provider_symbol: str) -> Dict[str, Any]:
        response = self.session.get(
            route.wrap(self.chart_url(provider_symbol)),
            headers={"accept": "application/json"},
            timeout=self.timeout_sec,
        )
        response.raise_for_status()
        return response.json()
