from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

from app.errors import InvalidSymbolError

Exchange = Literal["NSE", "BSE"]

EXCHANGES: tuple[str, ...] = ("NSE", "BSE")
SYMBOL_PATTERN = re.compile(r"^[A-Z0-9&\-]+$")
MAX_SYMBOL_LENGTH = 20


def normalize_symbol(symbol: str) -> str:
    value = str(symbol or "").strip().upper()
    if not value:
        raise InvalidSymbolError("Stock symbol is required", symbol=value)
    if len(value) > MAX_SYMBOL_LENGTH:
        raise InvalidSymbolError(
            f"Stock symbol {value} is longer than {MAX_SYMBOL_LENGTH} characters",
            symbol=value,
        )
    if not SYMBOL_PATTERN.match(value):
        raise InvalidSymbolError(
            "Stock symbol can only contain letters, numbers, & and -",
            symbol=value,
        )
    return value


def normalize_exchange(exchange: str) -> str:
    value = str(exchange or "").strip().upper()
    if value not in EXCHANGES:
        raise InvalidSymbolError(
            "exchange must be one of: NSE, BSE",
            exchange=value,
            code="INVALID_EXCHANGE",
        )
    return value


class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    exchange: Exchange
    price: float
    fetched_at: int
    source: str


class QuoteRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    exchange: Exchange

    @field_validator("exchange", mode="before")
    @classmethod
    def normalize_exchange_case(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @classmethod
    def coerce(cls, value: "QuoteRequest | tuple | list | dict") -> "QuoteRequest":
        """Accept a request, a ``(symbol, exchange)`` pair or a mapping.

        Only the shape and the exchange are checked here; symbol validation is a
        per-item outcome of the fetch.
        """
        if isinstance(value, QuoteRequest):
            return value
        if isinstance(value, dict):
            symbol, exchange = value.get("symbol"), value.get("exchange")
        elif isinstance(value, (tuple, list)) and len(value) == 2:
            symbol, exchange = value
        else:
            raise ValueError(f"malformed quote request: {value!r}")
        if not isinstance(symbol, str) or not isinstance(exchange, str):
            raise ValueError(f"malformed quote request: {value!r}")
        exchange = exchange.strip().upper()
        if exchange not in EXCHANGES:
            raise ValueError(f"malformed quote request, unknown exchange: {value!r}")
        return cls(symbol=symbol, exchange=exchange)


class QuoteResult(BaseModel):
    request: QuoteRequest
    quote: Quote | None = None
    error: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.quote is not None
