from __future__ import annotations


class QuoteError(Exception):
    """Base for classified quote lookup failures."""

    code = "QUOTE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        symbol: str | None = None,
        exchange: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.symbol = symbol
        self.exchange = exchange
        if code is not None:
            self.code = code

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidSymbolError(QuoteError):
    code = "INVALID_SYMBOL"


class TransportFailureError(QuoteError):
    code = "TRANSPORT_FAILURE"

    def __init__(self, message: str, *, route: str, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.route = route


class PayloadInvalidError(QuoteError):
    code = "PAYLOAD_INVALID"


class QuoteUnavailableError(QuoteError):
    code = "QUOTE_UNAVAILABLE"

    def __init__(self, message: str, *, attempts: list[str] | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.attempts = list(attempts or [])


class RankingContractError(ValueError):
    pass


class NoParticipantsError(Exception):
    code = "NO_PARTICIPANTS"


class RefreshFailedError(Exception):
    code = "REFRESH_FAILED"

    def __init__(self, message: str, *, total: int) -> None:
        super().__init__(message)
        self.message = message
        self.total = total
