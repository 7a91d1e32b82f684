from __future__ import annotations

import math

from app.errors import RankingContractError
from app.schemas.participant import Participant, RankedUpdate
from app.schemas.quote import QuoteResult


def percent_change(price: float, reference: float | None) -> float:
    if not reference:
        return 0.0
    return round((price - reference) / reference * 100, 2)


def _finite(value: float | None) -> float:
    if value is None or not math.isfinite(value):
        return 0.0
    return float(value)


class RankingEngine:
    """Turns a completed quote batch into a total, stable leaderboard order.

    Participants whose fetch failed keep their previous ``cmp``/``change`` and
    are ranked on those stale values instead of being dropped. Ties keep the
    input order, so repeated refreshes of tied values never shuffle them.
    """

    @staticmethod
    def _check_alignment(participants: list[Participant], quote_results: list[QuoteResult]) -> None:
        if len(participants) != len(quote_results):
            raise RankingContractError(
                f"participants ({len(participants)}) and quote results ({len(quote_results)}) must align"
            )
        for p, result in zip(participants, quote_results):
            same_symbol = p.symbol.strip().upper() == result.request.symbol.strip().upper()
            same_exchange = p.exchange.strip().upper() == result.request.exchange
            if not (same_symbol and same_exchange):
                raise RankingContractError(
                    f"quote result {result.request.symbol}/{result.request.exchange} "
                    f"does not belong to participant {p.id} ({p.symbol}/{p.exchange})"
                )

    def compute_updates(
        self,
        participants: list[Participant],
        quote_results: list[QuoteResult],
    ) -> list[RankedUpdate]:
        self._check_alignment(participants, quote_results)

        rows: list[tuple[str, float | None, float]] = []
        for p, result in zip(participants, quote_results):
            if result.quote is not None:
                cmp = result.quote.price
                change = _finite(percent_change(cmp, p.last_friday_price))
            else:
                cmp = p.cmp
                change = _finite(p.change)
            rows.append((p.id, cmp, change))

        ordered = sorted(rows, key=lambda row: row[2], reverse=True)
        updates = [
            RankedUpdate(id=pid, cmp=cmp, change=change, rank=position)
            for position, (pid, cmp, change) in enumerate(ordered, start=1)
        ]

        succeeded = sum(1 for r in quote_results if r.ok)
        print(
            f"[RANK][ranked] participants={len(updates)} fresh={succeeded} stale={len(updates) - succeeded}",
            flush=True,
        )
        return updates
