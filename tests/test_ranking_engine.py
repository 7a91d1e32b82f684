import math
import unittest

from app.errors import RankingContractError
from app.schemas.participant import Participant
from app.schemas.quote import Quote, QuoteRequest, QuoteResult
from app.services.ranking import RankingEngine, percent_change


def participant(pid: str, symbol: str, *, lfp=100.0, cmp=None, change=0.0, rank=0) -> Participant:
    return Participant(
        id=pid,
        name=f"player-{pid}",
        symbol=symbol,
        exchange="NSE",
        last_friday_price=lfp,
        cmp=cmp if cmp is not None else lfp,
        change=change,
        rank=rank,
    )


def ok(symbol: str, price: float) -> QuoteResult:
    return QuoteResult(
        request=QuoteRequest(symbol=symbol, exchange="NSE"),
        quote=Quote(symbol=symbol, exchange="NSE", price=price, fetched_at=1700000000, source="direct"),
    )


def failed(symbol: str) -> QuoteResult:
    return QuoteResult(
        request=QuoteRequest(symbol=symbol, exchange="NSE"),
        error="QUOTE_UNAVAILABLE",
        message=f"Failed to fetch price for {symbol} on NSE.",
    )


class TestRankingEngine(unittest.TestCase):
    def setUp(self):
        self.engine = RankingEngine()

    def test_fresh_and_failed_quotes_end_to_end(self):
        participants = [
            participant("1", "TCS", lfp=100.0, cmp=100.0),
            participant("2", "INFY", lfp=200.0, cmp=200.0),
        ]
        updates = self.engine.compute_updates(participants, [ok("TCS", 110.0), failed("INFY")])

        self.assertEqual(
            [u.model_dump() for u in updates],
            [
                {"id": "1", "cmp": 110.0, "change": 10.0, "rank": 1},
                {"id": "2", "cmp": 200.0, "change": 0.0, "rank": 2},
            ],
        )

    def test_ties_keep_input_order_on_every_run(self):
        participants = [
            participant("A", "AAA", change=5.2),
            participant("B", "BBB", change=5.2),
            participant("C", "CCC", change=1.0),
        ]
        results = [failed("AAA"), failed("BBB"), failed("CCC")]

        for _ in range(5):
            updates = self.engine.compute_updates(participants, results)
            self.assertEqual({u.id: u.rank for u in updates}, {"A": 1, "B": 2, "C": 3})

    def test_fresh_ties_keep_input_order(self):
        participants = [participant("B", "BBB"), participant("A", "AAA")]
        updates = self.engine.compute_updates(participants, [ok("BBB", 105.2), ok("AAA", 105.2)])

        self.assertEqual([(u.id, u.change, u.rank) for u in updates], [("B", 5.2, 1), ("A", 5.2, 2)])

    def test_zero_or_missing_reference_price_yields_zero_change(self):
        participants = [
            participant("1", "ZERO", lfp=0.0, cmp=0.0),
            participant("2", "NONE", lfp=None, cmp=50.0),
        ]
        updates = self.engine.compute_updates(participants, [ok("ZERO", 123.45), ok("NONE", 60.0)])

        for u in updates:
            self.assertEqual(u.change, 0.0)
            self.assertTrue(math.isfinite(u.change))
        self.assertEqual([u.rank for u in updates], [1, 2])

    def test_failed_fetch_keeps_previous_values_verbatim(self):
        participants = [
            participant("1", "WIPRO", lfp=450.0, cmp=435.37, change=-3.25, rank=1),
            participant("2", "ITC", lfp=400.0),
        ]
        updates = self.engine.compute_updates(participants, [failed("WIPRO"), ok("ITC", 380.0)])

        by_id = {u.id: u for u in updates}
        self.assertEqual(by_id["1"].cmp, 435.37)
        self.assertEqual(by_id["1"].change, -3.25)
        self.assertEqual(by_id["1"].rank, 1)
        self.assertEqual(by_id["2"].change, -5.0)
        self.assertEqual(by_id["2"].rank, 2)

    def test_non_finite_stale_change_ranks_as_zero(self):
        participants = [
            participant("1", "NAN", change=float("nan")),
            participant("2", "UP", lfp=100.0),
            participant("3", "DOWN", lfp=100.0),
        ]
        updates = self.engine.compute_updates(
            participants, [failed("NAN"), ok("UP", 101.0), ok("DOWN", 99.0)]
        )

        self.assertEqual([(u.id, u.change) for u in updates], [("2", 1.0), ("1", 0.0), ("3", -1.0)])

    def test_ranks_are_dense_from_one_and_sorted_descending(self):
        participants = [participant(str(i), f"S{i}") for i in range(6)]
        prices = [95.0, 120.0, 100.0, 87.5, 133.33, 101.0]
        results = [ok(f"S{i}", price) for i, price in enumerate(prices)]

        updates = self.engine.compute_updates(participants, results)

        self.assertEqual([u.rank for u in updates], [1, 2, 3, 4, 5, 6])
        changes = [u.change for u in updates]
        self.assertEqual(changes, sorted(changes, reverse=True))
        self.assertEqual(updates[0].id, "4")

    def test_change_is_rounded_to_two_decimals(self):
        self.assertEqual(percent_change(4.0, 3.0), 33.33)
        self.assertEqual(percent_change(2.0, 3.0), -33.33)

    def test_mismatched_lengths_is_contract_error(self):
        with self.assertRaises(RankingContractError):
            self.engine.compute_updates([participant("1", "TCS")], [])
        with self.assertRaises(ValueError):
            self.engine.compute_updates([], [ok("TCS", 1.0)])

    def test_misaligned_result_is_contract_error(self):
        with self.assertRaises(RankingContractError):
            self.engine.compute_updates([participant("1", "TCS")], [ok("INFY", 1.0)])

    def test_lowercase_stored_symbol_still_aligns(self):
        updates = self.engine.compute_updates([participant("1", "tcs")], [ok("TCS", 110.0)])
        self.assertEqual(updates[0].change, 10.0)

    def test_empty_roster_yields_no_updates(self):
        self.assertEqual(self.engine.compute_updates([], []), [])


if __name__ == "__main__":
    unittest.main()
