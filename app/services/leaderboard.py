from __future__ import annotations

from app.errors import NoParticipantsError, RefreshFailedError
from app.schemas.participant import Participant, RefreshSummary
from app.schemas.quote import Quote, QuoteRequest
from app.services.participant_store import ParticipantStore
from app.services.quote_fetcher import QuoteFetcher
from app.services.ranking import RankingEngine


class LeaderboardService:
    def __init__(
        self,
        *,
        store: ParticipantStore,
        quote_fetcher: QuoteFetcher,
        ranking_engine: RankingEngine | None = None,
    ) -> None:
        self.store = store
        self.quote_fetcher = quote_fetcher
        self.ranking_engine = ranking_engine or RankingEngine()
        self.refreshes = 0
        self.refresh_failures = 0

    def lookup_entry_price(self, symbol: str, exchange: str) -> Quote:
        return self.quote_fetcher.fetch_price(symbol, exchange)

    def save_participant(self, participant: Participant) -> Participant:
        self.store.upsert(participant)
        print(
            f"[LEADERBOARD][participant_saved] id={participant.id} symbol={participant.symbol} "
            f"exchange={participant.exchange}",
            flush=True,
        )
        return participant

    def leaderboard(self) -> list[Participant]:
        rows = self.store.get_all()
        # unranked entries sort last; sorted() keeps store order within equal keys
        return sorted(rows, key=lambda p: (p.rank == 0, p.rank))

    @staticmethod
    def _summary_message(succeeded: int, failed: int) -> str:
        if failed == 0:
            return "All prices refreshed successfully!"
        return f"Prices refreshed! ({succeeded} succeeded, {failed} failed)"

    def refresh_all(self) -> RefreshSummary:
        participants = self.store.get_all()
        if not participants:
            raise NoParticipantsError("No participants to refresh")

        self.quote_fetcher.invalidate()
        results = self.quote_fetcher.fetch_batch(
            [QuoteRequest.coerce((p.symbol, p.exchange)) for p in participants]
        )
        updates = self.ranking_engine.compute_updates(participants, results)

        succeeded = sum(1 for r in results if r.ok)
        failed = len(results) - succeeded
        if succeeded == 0:
            self.refresh_failures += 1
            print(f"[LEADERBOARD][refresh_failed] total={len(results)}", flush=True)
            raise RefreshFailedError(
                "Failed to fetch prices for any stocks. Please check your internet connection.",
                total=len(results),
            )

        self.store.batch_apply(updates)
        self.refreshes += 1
        print(
            f"[LEADERBOARD][refresh_complete] total={len(results)} succeeded={succeeded} failed={failed}",
            flush=True,
        )
        return RefreshSummary(
            total=len(results),
            succeeded=succeeded,
            failed=failed,
            message=self._summary_message(succeeded, failed),
            updates=updates,
        )
