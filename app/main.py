from __future__ import annotations

from fastapi import FastAPI

from app.api.routes import router
from app.config.settings import Settings, get_settings
from app.integrations.yahoo_chart import YahooChartClient, build_routes
from app.services.leaderboard import LeaderboardService
from app.services.participant_store import InMemoryParticipantStore
from app.services.quote_cache import PriceCache
from app.services.quote_fetcher import QuoteFetcher


def build_quote_fetcher(settings: Settings, *, client=None) -> QuoteFetcher:
    return QuoteFetcher(
        client=client
        or YahooChartClient(
            base_url=settings.QUOTE_PROVIDER_BASE_URL,
            timeout_sec=settings.QUOTE_TIMEOUT_SEC,
        ),
        routes=build_routes(settings.QUOTE_ROUTES),
        cache=PriceCache(ttl_sec=settings.QUOTE_CACHE_TTL_SEC),
        max_attempts=settings.QUOTE_MAX_ATTEMPTS,
        batch_workers=settings.QUOTE_BATCH_WORKERS,
    )


def create_app(settings: Settings | None = None, *, client=None, store=None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Weekly Pick Quote Engine", version="0.1.0")
    app.include_router(router, prefix="/v1")

    app.state.settings = settings
    app.state.quote_fetcher = build_quote_fetcher(settings, client=client)
    app.state.participant_store = store if store is not None else InMemoryParticipantStore()
    app.state.leaderboard_service = LeaderboardService(
        store=app.state.participant_store,
        quote_fetcher=app.state.quote_fetcher,
    )
    print(
        f"[APP][startup] routes={','.join(r.name for r in app.state.quote_fetcher.routes)} "
        f"ttl_sec={settings.QUOTE_CACHE_TTL_SEC} workers={settings.QUOTE_BATCH_WORKERS}",
        flush=True,
    )
    return app


app = create_app()
