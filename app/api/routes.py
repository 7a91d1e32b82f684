from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from app.errors import (
    InvalidSymbolError,
    NoParticipantsError,
    QuoteUnavailableError,
    RefreshFailedError,
)
from app.schemas.participant import Participant
from app.schemas.quote import QuoteRequest

router = APIRouter()


class QuoteBatchRequest(BaseModel):
    requests: list[QuoteRequest]


@router.get('/quotes/{exchange}/{symbol}')
def get_quote(exchange: str, symbol: str, request: Request):
    fetcher = request.app.state.quote_fetcher
    try:
        quote = fetcher.fetch_price(symbol, exchange)
    except InvalidSymbolError as exc:
        raise HTTPException(status_code=400, detail=exc.to_detail()) from exc
    except QuoteUnavailableError as exc:
        raise HTTPException(status_code=503, detail=exc.to_detail()) from exc
    return quote.model_dump()


@router.post('/quotes/batch')
def get_quote_batch(req: QuoteBatchRequest, request: Request):
    fetcher = request.app.state.quote_fetcher
    results = fetcher.fetch_batch(req.requests)
    return [r.model_dump() for r in results]


@router.post('/quotes/cache/invalidate')
def invalidate_quote_cache(request: Request):
    request.app.state.quote_fetcher.invalidate()
    return {'ok': True}


@router.get('/leaderboard')
def get_leaderboard(request: Request):
    service = request.app.state.leaderboard_service
    return [p.model_dump() for p in service.leaderboard()]


@router.put('/participants/{participant_id}')
def save_participant(participant_id: str, participant: Participant, request: Request):
    if participant.id != participant_id:
        raise HTTPException(
            status_code=400, detail={'code': 'PARTICIPANT_ID_MISMATCH', 'message': 'body id must match path id'}
        )
    saved = request.app.state.leaderboard_service.save_participant(participant)
    return saved.model_dump()


@router.post('/leaderboard/refresh')
def refresh_leaderboard(request: Request):
    service = request.app.state.leaderboard_service
    try:
        summary = service.refresh_all()
    except NoParticipantsError as exc:
        raise HTTPException(
            status_code=404, detail={'code': exc.code, 'message': str(exc)}
        ) from exc
    except RefreshFailedError as exc:
        raise HTTPException(
            status_code=502, detail={'code': exc.code, 'message': exc.message}
        ) from exc
    return summary.model_dump()


@router.get('/metrics/quote')
def quote_metrics(request: Request):
    metrics = request.app.state.quote_fetcher.metrics()
    service = request.app.state.leaderboard_service
    metrics.update(
        {
            'refreshes': service.refreshes,
            'refresh_failures': service.refresh_failures,
        }
    )
    return metrics
