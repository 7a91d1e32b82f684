from pydantic import BaseModel, field_validator

from app.schemas.quote import Exchange


class Participant(BaseModel):
    id: str
    name: str
    symbol: str
    exchange: Exchange
    last_friday_price: float | None = None
    cmp: float | None = None
    change: float = 0.0
    rank: int = 0

    @field_validator("exchange", mode="before")
    @classmethod
    def _upper_exchange(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class RankedUpdate(BaseModel):
    id: str
    cmp: float | None
    change: float
    rank: int


class RefreshSummary(BaseModel):
    total: int
    succeeded: int
    failed: int
    message: str
    updates: list[RankedUpdate]
