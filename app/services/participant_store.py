from __future__ import annotations

import threading
from typing import Callable, Protocol

from app.schemas.participant import Participant, RankedUpdate

ChangeCallback = Callable[[list[Participant]], None]


class ParticipantStore(Protocol):
    def get_all(self) -> list[Participant]: ...

    def upsert(self, participant: Participant) -> None: ...

    def batch_apply(self, updates: list[RankedUpdate]) -> None: ...

    def subscribe(self, on_change: ChangeCallback) -> Callable[[], None]: ...


class InMemoryParticipantStore:
    """Process-local participant collection with all-or-nothing batch writes."""

    def __init__(self, participants: list[Participant] | None = None) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, Participant] = {}
        self._subscribers: list[ChangeCallback] = []
        for p in participants or []:
            self._rows[p.id] = p.model_copy(deep=True)

    def _snapshot(self) -> list[Participant]:
        return [p.model_copy(deep=True) for p in self._rows.values()]

    def _notify(self, snapshot: list[Participant]) -> None:
        for callback in list(self._subscribers):
            try:
                callback([p.model_copy(deep=True) for p in snapshot])
            except Exception as exc:
                print(f"[STORE][subscriber_error] error={exc}", flush=True)

    def get_all(self) -> list[Participant]:
        with self._lock:
            return self._snapshot()

    def upsert(self, participant: Participant) -> None:
        with self._lock:
            self._rows[participant.id] = participant.model_copy(deep=True)
            snapshot = self._snapshot()
        self._notify(snapshot)

    def batch_apply(self, updates: list[RankedUpdate]) -> None:
        with self._lock:
            missing = [u.id for u in updates if u.id not in self._rows]
            if missing:
                raise KeyError(f"unknown participant ids: {', '.join(missing)}")
            for u in updates:
                self._rows[u.id] = self._rows[u.id].model_copy(
                    update={"cmp": u.cmp, "change": u.change, "rank": u.rank}
                )
            snapshot = self._snapshot()
        print(f"[STORE][batch_apply] updated={len(updates)}", flush=True)
        self._notify(snapshot)

    def subscribe(self, on_change: ChangeCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(on_change)

        def _unsubscribe() -> None:
            with self._lock:
                if on_change in self._subscribers:
                    self._subscribers.remove(on_change)

        return _unsubscribe
