from __future__ import annotations

import logging
from typing import Callable, List, Optional

from src.clinical_records.domain.models.app_state import EMPTY_STATE, AppState
from src.clinical_records.domain.records.actions import Action, SetState
from src.clinical_records.domain.records.reducer import reduce
from src.clinical_records.infra.storage.snapshot import JsonFileSnapshotStorage, SnapshotStorageBackend

logger = logging.getLogger(__name__)

StateListener = Callable[[AppState], None]


class StateHolder:
    """Owns the aggregate state of the local records store.

    ``dispatch`` only runs the reducer and notifies listeners; it does no
    I/O. Callers that change state are expected to call :meth:`persist`
    afterwards. Readers get the current state through :attr:`state` and
    derive their views from it.
    """

    def __init__(self, storage: SnapshotStorageBackend, state: AppState = EMPTY_STATE) -> None:
        self._storage = storage
        self._state = state
        self._listeners: List[StateListener] = []

    @classmethod
    def start(cls, storage: SnapshotStorageBackend) -> "StateHolder":
        """Create a holder and hydrate it from the stored snapshot, if any.

        A missing or unreadable snapshot leaves the holder empty.
        """

        holder = cls(storage)
        snapshot = storage.load()
        if snapshot is not None:
            holder.dispatch(SetState(state=snapshot))
            logger.info(
                "Hydrated local store: %d patients, %d records, %d prescriptions",
                len(snapshot.patients),
                len(snapshot.records),
                len(snapshot.prescriptions),
            )
        return holder

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def persist(self) -> bool:
        """Write the current state to storage.

        A failed write is logged by the storage backend; the in-memory state
        stays authoritative until the next successful write.
        """

        saved = self._storage.save(self._state)
        if not saved:
            logger.warning("Local store changes are only held in memory")
        return saved


def start_holder(storage: Optional[SnapshotStorageBackend] = None) -> StateHolder:
    return StateHolder.start(storage or JsonFileSnapshotStorage())
