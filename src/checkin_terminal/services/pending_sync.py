from __future__ import annotations

from checkin_terminal.data import PENDING_SYNC_BUCKET, StateStore


class PendingSyncQueue:
    """Persisted, duplicate-free queue of ids awaiting remote acknowledgment.

    Ids are kept in insertion order so a sweep visits them deterministically.
    """

    def __init__(self, store: StateStore) -> None:
        self._store = store
        self._ids: dict[int, None] = {}
        self.reload()

    def reload(self) -> None:
        stored = self._store.load_pending()
        if stored is None:
            self._store.ensure_bucket(PENDING_SYNC_BUCKET)
            stored = []
        self._ids = dict.fromkeys(stored)

    def add(self, participant_id: int) -> None:
        if participant_id in self._ids:
            return
        self._store.add_pending(participant_id)
        self.remember(participant_id)

    def remember(self, participant_id: int) -> None:
        """Track an id whose pending row has already been persisted."""
        self._ids.setdefault(participant_id, None)

    def remove(self, participant_id: int) -> None:
        if participant_id not in self._ids:
            return
        self._store.remove_pending(participant_id)
        del self._ids[participant_id]

    def all(self) -> list[int]:
        return list(self._ids)

    def size(self) -> int:
        return len(self._ids)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)
