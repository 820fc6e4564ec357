from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from checkin_terminal.data import StateStore
from checkin_terminal.models import Participant, ParticipantStatus
from checkin_terminal.services.roster_api import MalformedRosterError, RosterApiClient, RosterApiError

logger = logging.getLogger(__name__)


class NoRosterAvailable(RuntimeError):
    """Raised when neither the roster authority nor the local snapshot can supply a roster."""


class UnknownParticipantError(KeyError):
    """Raised when a status update targets an id that is not on the roster."""


class RosterCache:
    """Local, id-indexed snapshot of the participant roster."""

    def __init__(self, store: StateStore, client: RosterApiClient | None = None) -> None:
        self._store = store
        self._client = client
        self._participants: dict[int, Participant] | None = None
        self.loaded_from_remote = False

    @property
    def is_loaded(self) -> bool:
        return self._participants is not None

    async def load(self, checked_in: Iterable[int] = ()) -> list[Participant]:
        """Refresh the snapshot from the authority, falling back to the stored copy.

        Ids in ``checked_in`` were accepted locally; they keep the ``attended``
        status even when the authority has not caught up with them yet.
        """
        if self._client is not None:
            try:
                participants = await self._client.fetch_participants()
            except MalformedRosterError as exc:
                logger.warning("Roster response rejected (%s); using stored roster", exc)
            except RosterApiError as exc:
                logger.warning("Roster authority unreachable (%s); using stored roster", exc)
            else:
                self.replace(self._keep_attended(participants, checked_in))
                self.loaded_from_remote = True
                logger.info("Loaded %d participants from roster authority", len(participants))
                return self.all()

        self.loaded_from_remote = False
        stored = self._store.load_roster()
        if stored is None:
            self._participants = None
            logger.error("No roster available: authority unreachable and no stored snapshot")
            raise NoRosterAvailable("Unable to load participant data. Please refresh.")

        self._participants = {participant.id: participant for participant in stored}
        logger.info("Using stored roster with %d participants", len(stored))
        return self.all()

    def replace(self, participants: Iterable[Participant]) -> None:
        """Swap in a complete new snapshot and persist it."""
        snapshot: dict[int, Participant] = {}
        for participant in participants:
            snapshot[participant.id] = participant
        self._store.save_roster(snapshot.values())
        self._participants = snapshot

    def clear(self) -> None:
        """Drop the in-memory snapshot; the next read requires a fresh load."""
        self._participants = None
        self.loaded_from_remote = False

    def import_file(self, path: Path) -> list[Participant]:
        """Seed the snapshot from a JSON file holding a list of participant records."""
        with Path(path).open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        if not isinstance(raw, list) or not raw:
            raise ValueError(f"{path} does not contain a list of participants")
        participants = [Participant.from_dict(record) for record in raw]
        self.replace(participants)
        logger.info("Imported %d participants from %s", len(participants), path)
        return self.all()

    def lookup(self, participant_id: int) -> Optional[Participant]:
        return self._snapshot().get(participant_id)

    def update_status(self, participant_id: int, status: ParticipantStatus) -> Participant:
        snapshot = self.stage_status(participant_id, status)
        self._store.save_roster(snapshot.values())
        self.adopt(snapshot)
        return snapshot[participant_id]

    def stage_status(self, participant_id: int, status: ParticipantStatus) -> dict[int, Participant]:
        """Return a copy of the snapshot with one record moved to ``status``.

        Nothing is persisted or swapped in; pair with :meth:`adopt` once the
        copy has been written.
        """
        snapshot = self._snapshot()
        current = snapshot.get(participant_id)
        if current is None:
            raise UnknownParticipantError(participant_id)

        staged = dict(snapshot)
        staged[participant_id] = current.with_status(status)
        return staged

    def adopt(self, snapshot: dict[int, Participant]) -> None:
        self._participants = snapshot

    def all(self) -> list[Participant]:
        return list(self._snapshot().values())

    def __len__(self) -> int:
        return len(self._participants or {})

    def _snapshot(self) -> dict[int, Participant]:
        if self._participants is None:
            raise NoRosterAvailable("Roster has not been loaded.")
        return self._participants

    def _keep_attended(self, participants: list[Participant], checked_in: Iterable[int]) -> list[Participant]:
        local_ids = set(checked_in)
        if not local_ids:
            return participants

        merged: list[Participant] = []
        for participant in participants:
            if participant.id in local_ids and participant.status is not ParticipantStatus.ATTENDED:
                participant = participant.with_status(ParticipantStatus.ATTENDED)
            merged.append(participant)

        missing = local_ids - {participant.id for participant in merged}
        if not missing:
            return merged

        # Ids checked in here stay on the roster until the authority lists them again.
        if self._participants is not None:
            previous = self._participants
        else:
            previous = {participant.id: participant for participant in self._store.load_roster() or []}
        for participant_id in sorted(missing):
            kept = previous.get(participant_id)
            if kept is None:
                logger.warning("Checked-in participant %s is missing from both the response and the stored roster", participant_id)
                continue
            merged.append(kept.with_status(ParticipantStatus.ATTENDED))
        logger.warning("Checked-in ids missing from roster response: %s", sorted(missing))
        return merged
