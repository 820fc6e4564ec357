from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from checkin_terminal.models import Participant, ParticipantStatus
from checkin_terminal.services.payload import PayloadFormatError, ScanPayload, parse_payload
from checkin_terminal.services.roster_cache import RosterCache
from checkin_terminal.services.scan_ledger import ScanLedger


class ScanOutcome(str, Enum):
    ACCEPTED = "accepted"
    INVALID_FORMAT = "invalid_format"
    PARTICIPANT_NOT_FOUND = "participant_not_found"
    ALREADY_CHECKED_IN = "already_checked_in"
    NOT_APPROVED = "not_approved"


@dataclass(frozen=True, slots=True)
class ScanDecision:
    outcome: ScanOutcome
    title: str
    message: str
    payload: Optional[ScanPayload] = None
    participant: Optional[Participant] = None

    @property
    def accepted(self) -> bool:
        return self.outcome is ScanOutcome.ACCEPTED

    @property
    def tone(self) -> str:
        if self.outcome is ScanOutcome.ACCEPTED:
            return "success"
        if self.outcome is ScanOutcome.ALREADY_CHECKED_IN:
            return "warning"
        return "error"


class ScanValidator:
    """Ordered checks turning one decoded string into a decision.

    The validator never mutates state; the first failing check wins.
    """

    def __init__(self, roster: RosterCache, ledger: ScanLedger) -> None:
        self._roster = roster
        self._ledger = ledger

    def validate(self, raw: str) -> ScanDecision:
        try:
            payload = parse_payload(raw)
        except PayloadFormatError:
            return ScanDecision(
                ScanOutcome.INVALID_FORMAT,
                "Invalid QR Code",
                "This QR code is not valid for this event",
            )

        participant = self._roster.lookup(payload.participant_id)
        if participant is None:
            return ScanDecision(
                ScanOutcome.PARTICIPANT_NOT_FOUND,
                "Participant Not Found",
                f"No participant found with ID: {payload.participant_id}",
                payload=payload,
            )

        if participant.id in self._ledger:
            return ScanDecision(
                ScanOutcome.ALREADY_CHECKED_IN,
                "Already Checked In",
                f"{participant.name} has already been checked in!",
                payload=payload,
                participant=participant,
            )

        if participant.status is ParticipantStatus.ATTENDED:
            return ScanDecision(
                ScanOutcome.ALREADY_CHECKED_IN,
                "Ticket Already Scanned",
                f"{participant.name}'s ticket has already been scanned!",
                payload=payload,
                participant=participant,
            )

        if participant.status is not ParticipantStatus.APPROVED and not payload.asserts_approval:
            return ScanDecision(
                ScanOutcome.NOT_APPROVED,
                "Access Denied",
                f"{participant.name} is not approved for this event",
                payload=payload,
                participant=participant,
            )

        return ScanDecision(
            ScanOutcome.ACCEPTED,
            f"Welcome {participant.name}!",
            "Successfully checked in.",
            payload=payload,
            participant=participant,
        )
