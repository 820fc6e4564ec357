from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional


class Role(str, Enum):
    ATTENDEE = "Attendee"
    VOLUNTEER = "Volunteer"
    ORGANIZER = "Organizer"


class ParticipantStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ATTENDED = "attended"


# Ids are stored as SQLite INTEGER.
MAX_PARTICIPANT_ID = 2**63 - 1


class InvalidStatusTransition(ValueError):
    """Raised when a status change would move a participant out of ``attended``."""


@dataclass(frozen=True, slots=True)
class Participant:
    id: int
    name: str
    email: Optional[str] = None
    mobile: Optional[str] = None
    role: Role = Role.ATTENDEE
    status: ParticipantStatus = ParticipantStatus.PENDING

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Participant":
        """Build a participant from a roster record.

        Raises ``ValueError`` (or ``KeyError``/``TypeError``) when the record is
        missing its id or name, or carries an unknown role or status.
        """
        participant_id = raw["id"]
        if isinstance(participant_id, bool) or not isinstance(participant_id, (int, str)):
            raise TypeError(f"Participant id must be an integer, got {participant_id!r}")
        participant_id = int(participant_id)
        if not 0 <= participant_id <= MAX_PARTICIPANT_ID:
            raise ValueError(f"Participant id {participant_id} is out of range.")
        name = raw["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Participant name is required.")

        return cls(
            id=participant_id,
            name=name.strip(),
            email=_optional_text(raw.get("email")),
            mobile=_optional_text(raw.get("mobile")),
            role=Role(raw.get("role") or Role.ATTENDEE.value),
            status=ParticipantStatus(raw.get("status") or ParticipantStatus.PENDING.value),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "mobile": self.mobile,
            "role": self.role.value,
            "status": self.status.value,
        }

    def with_status(self, status: ParticipantStatus) -> "Participant":
        """Return a copy of the record carrying ``status``; every other field is kept."""
        if self.status is ParticipantStatus.ATTENDED and status is not ParticipantStatus.ATTENDED:
            raise InvalidStatusTransition(
                f"Participant {self.id} is already attended and cannot move to {status.value}."
            )
        return replace(self, status=status)


@dataclass(frozen=True, slots=True)
class ScanRecord:
    participant_id: int
    scanned_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
