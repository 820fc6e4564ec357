from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Optional

ID_PATTERN = re.compile(r"id\s*:\s*(\d+)", re.ASCII)
STATUS_PATTERN = re.compile(r"status\s*:\s*([A-Za-z0-9_-]+)", re.ASCII)


class PayloadFormatError(ValueError):
    """Raised when a decoded payload carries no ``id : <int>`` field."""


@dataclass(frozen=True, slots=True)
class ScanPayload:
    participant_id: int
    status: Optional[str] = None

    @property
    def asserts_approval(self) -> bool:
        return self.status == "approved"


def parse_payload(raw: str) -> ScanPayload:
    """Parse ``"id : <int>[, status : <token>]"`` out of a decoded QR string.

    Fields are located anywhere in the text; surrounding content is ignored.
    """
    text = unicodedata.normalize("NFC", raw or "")
    id_match = ID_PATTERN.search(text)
    if id_match is None:
        raise PayloadFormatError("QR code does not contain a valid participant id")

    try:
        participant_id = int(id_match.group(1))
    except ValueError as exc:
        # More digits than int() will convert.
        raise PayloadFormatError("QR code participant id is too long") from exc

    status_match = STATUS_PATTERN.search(text)
    return ScanPayload(
        participant_id=participant_id,
        status=status_match.group(1) if status_match else None,
    )
