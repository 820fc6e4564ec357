from .participant import InvalidStatusTransition, Participant, ParticipantStatus, Role, ScanRecord

__all__ = [
    "InvalidStatusTransition",
    "Participant",
    "ParticipantStatus",
    "Role",
    "ScanRecord",
]
