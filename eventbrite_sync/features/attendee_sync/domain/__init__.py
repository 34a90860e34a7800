"""
Domain subpackage for the attendee sync feature.
"""

from .models import (
    AddressFields,
    Attendee,
    AttendeeAddress,
    AttendeeAnswer,
    AttendeeProfile,
    AttendeeSyncResult,
    AttendeeWebhook,
    ContactFields,
    ContactMatch,
    LinkFilter,
    LinkRecord,
    ParticipantFields,
    ParticipantPayment,
    ParticipantRecord,
    PhoneFields,
)

__all__ = [
    "AddressFields",
    "Attendee",
    "AttendeeAddress",
    "AttendeeAnswer",
    "AttendeeProfile",
    "AttendeeSyncResult",
    "AttendeeWebhook",
    "ContactFields",
    "ContactMatch",
    "LinkFilter",
    "LinkRecord",
    "ParticipantFields",
    "ParticipantPayment",
    "ParticipantRecord",
    "PhoneFields",
]
