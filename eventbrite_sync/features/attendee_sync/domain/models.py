"""
Domain models for the attendee sync feature.

Pydantic models describe the Eventbrite payloads we receive and the field
sets we write to the CRM; the lightweight dataclasses describe rows read
back from the CRM. None of them carry business logic.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Link type pairings (eb_entity_type, local_entity_type)
EB_EVENT = "Event"
EB_ATTENDEE = "Attendee"
EB_TICKET_TYPE = "TicketType"
EB_QUESTION = "Question"
LOCAL_EVENT = "Event"
LOCAL_PARTICIPANT = "Participant"
LOCAL_PARTICIPANT_ROLE = "ParticipantRole"
LOCAL_CUSTOM_FIELD = "CustomField"

CONTACT_TYPE_INDIVIDUAL = "Individual"

ParticipantStatus = Literal["Registered", "Attended", "Cancelled", "Removed_in_EventBrite"]
PARTICIPANT_STATUS_REGISTERED: ParticipantStatus = "Registered"
PARTICIPANT_STATUS_ATTENDED: ParticipantStatus = "Attended"
PARTICIPANT_STATUS_CANCELLED: ParticipantStatus = "Cancelled"
PARTICIPANT_STATUS_REMOVED: ParticipantStatus = "Removed_in_EventBrite"

CONTRIBUTION_STATUS_CANCELLED = "Cancelled"

# Eventbrite profile address key -> CRM location type
ADDRESS_LOCATION_TYPES = {
    "work": "Work",
    "bill": "Billing",
    "home": "Home",
}

# Eventbrite profile phone key -> CRM location type
PHONE_LOCATION_TYPES = {
    "work_phone": "Work",
    "home_phone": "Home",
}

# Custom group "extends" values routed to each entity
CONTACT_EXTENDS = frozenset({"Individual", "Contact"})
PARTICIPANT_EXTENDS = frozenset({"Participant"})

SyncOutcome = Literal["unchanged", "identity_changed", "created", "skipped"]

_ATTENDEE_URL_PATTERN = re.compile(r"/attendees/(?P<attendee_id>[^/?#]+)/?(?:[?#].*)?$")


# ---------------------------------------------------------------------------
# Eventbrite payloads
# ---------------------------------------------------------------------------


class AttendeeAddress(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    address_1: str | None = None
    address_2: str | None = None
    city: str | None = None
    region: str | None = None
    postal_code: str | None = None
    country: str | None = None


class AttendeeProfile(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    work_phone: str | None = None
    home_phone: str | None = None
    addresses: dict[str, AttendeeAddress] = Field(default_factory=dict)


class AttendeeAnswer(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    question_id: str
    question: str | None = None
    type: str | None = None
    # Absent when the attendee left the question blank
    answer: Any = None


class Attendee(BaseModel):
    """An Eventbrite attendee as returned by GET /attendees/{id}/."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    event_id: str | None = None
    ticket_class_id: str | None = None
    checked_in: bool = False
    cancelled: bool = False
    created: datetime | None = None
    resource_uri: str | None = None
    profile: AttendeeProfile = Field(default_factory=AttendeeProfile)
    answers: list[AttendeeAnswer] = Field(default_factory=list)

    def answers_by_question(self) -> dict[str, AttendeeAnswer]:
        return {answer.question_id: answer for answer in self.answers}


class AttendeeWebhook(BaseModel):
    """
    An Eventbrite webhook delivery.

    Eventbrite posts only a pointer to the changed resource, e.g.
    {"config": {"action": "attendee.updated", ...},
     "api_url": "https://www.eventbriteapi.com/v3/attendees/123/"}
    """

    model_config = ConfigDict(extra="allow")

    api_url: str
    config: dict[str, Any] = Field(default_factory=dict)

    @property
    def action(self) -> str | None:
        return self.config.get("action")

    @property
    def attendee_id(self) -> str:
        match = _ATTENDEE_URL_PATTERN.search(self.api_url)
        if not match:
            raise ValueError(f"Webhook api_url does not reference an attendee: {self.api_url}")
        return match.group("attendee_id")


# ---------------------------------------------------------------------------
# CRM write models
# ---------------------------------------------------------------------------


class ContactMatch(BaseModel):
    """Identity fields handed to the duplicate-match lookup."""

    contact_type: str = CONTACT_TYPE_INDIVIDUAL
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None


class ContactFields(BaseModel):
    """Contact create-or-update; unset fields are left untouched on update."""

    id: int | None = None
    contact_type: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    source: str | None = None
    custom_values: dict[int, Any] = Field(default_factory=dict)

    def column_values(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, exclude={"id", "custom_values"})


class ParticipantFields(BaseModel):
    """
    Participant create-or-update; unset fields are left untouched on update.

    ``role_id`` is the exception: passing ``role_id=None`` explicitly clears
    the role, so a participant follows its ticket type's current role.
    """

    id: int | None = None
    contact_id: int | None = None
    event_id: int | None = None
    role_id: int | None = None
    status: ParticipantStatus | None = None
    source: str | None = None
    register_date: datetime | None = None
    custom_values: dict[int, Any] = Field(default_factory=dict)

    def column_values(self) -> dict[str, Any]:
        values = self.model_dump(exclude_none=True, exclude={"id", "custom_values"})
        if "role_id" in self.model_fields_set:
            values["role_id"] = self.role_id
        return values


class AddressFields(BaseModel):
    contact_id: int
    location_type: str
    street_address: str | None = None
    supplemental_address_1: str | None = None
    city: str | None = None
    state_province: str | None = None
    postal_code: str | None = None
    country: str | None = None

    @classmethod
    def from_attendee_address(
        cls, contact_id: int, location_type: str, address: AttendeeAddress
    ) -> "AddressFields":
        return cls(
            contact_id=contact_id,
            location_type=location_type,
            street_address=address.address_1,
            supplemental_address_1=address.address_2,
            city=address.city,
            state_province=address.region,
            postal_code=address.postal_code,
            country=address.country,
        )


class PhoneFields(BaseModel):
    contact_id: int
    location_type: str
    phone: str


class LinkFilter(BaseModel):
    """Criteria for an eventbrite_links lookup; unset criteria match anything."""

    eb_entity_type: str | None = None
    local_entity_type: str | None = None
    eb_entity_id: str | None = None
    local_entity_id: int | None = None
    parent_id: int | None = None

    def criteria(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# CRM rows
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class LinkRecord:
    """Represents an eventbrite_links row."""

    id: int
    eb_entity_type: str
    eb_entity_id: str
    local_entity_type: str
    local_entity_id: int
    parent_id: int | None = None


@dataclass(slots=True)
class ParticipantRecord:
    """Represents a participants row."""

    id: int
    contact_id: int
    event_id: int
    status: str
    role_id: int | None = None


@dataclass(slots=True)
class ParticipantPayment:
    """Represents a participant_payments row."""

    id: int
    participant_id: int
    contribution_id: int


@dataclass(slots=True)
class AttendeeSyncResult:
    """What one reconciliation run decided."""

    attendee_id: str
    outcome: SyncOutcome
    contact_id: int | None = None
    participant_id: int | None = None
    link_id: int | None = None
    removed_participant_id: int | None = None
