"""
Reconciles one Eventbrite attendee against CRM contacts and participants.

Identity resolution:
  Start with the contacts matching the latest attendee data (duplicate
  match) and the participant linked to the attendee id, if any.

  If there's a linked participant:
    If its contact is among the matches, identifying info (name, email)
    hasn't changed: update that contact and participant in place.
    Else identifying info HAS changed. The old contact is preserved; the
    lowest matching contact id is used, or a new contact is created. The
    linked participant is marked 'Removed_in_EventBrite' and a new
    participant is created for this event.
    The old link is deleted in both cases.
  Else:
    Use the lowest matching contact id or create a new contact, then create
    a new participant.

  Finally a fresh Attendee/Participant link is created and configured
  question answers are copied onto custom fields.

Every collaborator call runs in sequence. There is no cross-call
transaction; re-delivering the same webhook converges.
"""

import time
from collections.abc import Awaitable
from typing import Any, TypeVar

from eventbrite_sync.config import settings
from eventbrite_sync.features.attendee_sync.domain import (
    AddressFields,
    Attendee,
    AttendeeAddress,
    AttendeeSyncResult,
    ContactFields,
    ContactMatch,
    LinkFilter,
    LinkRecord,
    ParticipantFields,
    PhoneFields,
)
from eventbrite_sync.features.attendee_sync.domain.models import (
    ADDRESS_LOCATION_TYPES,
    CONTACT_TYPE_INDIVIDUAL,
    CONTRIBUTION_STATUS_CANCELLED,
    EB_ATTENDEE,
    EB_EVENT,
    EB_TICKET_TYPE,
    LOCAL_EVENT,
    LOCAL_PARTICIPANT,
    LOCAL_PARTICIPANT_ROLE,
    PARTICIPANT_STATUS_ATTENDED,
    PARTICIPANT_STATUS_CANCELLED,
    PARTICIPANT_STATUS_REGISTERED,
    PARTICIPANT_STATUS_REMOVED,
    PHONE_LOCATION_TYPES,
    ParticipantStatus,
)
from eventbrite_sync.features.attendee_sync.repository.sync_log_repository import (
    LOG_CATEGORY_GENERAL,
)
from eventbrite_sync.features.attendee_sync.services.custom_fields import (
    CustomFieldProjectionMixin,
)
from eventbrite_sync.infrastructure.observability.logging import get_logger, log_sync_outcome

logger = get_logger(__name__)

T = TypeVar("T")


class AttendeeSyncError(Exception):
    """A collaborator call failed while reconciling an attendee."""

    def __init__(self, message: str, attendee_id: str | None = None, step: str | None = None):
        super().__init__(message)
        self.attendee_id = attendee_id
        self.step = step


def participant_status_for(attendee: Attendee) -> ParticipantStatus:
    if attendee.checked_in:
        return PARTICIPANT_STATUS_ATTENDED
    if attendee.cancelled:
        return PARTICIPANT_STATUS_CANCELLED
    return PARTICIPANT_STATUS_REGISTERED


class AttendeeReconciler(CustomFieldProjectionMixin):
    """
    Applies Eventbrite attendee changes to the CRM.

    Args:
        eventbrite: Remote event API (``fetch_attendee``)
        records: CRM record store (see ``CrmRecordStore``)
        source_label: Source tag for contacts and participants we create
    """

    def __init__(self, eventbrite, records, source_label: str | None = None):
        self._eventbrite = eventbrite
        self._records = records
        self._source_label = source_label or settings.CONTACT_SOURCE_LABEL

    async def process(
        self, attendee_id: str, data: dict[str, Any] | None = None
    ) -> AttendeeSyncResult:
        """
        Reconcile one attendee.

        Args:
            attendee_id: Eventbrite attendee id
            data: Inline attendee payload; used instead of fetching when it
                carries a ``resource_uri``

        Raises:
            AttendeeSyncError: If any Eventbrite or CRM call fails
        """
        start_time = time.time()
        attendee = await self._load_attendee(attendee_id, data)

        # Without a linked event any participant would be nonsensical
        event_link = await self._find_event_link(attendee)
        if event_link is None:
            await self._diagnostic(
                f"Could not find EventbriteLink record 'Event' for attendee {attendee.id} "
                f"with 'event_id': {attendee.event_id}; skipping Attendee.",
                severity="warning",
                entity_id=attendee.id,
            )
            result = AttendeeSyncResult(attendee_id=attendee.id, outcome="skipped")
            log_sync_outcome(attendee.id, result.outcome, _elapsed_ms(start_time))
            return result

        result = await self._resolve_identity(attendee, event_link.local_entity_id)
        await self.project_custom_fields(
            attendee, event_link, result.contact_id, result.participant_id
        )

        log_sync_outcome(
            attendee.id,
            result.outcome,
            _elapsed_ms(start_time),
            contact_id=result.contact_id,
            participant_id=result.participant_id,
            removed_participant_id=result.removed_participant_id,
        )
        return result

    async def _load_attendee(self, attendee_id: str, data: dict[str, Any] | None) -> Attendee:
        if data and data.get("resource_uri"):
            return Attendee.model_validate({"id": attendee_id, **data})

        return await self._call(
            attendee_id,
            "attempting to fetch attendee from Eventbrite",
            self._eventbrite.fetch_attendee(attendee_id),
        )

    async def _find_event_link(self, attendee: Attendee) -> LinkRecord | None:
        if not attendee.event_id:
            return None

        links = await self._call(
            attendee.id,
            "attempting to get Event ID",
            self._records.links.get(
                LinkFilter(
                    eb_entity_type=EB_EVENT,
                    local_entity_type=LOCAL_EVENT,
                    eb_entity_id=attendee.event_id,
                )
            ),
        )
        return links[0] if links else None

    async def _resolve_identity(self, attendee: Attendee, event_id: int) -> AttendeeSyncResult:
        attendee_id = attendee.id
        profile = attendee.profile

        duplicate_ids = await self._call(
            attendee_id,
            "attempting to find contacts matching attendee",
            self._records.contacts.find_duplicates(
                ContactMatch(
                    contact_type=CONTACT_TYPE_INDIVIDUAL,
                    first_name=profile.first_name,
                    last_name=profile.last_name,
                    email=profile.email,
                )
            ),
        )

        attendee_links = await self._call(
            attendee_id,
            "attempting to get linked Participant",
            self._records.links.get(
                LinkFilter(
                    eb_entity_type=EB_ATTENDEE,
                    local_entity_type=LOCAL_PARTICIPANT,
                    eb_entity_id=attendee_id,
                )
            ),
        )

        linked_participant = None
        if attendee_links:
            linked_participant = await self._call(
                attendee_id,
                "attempting to load linked Participant",
                self._records.participants.get(attendee_links[0].local_entity_id),
            )
            if linked_participant is None:
                logger.warning(
                    "Linked participant no longer exists, treating attendee as unlinked",
                    attendee_id=attendee_id,
                    link_id=attendee_links[0].id,
                    participant_id=attendee_links[0].local_entity_id,
                )

        removed_participant_id = None
        lowest_match = min(duplicate_ids) if duplicate_ids else None

        if linked_participant is not None:
            if linked_participant.contact_id in duplicate_ids:
                outcome = "unchanged"
                contact_id = await self.update_contact(attendee, linked_participant.contact_id)
                participant_id = await self.update_participant(
                    attendee, event_id, contact_id, linked_participant.id
                )
            else:
                outcome = "identity_changed"
                contact_id = await self.update_contact(attendee, lowest_match)
                await self.set_participant_status_removed(attendee_id, linked_participant.id)
                removed_participant_id = linked_participant.id
                participant_id = await self.update_participant(
                    attendee, event_id, contact_id, None
                )
        else:
            outcome = "created"
            contact_id = await self.update_contact(attendee, lowest_match)
            participant_id = await self.update_participant(attendee, event_id, contact_id, None)

        # Unconditional; a fresh link is created below
        for link in attendee_links:
            await self._call(
                attendee_id,
                "attempting to delete Attendee/Participant link",
                self._records.links.delete(link.id),
            )

        link = await self._call(
            attendee_id,
            "attempting to create new Attendee/Participant link",
            self._records.links.create(
                eb_entity_type=EB_ATTENDEE,
                eb_entity_id=attendee_id,
                local_entity_type=LOCAL_PARTICIPANT,
                local_entity_id=participant_id,
            ),
        )

        return AttendeeSyncResult(
            attendee_id=attendee_id,
            outcome=outcome,
            contact_id=contact_id,
            participant_id=participant_id,
            link_id=link.id,
            removed_participant_id=removed_participant_id,
        )

    async def update_contact(self, attendee: Attendee, contact_id: int | None) -> int:
        """Create or update the contact, then replace its addresses and phones."""
        attendee_id = attendee.id
        profile = attendee.profile

        contact_id = await self._call(
            attendee_id,
            "attempting to update contact record",
            self._records.contacts.save(
                ContactFields(
                    id=contact_id,
                    contact_type=CONTACT_TYPE_INDIVIDUAL,
                    first_name=profile.first_name,
                    last_name=profile.last_name,
                    email=profile.email,
                    source=self._source_label if contact_id is None else None,
                )
            ),
        )

        for address_key, address in profile.addresses.items():
            location_type = ADDRESS_LOCATION_TYPES.get(address_key)
            if location_type:
                await self._replace_address(attendee_id, contact_id, location_type, address)

        for phone_key, location_type in PHONE_LOCATION_TYPES.items():
            phone = getattr(profile, phone_key)
            if phone:
                await self._replace_phone(attendee_id, contact_id, location_type, phone)

        return contact_id

    async def _replace_address(
        self, attendee_id: str, contact_id: int, location_type: str, address: AttendeeAddress
    ) -> None:
        await self._call(
            attendee_id,
            f"attempting to replace '{location_type}' address",
            self._records.addresses.replace(
                AddressFields.from_attendee_address(contact_id, location_type, address)
            ),
        )

    async def _replace_phone(
        self, attendee_id: str, contact_id: int, location_type: str, phone: str
    ) -> None:
        await self._call(
            attendee_id,
            f"attempting to replace '{location_type}' phone",
            self._records.phones.replace(
                PhoneFields(contact_id=contact_id, location_type=location_type, phone=phone)
            ),
        )

    async def update_participant(
        self,
        attendee: Attendee,
        event_id: int,
        contact_id: int,
        participant_id: int | None,
    ) -> int:
        """Create or update the participant; cancel its payments when cancelled."""
        attendee_id = attendee.id

        # No configured role clears the participant's previous one
        role_id = None
        if attendee.ticket_class_id:
            role_links = await self._call(
                attendee_id,
                "attempting to determine configured RoleID for attendee Ticket Type",
                self._records.links.get(
                    LinkFilter(
                        eb_entity_type=EB_TICKET_TYPE,
                        local_entity_type=LOCAL_PARTICIPANT_ROLE,
                        eb_entity_id=attendee.ticket_class_id,
                    )
                ),
            )
            if role_links:
                role_id = role_links[0].local_entity_id

        status = participant_status_for(attendee)

        participant_id = await self._call(
            attendee_id,
            "attempting to create/update Participant record",
            self._records.participants.save(
                ParticipantFields(
                    id=participant_id,
                    event_id=event_id,
                    contact_id=contact_id,
                    register_date=attendee.created,
                    role_id=role_id,
                    status=status,
                    source=self._source_label,
                )
            ),
        )

        if status == PARTICIPANT_STATUS_CANCELLED:
            await self.cancel_participant_payments(attendee_id, participant_id)

        return participant_id

    async def set_participant_status_removed(self, attendee_id: str, participant_id: int) -> None:
        await self._call(
            attendee_id,
            f"attempting to mark participant {participant_id} as 'Removed in Eventbrite'",
            self._records.participants.save(
                ParticipantFields(id=participant_id, status=PARTICIPANT_STATUS_REMOVED)
            ),
        )
        await self.cancel_participant_payments(attendee_id, participant_id)

    async def cancel_participant_payments(self, attendee_id: str, participant_id: int) -> None:
        payments = await self._call(
            attendee_id,
            "attempting to get existing contribution",
            self._records.participant_payments.get(participant_id),
        )
        for payment in payments:
            await self._call(
                attendee_id,
                "attempting to cancel existing contribution",
                self._records.contributions.update_status(
                    payment.contribution_id, CONTRIBUTION_STATUS_CANCELLED
                ),
            )

    async def _call(self, attendee_id: str, step: str, awaitable: Awaitable[T]) -> T:
        """Await one collaborator call, turning any failure into AttendeeSyncError."""
        try:
            return await awaitable
        except Exception as exc:
            message = f"Processing Attendee {attendee_id}, {step}."
            logger.error(
                "Attendee sync step failed",
                attendee_id=attendee_id,
                step=step,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await self._diagnostic(
                f"{message} Error: {exc}", severity="error", entity_id=attendee_id
            )
            raise AttendeeSyncError(message, attendee_id=attendee_id, step=step) from exc

    async def _diagnostic(self, message: str, severity: str, entity_id: str | None) -> None:
        """Write an operator-facing message to the log and the sync log table."""
        log = {"info": logger.info, "warning": logger.warning}.get(severity, logger.error)
        log(message, attendee_id=entity_id, severity=severity)

        # Never let the sync log mask the failure being reported
        try:
            await self._records.logs.append(
                message, severity=severity, category=LOG_CATEGORY_GENERAL, entity_id=entity_id
            )
        except Exception as e:
            logger.warning("Failed to write sync log entry", error=str(e))


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)
