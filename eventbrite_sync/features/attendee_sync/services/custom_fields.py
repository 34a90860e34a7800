"""
Projection of Eventbrite question answers onto CRM custom fields.

Each event can map Eventbrite question ids onto CRM custom field ids through
Question/CustomField links scoped under the event's link row. Values are
routed by the entity the field's custom group extends.
"""

from typing import Any

from eventbrite_sync.features.attendee_sync.domain import (
    Attendee,
    ContactFields,
    LinkFilter,
    LinkRecord,
    ParticipantFields,
)
from eventbrite_sync.features.attendee_sync.domain.models import (
    CONTACT_EXTENDS,
    EB_QUESTION,
    LOCAL_CUSTOM_FIELD,
    PARTICIPANT_EXTENDS,
)


class CustomFieldProjectionMixin:
    """
    Adds custom field projection to the reconciler.

    Expects the host class to provide ``_records``, ``_call`` and
    ``_diagnostic``.
    """

    async def project_custom_fields(
        self,
        attendee: Attendee,
        event_link: LinkRecord,
        contact_id: int,
        participant_id: int,
    ) -> None:
        attendee_id = attendee.id
        event_id = event_link.local_entity_id

        questions = await self._call(
            attendee_id,
            f"attempting to get all custom fields configured for event '{event_id}'",
            self._records.links.get(
                LinkFilter(
                    parent_id=event_link.id,
                    eb_entity_type=EB_QUESTION,
                    local_entity_type=LOCAL_CUSTOM_FIELD,
                )
            ),
        )
        if not questions:
            return

        answers = attendee.answers_by_question()
        contact_values: dict[int, Any] = {}
        participant_values: dict[int, Any] = {}

        for question in questions:
            answer = answers.get(question.eb_entity_id)
            if answer is None:
                continue

            field_id = question.local_entity_id
            extends = await self._call(
                attendee_id,
                f"attempting to resolve custom field '{field_id}'",
                self._records.custom_fields.get_extends(field_id),
            )

            if extends in CONTACT_EXTENDS:
                contact_values[field_id] = answer.answer
            elif extends in PARTICIPANT_EXTENDS:
                participant_values[field_id] = answer.answer
            else:
                await self._diagnostic(
                    f"Processing Attendee {attendee_id}, dropping answer to question "
                    f"'{question.eb_entity_id}': custom field '{field_id}' extends "
                    f"unsupported entity '{extends}'.",
                    severity="warning",
                    entity_id=attendee_id,
                )

        if participant_values:
            await self._call(
                attendee_id,
                "attempting to update participant custom fields",
                self._records.participants.save(
                    ParticipantFields(id=participant_id, custom_values=participant_values)
                ),
            )

        if contact_values:
            await self._call(
                attendee_id,
                "attempting to update contact custom fields",
                self._records.contacts.save(
                    ContactFields(id=contact_id, custom_values=contact_values)
                ),
            )
