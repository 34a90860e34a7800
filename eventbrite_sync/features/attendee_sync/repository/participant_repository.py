"""
Repository helpers for participants and the payments attached to them.
"""

from eventbrite_sync.db.helpers import DatabaseError, execute_query, fetch_all, fetch_one
from eventbrite_sync.features.attendee_sync.domain import (
    ParticipantFields,
    ParticipantPayment,
    ParticipantRecord,
)
from eventbrite_sync.features.attendee_sync.repository.custom_field_repository import (
    CustomFieldRepository,
)
from eventbrite_sync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

PARTICIPANT_ENTITY_TABLE = "participants"


class ParticipantRepository:
    """Create-or-update and lookup for participants."""

    @classmethod
    async def get(cls, participant_id: int) -> ParticipantRecord | None:
        query = """
            SELECT id, contact_id, event_id, status, role_id
            FROM participants
            WHERE id = %s
        """
        row = await fetch_one(query, (participant_id,))
        if not row:
            return None

        return ParticipantRecord(
            id=row["id"],
            contact_id=row["contact_id"],
            event_id=row["event_id"],
            status=row["status"],
            role_id=row.get("role_id"),
        )

    @classmethod
    async def save(cls, fields: ParticipantFields) -> int:
        columns = fields.column_values()

        if fields.id is None:
            names = ", ".join(columns)
            placeholders = ", ".join(["%s"] * len(columns))
            query = f"""
                INSERT INTO participants ({names})
                VALUES ({placeholders})
                RETURNING id
            """
            row = await fetch_one(query, tuple(columns.values()))
            participant_id = row["id"]
            logger.info(
                "Participant created",
                participant_id=participant_id,
                contact_id=fields.contact_id,
                event_id=fields.event_id,
            )
        elif columns:
            assignments = ", ".join(f"{column} = %s" for column in columns)
            query = f"""
                UPDATE participants
                SET {assignments}, updated_at = NOW()
                WHERE id = %s
                RETURNING id
            """
            row = await fetch_one(query, (*columns.values(), fields.id))
            if not row:
                raise DatabaseError(
                    f"Participant {fields.id} not found", operation="participant_update"
                )
            participant_id = row["id"]
        else:
            participant_id = fields.id

        if fields.custom_values:
            await CustomFieldRepository.set_values(
                PARTICIPANT_ENTITY_TABLE, participant_id, fields.custom_values
            )

        return participant_id


class ParticipantPaymentRepository:
    @classmethod
    async def get(cls, participant_id: int) -> list[ParticipantPayment]:
        query = """
            SELECT id, participant_id, contribution_id
            FROM participant_payments
            WHERE participant_id = %s
            ORDER BY id ASC
        """
        rows = await fetch_all(query, (participant_id,))
        return [
            ParticipantPayment(
                id=row["id"],
                participant_id=row["participant_id"],
                contribution_id=row["contribution_id"],
            )
            for row in rows
        ]


class ContributionRepository:
    @classmethod
    async def update_status(cls, contribution_id: int, status: str) -> int:
        query = """
            UPDATE contributions
            SET contribution_status = %s, updated_at = NOW()
            WHERE id = %s
        """
        return await execute_query(query, (status, contribution_id))
