"""
Repository helpers for CRM contacts.
"""

from eventbrite_sync.db.helpers import DatabaseError, fetch_all, fetch_one
from eventbrite_sync.features.attendee_sync.domain import ContactFields, ContactMatch
from eventbrite_sync.features.attendee_sync.repository.custom_field_repository import (
    CustomFieldRepository,
)
from eventbrite_sync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CONTACT_ENTITY_TABLE = "contacts"


class ContactRepository:
    """Create-or-update and duplicate matching for contacts."""

    @classmethod
    async def save(cls, fields: ContactFields) -> int:
        """
        Insert a contact when fields.id is unset, otherwise update the
        columns that carry a value. Custom values are written afterwards.

        Returns:
            The contact id
        """
        columns = fields.column_values()

        if fields.id is None:
            names = ", ".join(columns)
            placeholders = ", ".join(["%s"] * len(columns))
            query = f"""
                INSERT INTO contacts ({names})
                VALUES ({placeholders})
                RETURNING id
            """
            row = await fetch_one(query, tuple(columns.values()))
            contact_id = row["id"]
            logger.info("Contact created", contact_id=contact_id, source=fields.source)
        elif columns:
            assignments = ", ".join(f"{column} = %s" for column in columns)
            query = f"""
                UPDATE contacts
                SET {assignments}, updated_at = NOW()
                WHERE id = %s
                RETURNING id
            """
            row = await fetch_one(query, (*columns.values(), fields.id))
            if not row:
                raise DatabaseError(f"Contact {fields.id} not found", operation="contact_update")
            contact_id = row["id"]
        else:
            contact_id = fields.id

        if fields.custom_values:
            await CustomFieldRepository.set_values(
                CONTACT_ENTITY_TABLE, contact_id, fields.custom_values
            )

        return contact_id

    @classmethod
    async def find_duplicates(cls, match: ContactMatch) -> list[int]:
        """
        Return ids of contacts of the same type whose email, first name and
        last name all equal the given ones (case-insensitive, trimmed).

        A blank email only matches contacts without one, so an email-less
        attendee is found again by name. Nothing matches when email and both
        names are blank.
        """
        email = (match.email or "").strip()
        first_name = (match.first_name or "").strip()
        last_name = (match.last_name or "").strip()
        if not email and not (first_name or last_name):
            return []

        query = """
            SELECT id
            FROM contacts
            WHERE contact_type = %s
              AND lower(btrim(coalesce(email, ''))) = lower(%s)
              AND lower(btrim(coalesce(first_name, ''))) = lower(%s)
              AND lower(btrim(coalesce(last_name, ''))) = lower(%s)
            ORDER BY id ASC
        """
        rows = await fetch_all(query, (match.contact_type, email, first_name, last_name))
        return [row["id"] for row in rows]
