"""
Repository helpers for contact addresses and phones.

Both are keyed by (contact_id, location_type). A contact keeps at most one
row per location type: ``replace`` deletes the highest-id existing row and
inserts the new one inside a single transaction, so a failed insert leaves
the old row in place.
"""

from typing import Any

import psycopg

from eventbrite_sync.db.helpers import DatabaseError
from eventbrite_sync.db.pool import get_db_transaction
from eventbrite_sync.features.attendee_sync.domain import AddressFields, PhoneFields
from eventbrite_sync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


async def _replace_row(
    table: str,
    contact_id: int,
    location_type: str,
    insert_query: str,
    insert_params: tuple[Any, ...],
) -> int:
    """Delete the newest row for (contact_id, location_type) and insert a new one."""
    # Table names come from the repository classes below only
    select_query = f"""
        SELECT id
        FROM {table}
        WHERE contact_id = %s AND location_type = %s
        ORDER BY id DESC
        LIMIT 1
        FOR UPDATE
    """
    delete_query = f"DELETE FROM {table} WHERE id = %s"

    try:
        async with await get_db_transaction() as conn:
            async with conn.cursor() as cur:
                await cur.execute(select_query, (contact_id, location_type))
                existing = await cur.fetchone()
                if existing:
                    await cur.execute(delete_query, (existing["id"],))

                await cur.execute(insert_query, insert_params)
                row = await cur.fetchone()

    except psycopg.Error as e:
        logger.error(
            "Location replace failed",
            table=table,
            contact_id=contact_id,
            location_type=location_type,
            error=str(e),
        )
        raise DatabaseError(f"Replace failed: {e}", operation=f"{table}_replace") from e

    logger.debug(
        "Location replaced",
        table=table,
        contact_id=contact_id,
        location_type=location_type,
        replaced_id=existing["id"] if existing else None,
        new_id=row["id"],
    )
    return row["id"]


class AddressRepository:
    TABLE = "addresses"

    @classmethod
    async def replace(cls, fields: AddressFields) -> int:
        query = """
            INSERT INTO addresses (
                contact_id, location_type, street_address, supplemental_address_1,
                city, state_province, postal_code, country
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
        """
        return await _replace_row(
            cls.TABLE,
            fields.contact_id,
            fields.location_type,
            query,
            (
                fields.contact_id,
                fields.location_type,
                fields.street_address,
                fields.supplemental_address_1,
                fields.city,
                fields.state_province,
                fields.postal_code,
                fields.country,
            ),
        )


class PhoneRepository:
    TABLE = "phones"

    @classmethod
    async def replace(cls, fields: PhoneFields) -> int:
        query = """
            INSERT INTO phones (contact_id, location_type, phone)
            VALUES (%s, %s, %s)
            RETURNING id
        """
        return await _replace_row(
            cls.TABLE,
            fields.contact_id,
            fields.location_type,
            query,
            (fields.contact_id, fields.location_type, fields.phone),
        )
