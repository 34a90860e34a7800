"""
Persistence helpers for the eventbrite_links table.

A link maps one Eventbrite entity onto one CRM entity. Links are never
updated in place: callers delete and recreate them.
"""

from eventbrite_sync.db.helpers import execute_query, fetch_all, fetch_one
from eventbrite_sync.features.attendee_sync.domain import LinkFilter, LinkRecord
from eventbrite_sync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class LinkRepository:
    """Persistence helpers for Eventbrite/CRM entity links."""

    SELECT_COLUMNS = """
        id, eb_entity_type, eb_entity_id, local_entity_type, local_entity_id, parent_id
    """

    @classmethod
    def _row_to_link(cls, row: dict) -> LinkRecord:
        return LinkRecord(
            id=row["id"],
            eb_entity_type=row["eb_entity_type"],
            eb_entity_id=str(row["eb_entity_id"]),
            local_entity_type=row["local_entity_type"],
            local_entity_id=row["local_entity_id"],
            parent_id=row.get("parent_id"),
        )

    @classmethod
    async def get(cls, link_filter: LinkFilter) -> list[LinkRecord]:
        """Return links matching every criterion set on the filter, lowest id first."""
        criteria = link_filter.criteria()
        # Column names come from LinkFilter's declared fields only
        where = " AND ".join(f"{column} = %s" for column in criteria) or "TRUE"

        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM eventbrite_links
            WHERE {where}
            ORDER BY id ASC
        """

        rows = await fetch_all(query, tuple(criteria.values()))
        return [cls._row_to_link(row) for row in rows]

    @classmethod
    async def create(
        cls,
        eb_entity_type: str,
        eb_entity_id: str,
        local_entity_type: str,
        local_entity_id: int,
        parent_id: int | None = None,
    ) -> LinkRecord:
        query = f"""
            INSERT INTO eventbrite_links (
                eb_entity_type, eb_entity_id, local_entity_type, local_entity_id, parent_id
            )
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {cls.SELECT_COLUMNS}
        """

        row = await fetch_one(
            query,
            (eb_entity_type, eb_entity_id, local_entity_type, local_entity_id, parent_id),
        )
        link = cls._row_to_link(row)

        logger.debug(
            "Eventbrite link created",
            link_id=link.id,
            eb_entity_type=eb_entity_type,
            eb_entity_id=eb_entity_id,
            local_entity_id=local_entity_id,
        )
        return link

    @classmethod
    async def delete(cls, link_id: int) -> int:
        query = """
            DELETE FROM eventbrite_links
            WHERE id = %s
        """
        return await execute_query(query, (link_id,))
