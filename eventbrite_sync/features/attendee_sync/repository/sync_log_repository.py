"""
Repository for the eventbrite_logs table.

Operators read this table from the CRM to see why a delivery was skipped
or failed without needing access to the worker's stdout.
"""

from eventbrite_sync.db.helpers import fetch_one

LOG_CATEGORY_GENERAL = "general"


class SyncLogRepository:
    @classmethod
    async def append(
        cls,
        message: str,
        severity: str = "info",
        category: str = LOG_CATEGORY_GENERAL,
        entity_id: str | None = None,
    ) -> int:
        query = """
            INSERT INTO eventbrite_logs (message, severity, category, entity_id)
            VALUES (%s, %s, %s, %s)
            RETURNING id
        """
        row = await fetch_one(query, (message, severity, category, entity_id))
        return row["id"]
