"""
Repository helpers for custom field metadata and values.

Values are stored as generic key/value rows keyed by
(entity_table, entity_id, custom_field_id).
"""

from typing import Any

from eventbrite_sync.db.helpers import execute_many, fetch_val


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list | tuple):
        return ", ".join(str(item) for item in value)
    return str(value)


class CustomFieldRepository:
    """Custom field metadata and value persistence."""

    @classmethod
    async def get_extends(cls, field_id: int) -> str | None:
        """Return the entity the field's custom group extends, or None if the field is gone."""
        query = """
            SELECT cg.extends
            FROM custom_fields cf
            JOIN custom_groups cg ON cg.id = cf.custom_group_id
            WHERE cf.id = %s
        """
        return await fetch_val(query, (field_id,))

    @classmethod
    async def set_values(cls, entity_table: str, entity_id: int, values: dict[int, Any]) -> None:
        query = """
            INSERT INTO custom_values (entity_table, entity_id, custom_field_id, value)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (entity_table, entity_id, custom_field_id)
            DO UPDATE SET
                value = EXCLUDED.value,
                updated_at = NOW()
        """
        payload = [
            (entity_table, entity_id, field_id, _to_text(value))
            for field_id, value in values.items()
        ]
        await execute_many(query, payload)
