"""
Job entry points for reconciling Eventbrite attendees.

Whatever receives Eventbrite webhooks hands the delivery payload (or just the
attendee id) to these functions; retrying failed deliveries stays with the
caller.
"""

from typing import Any

from eventbrite_sync.features.attendee_sync.domain import AttendeeSyncResult, AttendeeWebhook
from eventbrite_sync.features.attendee_sync.repository import CrmRecordStore
from eventbrite_sync.features.attendee_sync.services.locking import attendee_lock
from eventbrite_sync.features.attendee_sync.services.reconciler import AttendeeReconciler
from eventbrite_sync.infrastructure.observability.logging import get_logger
from eventbrite_sync.services.eventbrite_client import EventbriteClient

logger = get_logger(__name__)


async def process_attendee(
    attendee_id: str,
    data: dict[str, Any] | None = None,
    *,
    eventbrite=None,
    records=None,
) -> AttendeeSyncResult:
    """Reconcile one attendee under its per-attendee lock."""
    owns_client = eventbrite is None
    eventbrite = eventbrite or EventbriteClient()
    records = records or CrmRecordStore()

    try:
        async with attendee_lock(attendee_id):
            reconciler = AttendeeReconciler(eventbrite, records)
            return await reconciler.process(attendee_id, data)
    finally:
        if owns_client:
            await eventbrite.close()


async def process_webhook(payload: dict[str, Any], **kwargs) -> AttendeeSyncResult:
    """
    Reconcile the attendee an Eventbrite webhook delivery points at.

    Raises:
        ValueError: If the delivery does not reference an attendee
    """
    webhook = AttendeeWebhook.model_validate(payload)
    attendee_id = webhook.attendee_id

    logger.info(
        "Processing Eventbrite webhook",
        action=webhook.action,
        attendee_id=attendee_id,
    )
    return await process_attendee(attendee_id, **kwargs)
