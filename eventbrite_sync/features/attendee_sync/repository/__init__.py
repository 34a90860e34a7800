"""
CRM persistence for the attendee sync feature.

CrmRecordStore bundles one repository per logical CRM entity so the
reconciler can take a single collaborator and tests can swap in fakes.
"""

from .contact_repository import ContactRepository
from .custom_field_repository import CustomFieldRepository
from .link_repository import LinkRepository
from .location_repository import AddressRepository, PhoneRepository
from .participant_repository import (
    ContributionRepository,
    ParticipantPaymentRepository,
    ParticipantRepository,
)
from .sync_log_repository import SyncLogRepository


class CrmRecordStore:
    """Postgres-backed record API, keyed by logical entity name."""

    def __init__(self):
        self.links = LinkRepository()
        self.contacts = ContactRepository()
        self.participants = ParticipantRepository()
        self.addresses = AddressRepository()
        self.phones = PhoneRepository()
        self.participant_payments = ParticipantPaymentRepository()
        self.contributions = ContributionRepository()
        self.custom_fields = CustomFieldRepository()
        self.logs = SyncLogRepository()


__all__ = [
    "AddressRepository",
    "ContactRepository",
    "ContributionRepository",
    "CrmRecordStore",
    "CustomFieldRepository",
    "LinkRepository",
    "ParticipantPaymentRepository",
    "ParticipantRepository",
    "PhoneRepository",
    "SyncLogRepository",
]
