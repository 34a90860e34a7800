import itertools
from typing import Any

import pytest

from eventbrite_sync.features.attendee_sync.domain import (
    AddressFields,
    Attendee,
    ContactFields,
    ContactMatch,
    LinkFilter,
    LinkRecord,
    ParticipantFields,
    ParticipantPayment,
    ParticipantRecord,
    PhoneFields,
)


class FakeLock:
    def __init__(self, name: str, token: str):
        self.name = name
        self.token = token


class FakeRedis:
    """Lock side of FastRedisClient; set ``error`` to simulate an outage."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.error: Exception | None = None
        self._tokens = itertools.count(1)

    async def acquire_lock(self, key: str, ttl_s: int) -> FakeLock | None:
        if self.error:
            raise self.error
        if key in self.store:
            return None
        lock = FakeLock(key, f"token-{next(self._tokens)}")
        self.store[key] = lock.token
        return lock

    async def release_lock(self, lock: FakeLock) -> bool:
        # Compare-and-delete, like the Lua script redis-py runs
        if self.store.get(lock.name) != lock.token:
            return False
        del self.store[lock.name]
        return True


class _Table:
    def __init__(self):
        self.rows: dict[int, dict[str, Any]] = {}
        self._next_id = 1

    def insert(self, values: dict[str, Any]) -> int:
        row_id = self._next_id
        self._next_id += 1
        self.rows[row_id] = {"id": row_id, **values}
        return row_id


class FakeLinks:
    def __init__(self):
        self.table = _Table()

    def seed(self, eb_entity_type, eb_entity_id, local_entity_type, local_entity_id, parent_id=None):
        return self.table.insert(
            {
                "eb_entity_type": eb_entity_type,
                "eb_entity_id": eb_entity_id,
                "local_entity_type": local_entity_type,
                "local_entity_id": local_entity_id,
                "parent_id": parent_id,
            }
        )

    def all(self) -> list[LinkRecord]:
        return [LinkRecord(**row) for row in self.table.rows.values()]

    async def get(self, link_filter: LinkFilter) -> list[LinkRecord]:
        criteria = link_filter.criteria()
        return [
            LinkRecord(**row)
            for row_id, row in sorted(self.table.rows.items())
            if all(row[column] == value for column, value in criteria.items())
        ]

    async def create(
        self, eb_entity_type, eb_entity_id, local_entity_type, local_entity_id, parent_id=None
    ) -> LinkRecord:
        link_id = self.seed(
            eb_entity_type, eb_entity_id, local_entity_type, local_entity_id, parent_id
        )
        return LinkRecord(**self.table.rows[link_id])

    async def delete(self, link_id: int) -> int:
        return 1 if self.table.rows.pop(link_id, None) else 0


class FakeContacts:
    def __init__(self, custom_values: dict):
        self.table = _Table()
        self.custom_values = custom_values

    def seed(self, first_name, last_name, email, contact_type="Individual") -> int:
        return self.table.insert(
            {
                "contact_type": contact_type,
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
            }
        )

    async def save(self, fields: ContactFields) -> int:
        if fields.id is None:
            contact_id = self.table.insert(fields.column_values())
        else:
            if fields.id not in self.table.rows:
                raise LookupError(f"Contact {fields.id} not found")
            self.table.rows[fields.id].update(fields.column_values())
            contact_id = fields.id
        if fields.custom_values:
            self.custom_values.setdefault(("contacts", contact_id), {}).update(
                fields.custom_values
            )
        return contact_id

    async def find_duplicates(self, match: ContactMatch) -> list[int]:
        def norm(value):
            return (value or "").strip().lower()

        if not norm(match.email) and not (norm(match.first_name) or norm(match.last_name)):
            return []

        # Without an email, only contacts that also lack one are matched by name
        return [
            row_id
            for row_id, row in sorted(self.table.rows.items())
            if row.get("contact_type") == match.contact_type
            and norm(row.get("email")) == norm(match.email)
            and norm(row.get("first_name")) == norm(match.first_name)
            and norm(row.get("last_name")) == norm(match.last_name)
        ]


class FakeParticipants:
    def __init__(self, custom_values: dict):
        self.table = _Table()
        self.custom_values = custom_values

    async def get(self, participant_id: int) -> ParticipantRecord | None:
        row = self.table.rows.get(participant_id)
        if not row:
            return None
        return ParticipantRecord(
            id=row["id"],
            contact_id=row["contact_id"],
            event_id=row["event_id"],
            status=row["status"],
            role_id=row.get("role_id"),
        )

    async def save(self, fields: ParticipantFields) -> int:
        if fields.id is None:
            participant_id = self.table.insert(fields.column_values())
        else:
            if fields.id not in self.table.rows:
                raise LookupError(f"Participant {fields.id} not found")
            self.table.rows[fields.id].update(fields.column_values())
            participant_id = fields.id
        if fields.custom_values:
            self.custom_values.setdefault(("participants", participant_id), {}).update(
                fields.custom_values
            )
        return participant_id


class FakeLocations:
    """Addresses or phones; ``replace`` is atomic like the transactional repository."""

    def __init__(self):
        self.table = _Table()
        self.error: Exception | None = None

    def for_contact(self, contact_id: int, location_type: str) -> list[dict]:
        return [
            row
            for row in self.table.rows.values()
            if row["contact_id"] == contact_id and row["location_type"] == location_type
        ]

    def seed(self, fields: AddressFields | PhoneFields) -> int:
        return self.table.insert(fields.model_dump())

    async def replace(self, fields: AddressFields | PhoneFields) -> int:
        if self.error:
            raise self.error
        existing = self.for_contact(fields.contact_id, fields.location_type)
        if existing:
            del self.table.rows[max(row["id"] for row in existing)]
        return self.table.insert(fields.model_dump())


class FakePayments:
    def __init__(self):
        self.payments: list[ParticipantPayment] = []
        self.contribution_status: dict[int, str] = {}

    def seed(self, participant_id: int, contribution_id: int, status: str = "Completed") -> None:
        self.payments.append(
            ParticipantPayment(
                id=len(self.payments) + 1,
                participant_id=participant_id,
                contribution_id=contribution_id,
            )
        )
        self.contribution_status[contribution_id] = status

    async def get(self, participant_id: int) -> list[ParticipantPayment]:
        return [p for p in self.payments if p.participant_id == participant_id]


class FakeContributions:
    def __init__(self, payments: FakePayments):
        self._payments = payments

    async def update_status(self, contribution_id: int, status: str) -> int:
        self._payments.contribution_status[contribution_id] = status
        return 1


class FakeCustomFields:
    def __init__(self):
        self.extends: dict[int, str] = {}

    async def get_extends(self, field_id: int) -> str | None:
        return self.extends.get(field_id)


class FakeLogs:
    def __init__(self):
        self.entries: list[dict[str, Any]] = []

    async def append(self, message, severity="info", category="general", entity_id=None) -> int:
        self.entries.append(
            {
                "message": message,
                "severity": severity,
                "category": category,
                "entity_id": entity_id,
            }
        )
        return len(self.entries)


class FakeRecordStore:
    """In-memory stand-in for CrmRecordStore."""

    def __init__(self):
        self.custom_values: dict[tuple[str, int], dict[int, Any]] = {}
        self.links = FakeLinks()
        self.contacts = FakeContacts(self.custom_values)
        self.participants = FakeParticipants(self.custom_values)
        self.addresses = FakeLocations()
        self.phones = FakeLocations()
        self.participant_payments = FakePayments()
        self.contributions = FakeContributions(self.participant_payments)
        self.custom_fields = FakeCustomFields()
        self.logs = FakeLogs()


class FakeEventbrite:
    def __init__(self):
        self.attendees: dict[str, dict[str, Any]] = {}
        self.fetched: list[str] = []

    async def fetch_attendee(self, attendee_id: str) -> Attendee:
        self.fetched.append(attendee_id)
        return Attendee.model_validate(self.attendees[attendee_id])

    async def close(self) -> None:
        return None


def build_attendee_payload(attendee_id: str = "A1", **overrides) -> dict[str, Any]:
    payload = {
        "id": attendee_id,
        "event_id": "EV1",
        "ticket_class_id": "TC1",
        "checked_in": False,
        "cancelled": False,
        "created": "2024-03-01T10:15:00Z",
        "profile": {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@example.com",
            "work_phone": "555-0100",
            "addresses": {
                "work": {
                    "address_1": "1 Analytical Way",
                    "address_2": "Suite 2",
                    "city": "London",
                    "region": "LDN",
                    "postal_code": "N1 1AA",
                    "country": "GB",
                },
            },
        },
        "answers": [],
    }
    profile_overrides = overrides.pop("profile", None)
    payload.update(overrides)
    if profile_overrides:
        payload["profile"] = {**payload["profile"], **profile_overrides}
    return payload


LOCAL_EVENT_ID = 10


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def records():
    store = FakeRecordStore()
    store.links.seed("Event", "EV1", "Event", LOCAL_EVENT_ID)
    return store


@pytest.fixture
def eventbrite():
    return FakeEventbrite()


@pytest.fixture
def attendee_payload():
    return build_attendee_payload
