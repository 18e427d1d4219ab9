"""Pytest configuration and fixtures."""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from aceprops.config import Settings
from aceprops.errors import ConflictError
from aceprops.models import UserProfile, ViewingBooking

LONDON = ZoneInfo("Europe/London")

# Lunes 10 de marzo de 2025, 08:00 en Londres
MONDAY_MORNING = datetime(2025, 3, 10, 8, 0, tzinfo=LONDON)


class FakePropertyRepository:
    """Tabla 'properties' en memoria."""

    def __init__(self, rows: Optional[list[dict]] = None):
        self.rows = {row["id"]: dict(row) for row in rows or []}
        self.status_updates: list[tuple[str, str]] = []

    def get_by_id(self, property_id: str) -> Optional[dict]:
        row = self.rows.get(property_id)
        return dict(row) if row else None

    def get_active(self) -> list[dict]:
        return [dict(r) for r in self.rows.values() if r.get("status") == "active"]

    def get_active_since(self, since: datetime) -> list[dict]:
        return [
            dict(r)
            for r in self.get_active()
            if r.get("created_at") and datetime.fromisoformat(r["created_at"]) >= since
        ]

    def update_status(self, property_id: str, status: str, extra: Optional[dict] = None) -> dict:
        self.status_updates.append((property_id, status))
        self.rows[property_id].update({"status": status, **(extra or {})})
        return dict(self.rows[property_id])

    def create(self, data: dict) -> dict:
        row = {**data, "id": data.get("id") or f"prop-new-{len(self.rows) + 1}"}
        self.rows[row["id"]] = row
        return dict(row)


class FakePreferenceRepository:
    """Tabla 'investor_preferences' con el join a 'user_profiles'."""

    def __init__(self, rows: Optional[list[dict]] = None):
        self.rows = [dict(row) for row in rows or []]
        self.upserts: list[dict] = []

    def get_by_investor(self, investor_id: str) -> Optional[dict]:
        for row in self.rows:
            if row.get("investor_id") == investor_id:
                return dict(row)
        return None

    def get_active_for_investor(self, investor_id: str) -> Optional[dict]:
        row = self.get_by_investor(investor_id)
        return row if row and row.get("is_active") is not False else None

    def get_active_with_profiles(self) -> list[dict]:
        return [dict(r) for r in self.rows if r.get("is_active") is not False]

    def upsert(self, investor_id: str, data: dict) -> dict:
        row = {**data, "investor_id": investor_id}
        self.upserts.append(row)
        self.rows = [r for r in self.rows if r.get("investor_id") != investor_id]
        self.rows.append(row)
        return dict(row)


class FakeViewingRepository:
    """
    Tabla 'property_viewings' en memoria.

    create() imita el índice único sobre (property_id, fecha, hora)
    para visitas pending/approved.
    """

    def __init__(self, rows: Optional[list[dict]] = None):
        self.rows = [dict(row) for row in rows or []]
        self._next_id = len(self.rows) + 1
        self.marked: list[tuple[str, list[str]]] = []

    def get_by_id(self, viewing_id: str) -> Optional[dict]:
        for row in self.rows:
            if row.get("id") == viewing_id:
                return dict(row)
        return None

    def get_for_property(
        self,
        property_id: str,
        start_date: date,
        end_date: date,
        statuses: Optional[list[str]] = None,
    ) -> list[dict]:
        return [
            dict(row)
            for row in self.rows
            if row["property_id"] == property_id
            and start_date.isoformat() <= row["viewing_date"] <= end_date.isoformat()
            and (not statuses or row["status"] in statuses)
        ]

    def find_user_request(
        self, user_id: str, property_id: str, viewing_date: date, viewing_time: str
    ) -> Optional[dict]:
        for row in self.rows:
            if (
                row.get("user_id") == user_id
                and row["property_id"] == property_id
                and row["viewing_date"] == viewing_date.isoformat()
                and row["viewing_time"][:5] == viewing_time
                and row["status"] in ("pending", "approved")
            ):
                return dict(row)
        return None

    def create(self, booking: ViewingBooking) -> dict:
        data = booking.to_db_dict()
        for row in self.rows:
            if (
                row["property_id"] == data["property_id"]
                and row["viewing_date"] == data["viewing_date"]
                and row["viewing_time"][:5] == data["viewing_time"]
                and row["status"] in ("pending", "approved")
            ):
                raise ConflictError("This time slot is already booked")
        data["id"] = f"viewing-{self._next_id}"
        self._next_id += 1
        self.rows.append(data)
        return dict(data)

    def update_status(self, viewing_id: str, status: str, extra: Optional[dict] = None) -> dict:
        for row in self.rows:
            if row.get("id") == viewing_id:
                row.update({"status": status, **(extra or {})})
                return dict(row)
        return {}

    def list_viewings(
        self,
        investor_id: Optional[str] = None,
        landlord_id: Optional[str] = None,
        status: Optional[str] = None,
        ascending: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict]:
        rows = [
            dict(row)
            for row in self.rows
            if (not investor_id or row.get("user_id") == investor_id)
            and (not landlord_id or row.get("landlord_id") == landlord_id)
            and (not status or row["status"] == status)
        ]
        rows.sort(
            key=lambda r: (r["viewing_date"], r["viewing_time"]), reverse=not ascending
        )
        return rows[offset : offset + limit]

    def count_by_status(self, landlord_id: Optional[str] = None) -> dict[str, int]:
        counts = {s: 0 for s in ("pending", "approved", "rejected", "cancelled", "completed")}
        for row in self.rows:
            if not landlord_id or row.get("landlord_id") == landlord_id:
                counts[row["status"]] += 1
        return counts

    def mark_viewed(self, viewing_ids: list[str], column: str) -> None:
        self.marked.append((column, list(viewing_ids)))
        for row in self.rows:
            if row.get("id") in viewing_ids:
                row[column] = True


class FakeUserProfileRepository:
    def __init__(self, rows: Optional[list[dict]] = None):
        self.rows = {row["id"]: dict(row) for row in rows or []}

    def get_by_id(self, user_id: str) -> Optional[dict]:
        row = self.rows.get(user_id)
        return dict(row) if row else None

    def update_user_type(self, user_id: str, user_type: str) -> dict:
        row = self.rows.setdefault(user_id, {"id": user_id})
        row["user_type"] = user_type
        return dict(row)


class FakePropertyDraftRepository:
    """Tabla 'property_drafts' en memoria."""

    def __init__(self, rows: Optional[list[dict]] = None):
        self.rows = [dict(row) for row in rows or []]
        self._next_id = len(self.rows) + 1

    def get_for_owner(
        self, user_id: Optional[str] = None, session_id: Optional[str] = None
    ) -> Optional[dict]:
        for row in self.rows:
            if user_id and row.get("user_id") == user_id:
                return dict(row)
            if not user_id and session_id and row.get("session_id") == session_id:
                return dict(row)
        return None

    def create(self, data: dict) -> dict:
        row = {**data, "id": f"draft-{self._next_id}"}
        self._next_id += 1
        self.rows.append(row)
        return dict(row)

    def update(self, draft_id: str, data: dict) -> dict:
        for row in self.rows:
            if row["id"] == draft_id:
                row.update(data)
                return dict(row)
        return {}

    def delete(self, draft_id: str) -> None:
        self.rows = [row for row in self.rows if row["id"] != draft_id]


class FakeSavedPropertyRepository:
    """
    Tabla 'saved_properties' en memoria; el join a 'properties' sale
    del FakePropertyRepository que recibe.
    """

    def __init__(self, properties: FakePropertyRepository, rows: Optional[list[dict]] = None):
        self.properties = properties
        self.rows = [dict(row) for row in rows or []]
        self._next_id = len(self.rows) + 1

    def list_for_investor(self, investor_id: str) -> list[dict]:
        rows = [
            {**row, "properties": self.properties.get_by_id(row["property_id"])}
            for row in self.rows
            if row["investor_id"] == investor_id
        ]
        return sorted(rows, key=lambda r: r["saved_at"], reverse=True)

    def get(self, investor_id: str, property_id: str) -> Optional[dict]:
        for row in self.rows:
            if row["investor_id"] == investor_id and row["property_id"] == property_id:
                return dict(row)
        return None

    def create(self, investor_id: str, property_id: str) -> dict:
        if self.get(investor_id, property_id):
            raise ConflictError("Property already saved")
        row = {
            "id": f"saved-{self._next_id}",
            "investor_id": investor_id,
            "property_id": property_id,
            "saved_at": f"2025-03-10T08:00:{self._next_id:02d}+00:00",
            "notes": None,
        }
        self._next_id += 1
        self.rows.append(row)
        return dict(row)

    def update_notes(
        self, saved_id: str, investor_id: str, notes: Optional[str]
    ) -> Optional[dict]:
        for row in self.rows:
            if row["id"] == saved_id and row["investor_id"] == investor_id:
                row["notes"] = notes
                return dict(row)
        return None


class RecordingEmailSender:
    """Guarda los emails en vez de mandarlos."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent: list[dict] = []

    async def send(self, to: str, subject: str, html: str) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html})
        return self.succeed


def preference_row(
    investor_id: str = "inv-1",
    preference_data: Optional[dict] = None,
    is_active: bool = True,
    email: Optional[str] = "investor@example.com",
    notification_enabled: bool = True,
    **extra,
) -> dict:
    if preference_data is None:
        preference_data = {
            "property_types": ["flats"],
            "bedrooms": {"min": 1, "max": 2},
            "budget": {"min": 1000, "max": 1500, "type": "per_property"},
            "locations": [{"city": "London", "localAuthorities": ["Camden"]}],
        }
    return {
        "id": f"pref-{investor_id}",
        "investor_id": investor_id,
        "operator_type": "sa_operator",
        "preference_data": preference_data,
        "is_active": is_active,
        "notification_enabled": notification_enabled,
        "user_profiles": {
            "id": investor_id,
            "full_name": "Ada Investor",
            "email": email,
            "phone": "07123456789",
            "company_name": "Ada Lettings",
            "user_type": "investor",
            "notification_enabled": True,
        },
        **extra,
    }


def property_row(property_id: str = "prop-1", **overrides) -> dict:
    row = {
        "id": property_id,
        "landlord_id": "landlord-1",
        "property_type": "flats",
        "bedrooms": 2,
        "bathrooms": 1,
        "monthly_rent": 120000,
        "address": "1 Camden Road",
        "city": "London",
        "postcode": "NW1 9AA",
        "status": "active",
        "created_at": "2025-03-09T12:00:00+00:00",
    }
    row.update(overrides)
    return row


@pytest.fixture
def settings() -> Settings:
    """Settings de test, sin leer el .env."""
    return Settings(
        _env_file=None,
        supabase_url="https://test.supabase.co",
        supabase_key="test-anon-key",
        resend_api_key=None,
        cron_secret="cron-secret",
        site_url="https://example.test",
    )


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def now() -> datetime:
    return MONDAY_MORNING


@pytest.fixture
def investor() -> UserProfile:
    return UserProfile(id="inv-1", email="investor@example.com", user_type="investor")


@pytest.fixture
def landlord() -> UserProfile:
    return UserProfile(id="landlord-1", email="landlord@example.com", user_type="landlord")


@pytest.fixture
def admin() -> UserProfile:
    return UserProfile(id="admin-1", email="admin@example.com", user_type="admin")
