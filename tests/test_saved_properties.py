"""Tests for SavedPropertyService."""

import pytest

from aceprops.errors import BadRequestError, NotFoundError, PermissionDeniedError
from aceprops.models import UserProfile
from aceprops.services import SavedPropertyService

from conftest import FakePropertyRepository, FakeSavedPropertyRepository, property_row


@pytest.fixture
def properties() -> FakePropertyRepository:
    return FakePropertyRepository(
        [
            property_row("prop-1", monthly_rent=120000),
            property_row("prop-2", city="Leeds", monthly_rent=90000, address="2 Park Lane"),
            property_row("prop-3", city="York", monthly_rent=None),
            property_row("draft-prop", status="draft"),
            property_row("own-prop", landlord_id="inv-1"),
        ]
    )


@pytest.fixture
def saved(properties) -> FakeSavedPropertyRepository:
    return FakeSavedPropertyRepository(properties)


@pytest.fixture
def service(saved, properties) -> SavedPropertyService:
    return SavedPropertyService(saved_repo=saved, property_repo=properties)


class TestSave:
    def test_save_and_repeat(self, service, investor) -> None:
        first = service.save(investor, "prop-1")
        again = service.save(investor, "prop-1")

        assert first["message"] == "Property saved"
        assert again["alreadyExists"] is True
        assert again["savedAt"] == first["savedAt"]

    @pytest.mark.parametrize(
        "property_id, error, message",
        [
            ("nope", NotFoundError, "Property not found"),
            ("draft-prop", BadRequestError, "not available for saving"),
            ("own-prop", BadRequestError, "cannot save your own property"),
        ],
    )
    def test_rejected(self, service, investor, property_id, error, message) -> None:
        with pytest.raises(error, match=message):
            service.save(investor, property_id)

    def test_investors_only(self, service, landlord) -> None:
        with pytest.raises(PermissionDeniedError, match="investors only"):
            service.save(landlord, "prop-1")

    def test_is_saved(self, service, investor, landlord) -> None:
        assert service.is_saved(investor, "prop-1") == {"isSaved": False, "savedAt": None}
        saved_at = service.save(investor, "prop-1")["savedAt"]
        assert service.is_saved(investor, "prop-1") == {"isSaved": True, "savedAt": saved_at}
        assert service.is_saved(landlord, "prop-1")["isSaved"] is False
        assert service.is_saved(None, "prop-1")["isSaved"] is False


class TestList:
    @pytest.fixture(autouse=True)
    def seed(self, service, investor) -> None:
        for property_id in ("prop-1", "prop-2", "prop-3"):
            service.save(investor, property_id)

    def test_newest_first(self, service, investor) -> None:
        result = service.list_saved(investor)
        assert [p["property"]["id"] for p in result["properties"]] == [
            "prop-3",
            "prop-2",
            "prop-1",
        ]
        assert (result["total"], result["page"], result["totalPages"]) == (3, 1, 1)
        assert result["properties"][0]["savedPropertyId"] == "saved-3"

    def test_sort_by_price(self, service, investor) -> None:
        result = service.list_saved(investor, sort_by="price", order="asc")
        assert [p["property"]["id"] for p in result["properties"]] == [
            "prop-2",
            "prop-1",
            "prop-3",
        ]

    def test_search(self, service, investor) -> None:
        result = service.list_saved(investor, search="park lane")
        assert [p["property"]["id"] for p in result["properties"]] == ["prop-2"]

    def test_pagination(self, service, investor) -> None:
        result = service.list_saved(investor, page=2, limit=2)
        assert [p["property"]["id"] for p in result["properties"]] == ["prop-1"]
        assert (result["limit"], result["totalPages"]) == (2, 2)

    def test_limit_capped(self, service, investor) -> None:
        assert service.list_saved(investor, limit=500)["limit"] == 100

    def test_invalid_sort(self, service, investor) -> None:
        with pytest.raises(BadRequestError):
            service.list_saved(investor, sort_by="rent")

    def test_deleted_property_skipped(self, service, investor, properties) -> None:
        del properties.rows["prop-2"]
        assert service.list_saved(investor)["total"] == 2


class TestNotes:
    def test_update(self, service, investor) -> None:
        service.save(investor, "prop-1")
        result = service.update_notes(investor, "saved-1", "  Call agent  ")
        assert result["savedProperty"]["notes"] == "Call agent"
        assert result["message"] == "Notes updated successfully"

    def test_not_a_string(self, service, investor) -> None:
        with pytest.raises(BadRequestError, match="Notes must be a string"):
            service.update_notes(investor, "saved-1", 42)

    def test_other_investor(self, service, investor) -> None:
        service.save(investor, "prop-1")
        stranger = UserProfile(id="inv-9", user_type="investor")
        with pytest.raises(NotFoundError, match="not owned by user"):
            service.update_notes(stranger, "saved-1", "mine now")
