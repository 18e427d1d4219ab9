"""Tests for PreferenceService."""

import pytest

from aceprops.errors import BadRequestError, PermissionDeniedError
from aceprops.services import PreferenceService

from conftest import FakePreferenceRepository


def payload(**overrides) -> dict:
    data = {
        "operator_type": "sa_operator",
        "preference_data": {
            "property_types": ["flats"],
            "bedrooms": {"min": 1, "max": 3},
            "budget": {"min": 800, "max": 1500, "type": "per_property"},
            "locations": [{"city": "Leeds", "localAuthorities": ["Leeds", " "]}],
        },
    }
    data.update(overrides)
    return data


@pytest.fixture
def repo() -> FakePreferenceRepository:
    return FakePreferenceRepository()


@pytest.fixture
def service(repo) -> PreferenceService:
    return PreferenceService(preference_repo=repo)


class TestSave:
    def test_upserts_active_preferences(self, service, repo, investor) -> None:
        result = service.save(investor, payload())

        assert result["success"] is True
        saved = repo.upserts[0]
        assert saved["investor_id"] == "inv-1"
        assert saved["is_active"] is True
        assert saved["notification_enabled"] is True
        assert saved["operator_type_other"] is None
        assert saved["preference_data"]["locations"] == [
            {"city": "Leeds", "localAuthorities": ["Leeds"]}
        ]

    def test_second_save_replaces_row(self, service, repo, investor) -> None:
        service.save(investor, payload())
        service.save(investor, payload(operator_type="social_housing"))
        assert len(repo.rows) == 1
        assert repo.get_by_investor("inv-1")["operator_type"] == "social_housing"

    def test_other_operator_type(self, service, repo, investor) -> None:
        service.save(investor, payload(operator_type="other", operator_type_other="Charity"))
        assert repo.upserts[0]["operator_type_other"] == "Charity"

    def test_notifications_can_be_disabled(self, service, repo, investor) -> None:
        service.save(investor, payload(notification_enabled=False))
        assert repo.upserts[0]["notification_enabled"] is False

    def test_single_local_authority_is_promoted(self, service, repo, investor) -> None:
        data = payload()
        data["preference_data"]["locations"] = [{"city": "York", "localAuthority": "York"}]
        service.save(investor, data)
        location = repo.upserts[0]["preference_data"]["locations"][0]
        assert location == {"city": "York", "localAuthorities": ["York"]}

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"operator_type": None}, "required"),
            ({"preference_data": None}, "required"),
            ({"operator_type": "landlord"}, "Invalid operator_type"),
            ({"operator_type": "other"}, "operator_type_other is required"),
            ({"preference_data": ["flats"]}, "must be an object"),
            (
                {"preference_data": {"locations": [{"localAuthorities": ["Leeds"]}]}},
                "city required",
            ),
            (
                {"preference_data": {"bedrooms": {"min": 5, "max": 2}}},
                "Invalid preference_data",
            ),
        ],
    )
    def test_validation(self, service, repo, investor, overrides, message) -> None:
        with pytest.raises(BadRequestError, match=message):
            service.save(investor, payload(**overrides))
        assert repo.upserts == []

    def test_investors_only(self, service, landlord) -> None:
        with pytest.raises(PermissionDeniedError):
            service.save(landlord, payload())


class TestGet:
    def test_without_preferences(self, service, investor) -> None:
        result = service.get(investor)
        assert result["hasPreferences"] is False
        assert result["preferences"] is None

    def test_with_preferences(self, service, investor) -> None:
        service.save(investor, payload())
        result = service.get(investor)
        assert result["hasPreferences"] is True
        assert result["preferences"]["operator_type"] == "sa_operator"

    def test_investors_only(self, service, admin) -> None:
        with pytest.raises(PermissionDeniedError):
            service.get(admin)
