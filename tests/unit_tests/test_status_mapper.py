"""Tests for provider status mapping."""

import pytest

from dirsync_api.errors import UnrecognizedStatusError
from dirsync_api.sync.enums import EmployeeStatus
from dirsync_api.sync.status_mapper import STATUS_MAP
from dirsync_api.sync.status_mapper import map_status


class TestMapStatus:
    """Tests for map_status."""

    @pytest.mark.parametrize(
        "provider_status,expected",
        [
            ("active", EmployeeStatus.ACTIVE),
            ("suspended", EmployeeStatus.SUSPENDED),
            ("archived", EmployeeStatus.OFFBOARDED),
            ("deleted", EmployeeStatus.OFFBOARDED),
        ],
    )
    def test_known_statuses(self, provider_status, expected):
        """Every recognized provider status maps to its employee status."""
        assert map_status(provider_status) == expected

    @pytest.mark.parametrize("provider_status", ["pending", "", "ACTIVE", "Suspended", "locked"])
    def test_unknown_status_defaults_to_active(self, provider_status):
        """Unknown statuses fail open so they never read as offboarding."""
        assert map_status(provider_status) == EmployeeStatus.ACTIVE

    def test_unknown_status_is_logged(self, log_records):
        """The fail-open default leaves a warning with the raw status."""
        map_status("on_leave")

        warnings = [record for record in log_records if record["level"] == "WARNING"]
        assert len(warnings) == 1
        assert warnings[0]["extra"]["provider_status"] == "on_leave"

    def test_strict_mode_raises_for_unknown_status(self):
        """Strict mode rejects statuses it does not know."""
        with pytest.raises(UnrecognizedStatusError) as exc_info:
            map_status("on_leave", strict=True)

        assert exc_info.value.provider_status == "on_leave"
        assert isinstance(exc_info.value, ValueError)

    def test_strict_mode_maps_known_statuses(self):
        """Strict mode does not change known mappings."""
        assert map_status("deleted", strict=True) == EmployeeStatus.OFFBOARDED

    def test_every_result_is_an_employee_status(self):
        """The mapping only produces the three employee statuses."""
        assert set(STATUS_MAP.values()) == set(EmployeeStatus)
