"""
Unit tests for the maintenance lifecycle.
"""

import uuid
from datetime import date

import pytest

from conftest import OTHER, OWNER, add_booking, add_window
from farmhub.errors import ForbiddenError, InvalidTransition, NotFoundError, ValidationError
from farmhub.services import MAINTENANCE_TRANSITIONS
from farmhub.services.maintenance import default_priority, normalize_maintenance_status


class TestStatusHelpers:

    @pytest.mark.parametrize("raw,expected", [
        ("in-progress", "in_progress"),
        ("in_progress", "in_progress"),
        ("Completed", "completed"),
        ("scheduled", "scheduled"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_maintenance_status(raw) == expected

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            normalize_maintenance_status("paused")

    def test_emergency_defaults_to_urgent(self):
        assert default_priority("emergency") == "urgent"
        assert default_priority("routine") == "medium"

    def test_terminal_statuses_have_no_edges(self):
        assert MAINTENANCE_TRANSITIONS["completed"] == frozenset()
        assert MAINTENANCE_TRANSITIONS["cancelled"] == frozenset()


class TestSchedule:
    """Test scheduling maintenance windows."""

    def test_schedule_blocks_equipment(self, maintenance_service, repos, tractor):
        window = maintenance_service.schedule(tractor.id, OWNER, "routine", "2025-07-03", description="Oil change")

        assert window.status == "scheduled"
        assert window.priority == "medium"
        assert window.scheduled_date == date(2025, 7, 3)
        assert repos.equipment.get(tractor.id).available is False

    def test_explicit_priority(self, maintenance_service, tractor):
        window = maintenance_service.schedule(tractor.id, OWNER, "repair", "2025-07-03", priority="high")
        assert window.priority == "high"

    def test_missing_fields(self, maintenance_service, tractor):
        with pytest.raises(ValidationError, match="Missing required fields"):
            maintenance_service.schedule(tractor.id, OWNER, None, "2025-07-03")

    def test_only_owner_can_schedule(self, maintenance_service, tractor):
        with pytest.raises(ForbiddenError, match="your own equipment"):
            maintenance_service.schedule(tractor.id, OTHER, "routine", "2025-07-03")

    def test_unknown_equipment(self, maintenance_service):
        with pytest.raises(NotFoundError):
            maintenance_service.schedule(uuid.uuid4(), OWNER, "routine", "2025-07-03")

    def test_unknown_type(self, maintenance_service, tractor):
        with pytest.raises(ValidationError, match="Invalid maintenance type"):
            maintenance_service.schedule(tractor.id, OWNER, "polishing", "2025-07-03")

    def test_past_date(self, maintenance_service, tractor):
        with pytest.raises(ValidationError, match="Maintenance date cannot be in the past"):
            maintenance_service.schedule(tractor.id, OWNER, "routine", "2025-05-20")


class TestUpdateStatus:
    """Test the maintenance state machine."""

    def test_start_then_complete(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3))

        maintenance_service.update_status(window.id, OWNER, "in-progress", technician="Ravi")
        assert window.status == "in_progress"
        assert window.technician == "Ravi"

        maintenance_service.update_status(window.id, OWNER, "completed", notes="Done", cost=450.0)
        assert window.status == "completed"
        assert window.completed_date is not None
        assert window.cost == 450.0
        assert repos.equipment.get(tractor.id).available is True

    def test_cancel_frees_equipment(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3))
        tractor.available = False

        maintenance_service.update_status(window.id, OWNER, "cancelled")

        assert repos.equipment.get(tractor.id).available is True

    def test_active_booking_keeps_equipment_blocked(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3))
        add_booking(repos, tractor, date(2025, 8, 1), date(2025, 8, 3), status="approved")

        maintenance_service.update_status(window.id, OWNER, "completed")

        assert repos.equipment.get(tractor.id).available is False

    @pytest.mark.parametrize("terminal", ["completed", "cancelled"])
    @pytest.mark.parametrize("target", ["scheduled", "in_progress", "completed", "cancelled"])
    def test_terminal_windows_are_closed(self, maintenance_service, repos, tractor, terminal, target):
        window = add_window(repos, tractor, date(2025, 7, 3), status=terminal)

        with pytest.raises(InvalidTransition):
            maintenance_service.update_status(window.id, OWNER, target)
        assert window.status == terminal

    def test_cannot_return_to_scheduled(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3), status="in_progress")

        with pytest.raises(InvalidTransition):
            maintenance_service.update_status(window.id, OWNER, "scheduled")

    def test_negative_cost(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3))

        with pytest.raises(ValidationError, match="Cost cannot be negative"):
            maintenance_service.update_status(window.id, OWNER, "completed", cost=-1.0)
        assert window.status == "scheduled"

    def test_non_owner(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3))

        with pytest.raises(ForbiddenError):
            maintenance_service.update_status(window.id, OTHER, "completed")

    def test_unknown_window(self, maintenance_service):
        with pytest.raises(NotFoundError, match="Maintenance record not found"):
            maintenance_service.update_status(uuid.uuid4(), OWNER, "completed")


class TestUpdateAndDelete:

    def test_update_fields(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3))

        updated = maintenance_service.update(
            window.id, OWNER, scheduled_date="2025-07-10", priority="urgent", description="Brakes",
        )

        assert updated.scheduled_date == date(2025, 7, 10)
        assert updated.priority == "urgent"
        assert updated.description == "Brakes"
        assert updated.status == "scheduled"

    def test_update_rejects_unknown_priority(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3))

        with pytest.raises(ValidationError):
            maintenance_service.update(window.id, OWNER, priority="whenever")

    def test_delete_recomputes(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3))
        tractor.available = False

        maintenance_service.delete(window.id, OWNER)

        assert repos.maintenance.get(window.id) is None
        assert repos.equipment.get(tractor.id).available is True

    def test_delete_by_non_owner(self, maintenance_service, repos, tractor):
        window = add_window(repos, tractor, date(2025, 7, 3))

        with pytest.raises(ForbiddenError, match="delete"):
            maintenance_service.delete(window.id, OTHER)

    def test_list_for_owner_filters(self, maintenance_service, repos, tractor):
        add_window(repos, tractor, date(2025, 7, 3))
        add_window(repos, tractor, date(2025, 7, 9), status="in_progress")

        assert len(maintenance_service.list_for_owner(OWNER)) == 2
        assert len(maintenance_service.list_for_owner(OWNER, status="in-progress")) == 1
        assert maintenance_service.list_for_owner(OTHER) == []
