import pytest

from cmms_app.enums import BADGE_TABLES, TaskPriority, TaskStatus, badge_for, display_metadata


@pytest.mark.parametrize("enum_type", list(BADGE_TABLES))
def test_every_member_has_a_badge(enum_type):
    for member in enum_type:
        badge = badge_for(member)
        assert set(badge) == {"label", "color", "icon"}


def test_badge_lookup():
    assert badge_for(TaskStatus.IN_PROGRESS)["label"] == "In Progress"
    assert badge_for(TaskPriority.CRITICAL)["color"] == "red"


def test_display_metadata_is_keyed_by_wire_value():
    metadata = display_metadata()
    assert set(metadata["task_status"]) == {"scheduled", "in-progress", "completed", "cancelled", "partial"}
    assert metadata["payment_status"]["canceled"]["label"] == "Canceled"
    assert set(metadata["maintenance_type"]) == {"predictive", "corrective", "conditional"}
