from datetime import datetime, timedelta

from cmms_app.enums import NotificationType
from cmms_app.notification_engine import (
    generate_notifications,
    notification_id,
    split_notification_id,
    unread_count,
)

NOW = datetime(2024, 1, 1, 12, 0, 0)


def task(task_id, scheduled_date, status="scheduled", **extra):
    return {"id": task_id, "title": f"Task {task_id}", "scheduled_date": scheduled_date, "status": status, **extra}


def test_past_scheduled_task_is_overdue():
    notifications = generate_notifications([task("1", "2020-01-01")], now="2024-01-01")

    assert [n.id for n in notifications] == ["overdue-1"]
    assert notifications[0].type == NotificationType.ERROR
    assert notifications[0].related_id == "1"
    assert notifications[0].read is False


def test_task_due_within_three_days_is_upcoming():
    soon = (NOW + timedelta(days=2)).isoformat()
    notifications = generate_notifications([task("2", soon)], now=NOW)

    assert [n.id for n in notifications] == ["upcoming-2"]
    assert notifications[0].type == NotificationType.WARNING


def test_terminal_tasks_never_alert():
    tasks = [
        task("1", "2020-01-01", status="completed"),
        task("2", "2020-01-01", status="cancelled"),
    ]
    assert generate_notifications(tasks, now=NOW) == []


def test_in_progress_past_task_is_overdue_but_not_upcoming_when_future():
    tasks = [
        task("1", "2023-12-01", status="in-progress"),
        task("2", (NOW + timedelta(days=1)).isoformat(), status="in-progress"),
    ]
    assert [n.id for n in generate_notifications(tasks, now=NOW)] == ["overdue-1"]


def test_upcoming_window_boundaries():
    tasks = [
        task("edge", (NOW + timedelta(days=3)).isoformat()),
        task("beyond", (NOW + timedelta(days=3, seconds=1)).isoformat()),
    ]
    assert [n.id for n in generate_notifications(tasks, now=NOW)] == ["upcoming-edge"]


def test_no_task_produces_both_kinds():
    tasks = [task(str(i), (NOW + timedelta(days=offset)).isoformat()) for i, offset in enumerate(range(-5, 6))]
    notifications = generate_notifications(tasks, now=NOW)

    related = [n.related_id for n in notifications]
    assert len(related) == len(set(related))


def test_unparsable_dates_are_ignored():
    tasks = [task("1", "not a date"), task("2", None)]
    assert generate_notifications(tasks, now=NOW) == []


def test_regeneration_is_idempotent():
    tasks = [task("1", "2023-12-01"), task("2", (NOW + timedelta(days=1)).isoformat())]

    first = generate_notifications(tasks, now=NOW)
    second = generate_notifications(tasks, now=NOW)

    assert [n.model_dump() for n in first] == [n.model_dump() for n in second]


def test_overdue_listed_before_upcoming_for_equal_timestamps():
    tasks = [task("b", (NOW + timedelta(days=1)).isoformat()), task("a", "2023-12-01")]
    assert [n.id for n in generate_notifications(tasks, now=NOW)] == ["overdue-a", "upcoming-b"]


def test_message_uses_equipment_name():
    tasks = [
        task("1", "2023-12-01", equipment={"name": "Boiler"}),
        task("2", "2023-12-02", equipment_name="Chiller"),
        task("3", "2023-12-03"),
    ]
    messages = {n.related_id: n.message for n in generate_notifications(tasks, now=NOW)}

    assert messages["1"] == "Task 'Task 1' for Boiler is overdue."
    assert messages["2"] == "Task 'Task 2' for Chiller is overdue."
    assert messages["3"] == "Task 'Task 3' for equipment is overdue."


def test_read_and_dismissed_state_is_reapplied():
    tasks = [task("1", "2023-12-01"), task("2", "2023-12-02"), task("3", "2023-12-03")]

    notifications = generate_notifications(
        tasks, now=NOW, read_ids={"overdue-1"}, dismissed_ids={"overdue-2"},
    )

    by_id = {n.id: n for n in notifications}
    assert set(by_id) == {"overdue-1", "overdue-3"}
    assert by_id["overdue-1"].read is True
    assert by_id["overdue-3"].read is False
    assert unread_count(notifications) == 1


def test_read_state_does_not_carry_across_kinds():
    # read while still upcoming, now overdue
    notifications = generate_notifications([task("1", "2023-12-01")], now=NOW, read_ids={"upcoming-1"})
    assert notifications[0].read is False


def test_notification_id_round_trip_keeps_dashes_in_task_id():
    task_id = "5f1c-44aa-9b"
    assert split_notification_id(notification_id("overdue", task_id)) == ("overdue", task_id)


def test_split_notification_id_rejects_garbage():
    assert split_notification_id("nonsense") is None
    assert split_notification_id("stale-123") is None
    assert split_notification_id("overdue-") is None
