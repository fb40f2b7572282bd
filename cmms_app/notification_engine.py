"""Overdue / upcoming maintenance alerts derived from the task list.

Notifications are never stored. They are recomputed from whatever tasks are
passed in; the only persisted piece is the per-user read/dismissed state,
which is keyed by task id and notification kind and re-applied here.
"""
from datetime import timedelta

from cmms_app.config import UPCOMING_WINDOW_DAYS
from cmms_app.enums import TERMINAL_TASK_STATUSES, NotificationType, TaskStatus
from cmms_app.models import Notification
from cmms_app.utils import parse_datetime, utc_now

OVERDUE = "overdue"
UPCOMING = "upcoming"


def notification_id(kind, task_id):
    return f"{kind}-{task_id}"


def split_notification_id(value):
    """Inverse of notification_id; returns (kind, task_id) or None."""
    kind, sep, task_id = value.partition("-")
    if not sep or kind not in (OVERDUE, UPCOMING) or not task_id:
        return None
    return kind, task_id


def _equipment_name(task):
    equipment = task.get("equipment") or {}
    return equipment.get("name") or task.get("equipment_name") or "equipment"


def is_overdue(task, now):
    due = parse_datetime(task.get("scheduled_date"))
    if due is None:
        return False
    return due < now and task.get("status") not in {s.value for s in TERMINAL_TASK_STATUSES}


def is_upcoming(task, now, window_days=UPCOMING_WINDOW_DAYS):
    due = parse_datetime(task.get("scheduled_date"))
    if due is None:
        return False
    return now < due <= now + timedelta(days=window_days) and task.get("status") == TaskStatus.SCHEDULED.value


def generate_notifications(tasks, now=None, read_ids=(), dismissed_ids=()):
    """Build the alert list for `tasks` as of `now`, newest first.

    `read_ids` / `dismissed_ids` are notification ids ("overdue-<task id>")
    the user has already read or removed.
    """
    now = parse_datetime(now) if now is not None else utc_now()
    read_ids = set(read_ids)
    dismissed_ids = set(dismissed_ids)

    overdue = []
    upcoming = []
    for task in tasks:
        title = task.get("title")
        if is_overdue(task, now):
            overdue.append(Notification(
                id=notification_id(OVERDUE, task["id"]),
                title="Maintenance Overdue",
                message=f"Task '{title}' for {_equipment_name(task)} is overdue.",
                type=NotificationType.ERROR,
                timestamp=now,
                related_id=str(task["id"]),
            ))
        elif is_upcoming(task, now):
            upcoming.append(Notification(
                id=notification_id(UPCOMING, task["id"]),
                title="Upcoming Maintenance",
                message=f"Task '{title}' for {_equipment_name(task)} is due soon.",
                type=NotificationType.WARNING,
                timestamp=now,
                related_id=str(task["id"]),
            ))

    notifications = []
    for notification in overdue + upcoming:
        if notification.id in dismissed_ids:
            continue
        if notification.id in read_ids:
            notification.read = True
        notifications.append(notification)

    # sorted() is stable, so equal timestamps keep overdue-before-upcoming order
    return sorted(notifications, key=lambda n: n.timestamp, reverse=True)


def unread_count(notifications):
    return sum(1 for notification in notifications if not notification.read)
