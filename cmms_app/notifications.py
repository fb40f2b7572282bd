# cmms_app/notifications.py
import structlog
from fastapi import APIRouter, Depends, HTTPException

from cmms_app.database import fetch_all, get_db, utc_now_iso
from cmms_app.dependencies import get_current_user
from cmms_app.enums import TaskStatus
from cmms_app.maintenance import TASK_SELECT
from cmms_app.notification_engine import (
    generate_notifications, notification_id, split_notification_id, unread_count,
)

router = APIRouter()
log = structlog.get_logger()


def load_notification_state(conn, user_id):
    """Return (read_ids, dismissed_ids) for the user as notification ids."""
    rows = fetch_all(conn, """
        SELECT task_id, kind, read, dismissed FROM notification_state WHERE user_id = ?
    """, (user_id,))
    read_ids = {notification_id(r["kind"], r["task_id"]) for r in rows if r["read"]}
    dismissed_ids = {notification_id(r["kind"], r["task_id"]) for r in rows if r["dismissed"]}
    return read_ids, dismissed_ids


def save_notification_state(conn, user_id, kind, task_id, read=None, dismissed=None):
    conn.execute("""
        INSERT INTO notification_state (user_id, task_id, kind, read, dismissed, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(user_id, task_id, kind) DO UPDATE SET
            read = MAX(read, excluded.read),
            dismissed = MAX(dismissed, excluded.dismissed),
            updated_at = excluded.updated_at
    """, (user_id, task_id, kind, int(bool(read)), int(bool(dismissed)), utc_now_iso()))


def current_notifications(conn, user_id):
    # completed/cancelled tasks can never produce an alert
    tasks = fetch_all(conn, TASK_SELECT + " WHERE t.status NOT IN (?, ?) ORDER BY t.scheduled_date", (
        TaskStatus.COMPLETED.value, TaskStatus.CANCELLED.value,
    ))
    read_ids, dismissed_ids = load_notification_state(conn, user_id)
    return generate_notifications(tasks, read_ids=read_ids, dismissed_ids=dismissed_ids)


def _require_current(conn, user_id, notification_id_value):
    """(kind, task_id) of an alert the user can currently see, else 404."""
    parsed = split_notification_id(notification_id_value)
    if parsed is None or notification_id_value not in {
        n.id for n in current_notifications(conn, user_id)
    }:
        raise HTTPException(status_code=404, detail="Notification not found")
    return parsed


@router.get("/")
def list_notifications(user=Depends(get_current_user)):
    conn = get_db()
    try:
        notifications = current_notifications(conn, user["id"])
    finally:
        conn.close()
    return {
        "notifications": [n.model_dump(mode="json") for n in notifications],
        "unread_count": unread_count(notifications),
    }


@router.post("/read-all")
def mark_all_as_read(user=Depends(get_current_user)):
    conn = get_db()
    try:
        notifications = current_notifications(conn, user["id"])
        for notification in notifications:
            kind, task_id = split_notification_id(notification.id)
            save_notification_state(conn, user["id"], kind, task_id, read=True)
        conn.commit()
    finally:
        conn.close()
    return {"marked": len(notifications), "unread_count": 0}


@router.post("/{notification_id}/read")
def mark_as_read(notification_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        kind, task_id = _require_current(conn, user["id"], notification_id)
        save_notification_state(conn, user["id"], kind, task_id, read=True)
        conn.commit()
        notifications = current_notifications(conn, user["id"])
    finally:
        conn.close()
    return {"id": notification_id, "read": True, "unread_count": unread_count(notifications)}


@router.delete("/{notification_id}")
def remove_notification(notification_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        kind, task_id = _require_current(conn, user["id"], notification_id)
        save_notification_state(conn, user["id"], kind, task_id, dismissed=True)
        conn.commit()
        notifications = current_notifications(conn, user["id"])
    finally:
        conn.close()
    log.info("notification_dismissed", notification_id=notification_id)
    return {"id": notification_id, "dismissed": True, "unread_count": unread_count(notifications)}
