# cmms_app/settings.py
from fastapi import APIRouter, Depends, HTTPException

from cmms_app.config import DEFAULT_SETTINGS
from cmms_app.database import fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso
from cmms_app.dependencies import get_current_user
from cmms_app.models import SettingsUpdate

router = APIRouter()

BOOLEAN_FIELDS = (
    "email_notifications",
    "maintenance_due_reminders",
    "equipment_status_changes",
    "system_updates",
    "daily_digest",
)


def _decode(row):
    # sqlite stores booleans as 0/1
    for field in BOOLEAN_FIELDS:
        if row.get(field) is not None:
            row[field] = bool(row[field])
    return row


def get_or_create_settings(conn, user_id):
    row = fetch_one(conn, "SELECT * FROM settings WHERE user_id = ?", (user_id,))
    if row:
        return _decode(row)

    row = {"id": new_id(), "user_id": user_id, **DEFAULT_SETTINGS, "created_at": utc_now_iso()}
    insert_row(conn, "settings", row)
    conn.commit()
    return _decode(dict(row))


@router.get("/me")
def get_my_settings(user=Depends(get_current_user)):
    conn = get_db()
    try:
        return get_or_create_settings(conn, user["id"])
    finally:
        conn.close()


@router.put("/{settings_id}")
def update_settings(settings_id: str, data: SettingsUpdate, user=Depends(get_current_user)):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = get_db()
    try:
        current = fetch_one(conn, "SELECT user_id FROM settings WHERE id = ?", (settings_id,))
        if not current:
            raise HTTPException(status_code=404, detail="Settings not found")
        if current["user_id"] != user["id"] and user["role"] != "admin":
            raise HTTPException(status_code=403, detail="Cannot change another user's settings")

        update_row(conn, "settings", settings_id, changes)
        conn.commit()
        return _decode(fetch_one(conn, "SELECT * FROM settings WHERE id = ?", (settings_id,)))
    finally:
        conn.close()
