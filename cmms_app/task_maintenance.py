# cmms_app/task_maintenance.py
import sqlite3
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from cmms_app.database import delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.enums import MaintenanceFrequency, MaintenanceType, TaskStatus
from cmms_app.maintenance import PLANNER_ROLES, WORKER_ROLES, date_filters
from cmms_app.models import CompletionNotes, TaskMaintenanceIn, TaskMaintenanceUpdate

router = APIRouter()
log = structlog.get_logger()

# line = category, area = department
TASK_MAINTENANCE_SELECT = """
    SELECT tm.*,
           e.name AS equipment_name,
           t.name AS task_name,
           c.name AS category_name,
           d.name AS department_name
    FROM task_maintenance tm
    LEFT JOIN equipment e ON e.id = tm.equipment_id
    LEFT JOIN tasks t ON t.id = tm.task_id
    LEFT JOIN categories c ON c.id = tm.category_id
    LEFT JOIN departments d ON d.id = tm.department_id
"""


def load_task_maintenance(conn, item_id):
    return fetch_one(conn, TASK_MAINTENANCE_SELECT + " WHERE tm.id = ?", (item_id,))


def _check_custom_days(row):
    if row.get("frequency") == MaintenanceFrequency.CUSTOM.value and not row.get("custom_days"):
        raise HTTPException(status_code=400, detail="custom_days is required when frequency is 'custom'")


# --- List, by equipment / type / status / date window ---
@router.get("/")
def list_task_maintenance(
    equipment_id: Optional[str] = Query(None),
    type: Optional[MaintenanceType] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    user=Depends(get_current_user)
):
    start, end = date_filters(start_date, end_date)
    query = TASK_MAINTENANCE_SELECT + " WHERE 1=1"
    params = []

    if equipment_id:
        query += " AND tm.equipment_id = ?"
        params.append(equipment_id)
    if type:
        query += " AND tm.type = ?"
        params.append(type.value)
    if status:
        query += " AND tm.status = ?"
        params.append(status.value)
    if start:
        query += " AND tm.scheduled_date >= ?"
        params.append(start)
    if end:
        query += " AND tm.scheduled_date <= ?"
        params.append(end)
    query += " ORDER BY tm.scheduled_date"

    conn = get_db()
    try:
        rows = fetch_all(conn, query, params)
    except sqlite3.Error as e:
        log.error("task_maintenance_fetch_failed", error=str(e))
        raise
    finally:
        conn.close()
    return {"task_maintenance": rows}


@router.get("/{item_id}")
def get_task_maintenance(item_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        row = load_task_maintenance(conn, item_id)
    finally:
        conn.close()
    if not row:
        raise HTTPException(status_code=404, detail="Task maintenance not found")
    return row


@router.post("/", status_code=201, dependencies=[Depends(require_role(*PLANNER_ROLES))])
def add_task_maintenance(data: TaskMaintenanceIn):
    now = utc_now_iso()
    row = {"id": new_id(), **data.model_dump(mode="json"), "created_at": now, "updated_at": now}
    conn = get_db()
    try:
        insert_row(conn, "task_maintenance", row)
        conn.commit()
        created = load_task_maintenance(conn, row["id"])
    except sqlite3.IntegrityError as e:
        conn.rollback()
        log.warning("task_maintenance_create_failed", error=str(e))
        raise HTTPException(status_code=409, detail=f"Unknown task, equipment, line, area or assignee: {e}")
    finally:
        conn.close()

    log.info("task_maintenance_scheduled", id=row["id"], type=row["type"], frequency=row["frequency"])
    return created


@router.put("/{item_id}", dependencies=[Depends(require_role(*WORKER_ROLES))])
def update_task_maintenance(item_id: str, data: TaskMaintenanceUpdate):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = get_db()
    try:
        current = fetch_one(conn, "SELECT frequency, custom_days FROM task_maintenance WHERE id = ?", (item_id,))
        if not current:
            raise HTTPException(status_code=404, detail="Task maintenance not found")
        _check_custom_days({**current, **changes})

        changes["updated_at"] = utc_now_iso()
        update_row(conn, "task_maintenance", item_id, changes)
        conn.commit()
        return load_task_maintenance(conn, item_id)
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"Task maintenance could not be updated: {e}")
    finally:
        conn.close()


@router.put("/{item_id}/complete", dependencies=[Depends(require_role(*WORKER_ROLES))])
def complete_task_maintenance(item_id: str, completion: CompletionNotes):
    conn = get_db()
    try:
        updated = update_row(conn, "task_maintenance", item_id, {
            "status": TaskStatus.COMPLETED.value,
            "notes": completion.notes or None,
            "updated_at": utc_now_iso(),
        })
        if updated == 0:
            raise HTTPException(status_code=404, detail="Task maintenance not found")
        conn.commit()
        return load_task_maintenance(conn, item_id)
    finally:
        conn.close()


@router.delete("/{item_id}", dependencies=[Depends(require_role(*PLANNER_ROLES))])
def delete_task_maintenance(item_id: str):
    conn = get_db()
    try:
        if delete_row(conn, "task_maintenance", item_id) == 0:
            raise HTTPException(status_code=404, detail="Task maintenance not found")
        conn.commit()
    finally:
        conn.close()
    return {"message": f"Task maintenance {item_id} deleted"}
