# cmms_app/maintenance.py
import sqlite3
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from cmms_app.database import (
    delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso,
)
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.enums import TERMINAL_TASK_STATUSES, TaskPriority, TaskStatus
from cmms_app.models import MaintenanceTaskIn, MaintenanceTaskUpdate, StatusHistoryIn, TaskCompletion
from cmms_app.utils import lower_bound, upper_bound, utc_now

router = APIRouter()
log = structlog.get_logger()

PLANNER_ROLES = ("admin", "manager")
WORKER_ROLES = ("admin", "manager", "technician")

TASK_SELECT = """
    SELECT t.*, e.name AS equipment_name, e.department_id AS department_id
    FROM maintenance_tasks t
    LEFT JOIN equipment e ON e.id = t.equipment_id
"""


def load_task(conn, task_id):
    return fetch_one(conn, TASK_SELECT + " WHERE t.id = ?", (task_id,))


def query_tasks(conn, equipment_id=None, status=None, priority=None,
                assigned_to=None, start_date=None, end_date=None):
    """Task rows joined with their equipment, ordered by scheduled_date."""
    query = TASK_SELECT + " WHERE 1=1"
    params = []

    if equipment_id:
        query += " AND t.equipment_id = ?"
        params.append(equipment_id)
    if status:
        query += " AND t.status = ?"
        params.append(status)
    if priority:
        query += " AND t.priority = ?"
        params.append(priority)
    if assigned_to:
        query += " AND t.assigned_to = ?"
        params.append(assigned_to)
    if start_date:
        query += " AND t.scheduled_date >= ?"
        params.append(start_date)
    if end_date:
        query += " AND t.scheduled_date <= ?"
        params.append(end_date)

    query += " ORDER BY t.scheduled_date"
    return fetch_all(conn, query, params)


def date_filters(start_date, end_date):
    """Query-string dates as comparable ISO bounds; 400 when either is unparsable."""
    start = lower_bound(start_date) if start_date else None
    end = upper_bound(end_date) if end_date else None
    if (start_date and start is None) or (end_date and end is None):
        raise HTTPException(status_code=400, detail="Dates must be ISO formatted (YYYY-MM-DD)")
    return start, end


def forget_notification_state(conn, task_id):
    # a finished task never alerts again
    conn.execute("DELETE FROM notification_state WHERE task_id = ?", (task_id,))


def record_status(conn, task_id, status, notes=None, status_date=None, created_by=None):
    now = utc_now_iso()
    insert_row(conn, "task_status_history", {
        "id": new_id(),
        "task_id": task_id,
        "status_date": status_date or now,
        "status": status,
        "notes": notes,
        "created_at": now,
        "created_by": created_by,
    })


# --- View tasks, optionally filtered ---
@router.get("/")
def list_tasks(
    equipment_id: Optional[str] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    assigned_to: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    user=Depends(get_current_user)
):
    start, end = date_filters(start_date, end_date)
    conn = get_db()
    try:
        tasks = query_tasks(
            conn,
            equipment_id=equipment_id,
            status=status.value if status else None,
            priority=priority.value if priority else None,
            assigned_to=assigned_to,
            start_date=start,
            end_date=end,
        )
    except sqlite3.Error as e:
        log.error("tasks_fetch_failed", error=str(e))
        raise
    finally:
        conn.close()
    return {"tasks": tasks}


@router.get("/{task_id}")
def get_task(task_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        task = load_task(conn, task_id)
    finally:
        conn.close()
    if not task:
        raise HTTPException(status_code=404, detail="Maintenance task not found")
    return task


# --- Schedule a task ---
@router.post("/", status_code=201)
def add_task(data: MaintenanceTaskIn, user=Depends(require_role(*PLANNER_ROLES))):
    row = {"id": new_id(), **data.model_dump(mode="json"), "created_at": utc_now_iso()}
    conn = get_db()
    try:
        insert_row(conn, "maintenance_tasks", row)
        record_status(conn, row["id"], row["status"], notes="Task created", created_by=user["id"])
        conn.commit()
        task = load_task(conn, row["id"])
    except sqlite3.IntegrityError as e:
        conn.rollback()
        log.warning("task_create_failed", error=str(e))
        raise HTTPException(status_code=409, detail=f"Unknown equipment, category or assignee: {e}")
    finally:
        conn.close()

    log.info("task_scheduled", task_id=row["id"], equipment_id=row["equipment_id"])
    return task


@router.put("/{task_id}")
def update_task(task_id: str, data: MaintenanceTaskUpdate, user=Depends(require_role(*WORKER_ROLES))):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = get_db()
    try:
        current = fetch_one(conn, "SELECT status FROM maintenance_tasks WHERE id = ?", (task_id,))
        if not current:
            raise HTTPException(status_code=404, detail="Maintenance task not found")

        update_row(conn, "maintenance_tasks", task_id, changes)
        new_status = changes.get("status")
        if new_status and new_status != current["status"]:
            record_status(conn, task_id, new_status, notes=changes.get("notes"), created_by=user["id"])
            if new_status in {s.value for s in TERMINAL_TASK_STATUSES}:
                forget_notification_state(conn, task_id)
        conn.commit()
        return load_task(conn, task_id)
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"Maintenance task could not be updated: {e}")
    finally:
        conn.close()


@router.put("/{task_id}/complete")
def complete_task(task_id: str, completion: TaskCompletion, user=Depends(require_role(*WORKER_ROLES))):
    completed_at = utc_now().isoformat()
    conn = get_db()
    try:
        updated = update_row(conn, "maintenance_tasks", task_id, {
            "status": TaskStatus.COMPLETED.value,
            "completed_date": completed_at,
            "actual_duration": completion.actual_duration,
            "notes": completion.notes,
        })
        if updated == 0:
            raise HTTPException(status_code=404, detail="Maintenance task not found")
        record_status(conn, task_id, TaskStatus.COMPLETED.value, notes=completion.notes,
                      status_date=completed_at, created_by=user["id"])
        forget_notification_state(conn, task_id)
        conn.commit()
        task = load_task(conn, task_id)
    finally:
        conn.close()

    log.info("task_completed", task_id=task_id, actual_duration=completion.actual_duration)
    return task


@router.delete("/{task_id}", dependencies=[Depends(require_role(*PLANNER_ROLES))])
def delete_task(task_id: str):
    conn = get_db()
    try:
        if delete_row(conn, "maintenance_tasks", task_id) == 0:
            raise HTTPException(status_code=404, detail="Maintenance task not found")
        conn.commit()
    finally:
        conn.close()
    return {"message": f"Maintenance task {task_id} deleted"}


# --- Status history ---
@router.get("/{task_id}/history")
def get_task_history(task_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        rows = fetch_all(conn, """
            SELECT * FROM task_status_history
            WHERE task_id = ?
            ORDER BY status_date DESC, created_at DESC
        """, (task_id,))
    finally:
        conn.close()
    return {"history": rows}


@router.post("/{task_id}/history", status_code=201)
def add_task_history(task_id: str, entry: StatusHistoryIn, user=Depends(require_role(*WORKER_ROLES))):
    conn = get_db()
    try:
        if not fetch_one(conn, "SELECT id FROM maintenance_tasks WHERE id = ?", (task_id,)):
            raise HTTPException(status_code=404, detail="Maintenance task not found")
        record_status(conn, task_id, entry.status.value, notes=entry.notes,
                      status_date=entry.status_date, created_by=user["id"])
        conn.commit()
    finally:
        conn.close()
    return {"message": f"Status {entry.status.value} recorded for task {task_id}"}
