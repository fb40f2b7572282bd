# cmms_app/tasks.py
import structlog
from fastapi import APIRouter, Depends, HTTPException

from cmms_app.database import (
    delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso,
)
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.models import TaskDefinitionIn, TaskDefinitionUpdate

router = APIRouter()
log = structlog.get_logger()

WRITE_ROLES = ("admin", "manager")


# Catalog of reusable task definitions referenced by task-based maintenance
@router.get("/")
def list_task_definitions(user=Depends(get_current_user)):
    conn = get_db()
    try:
        return {"tasks": fetch_all(conn, "SELECT * FROM tasks ORDER BY name")}
    finally:
        conn.close()


@router.get("/{task_id}")
def get_task_definition(task_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        row = fetch_one(conn, "SELECT * FROM tasks WHERE id = ?", (task_id,))
    finally:
        conn.close()
    if not row:
        raise HTTPException(status_code=404, detail="Task not found")
    return row


@router.post("/", status_code=201, dependencies=[Depends(require_role(*WRITE_ROLES))])
def add_task_definition(data: TaskDefinitionIn):
    now = utc_now_iso()
    row = {"id": new_id(), **data.model_dump(mode="json"), "created_at": now, "updated_at": now}
    conn = get_db()
    try:
        insert_row(conn, "tasks", row)
        conn.commit()
    finally:
        conn.close()
    log.info("task_definition_created", task_id=row["id"])
    return row


@router.put("/{task_id}", dependencies=[Depends(require_role(*WRITE_ROLES))])
def update_task_definition(task_id: str, data: TaskDefinitionUpdate):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    changes["updated_at"] = utc_now_iso()

    conn = get_db()
    try:
        if update_row(conn, "tasks", task_id, changes) == 0:
            raise HTTPException(status_code=404, detail="Task not found")
        conn.commit()
        return fetch_one(conn, "SELECT * FROM tasks WHERE id = ?", (task_id,))
    finally:
        conn.close()


# Scheduled work that used this task keeps its row; task_id is nulled
@router.delete("/{task_id}", dependencies=[Depends(require_role(*WRITE_ROLES))])
def delete_task_definition(task_id: str):
    conn = get_db()
    try:
        if delete_row(conn, "tasks", task_id) == 0:
            raise HTTPException(status_code=404, detail="Task not found")
        conn.commit()
    finally:
        conn.close()
    return {"message": f"Task {task_id} deleted"}
