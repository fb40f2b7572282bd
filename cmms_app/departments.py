# cmms_app/departments.py
import sqlite3

import structlog
from fastapi import APIRouter, Depends, HTTPException

from cmms_app.database import (
    delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso,
)
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.models import DepartmentIn, DepartmentUpdate

router = APIRouter()
log = structlog.get_logger()

WRITE_ROLES = ("admin", "manager")


@router.get("/")
def list_departments(user=Depends(get_current_user)):
    conn = get_db()
    try:
        return {"departments": fetch_all(conn, "SELECT * FROM departments ORDER BY name")}
    finally:
        conn.close()


@router.get("/{department_id}")
def get_department(department_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        row = fetch_one(conn, "SELECT * FROM departments WHERE id = ?", (department_id,))
    finally:
        conn.close()
    if not row:
        raise HTTPException(status_code=404, detail="Department not found")
    return row


@router.get("/{department_id}/equipment-count")
def get_department_equipment_count(department_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        count = conn.execute(
            "SELECT COUNT(*) FROM equipment WHERE department_id = ?", (department_id,)
        ).fetchone()[0]
    finally:
        conn.close()
    return {"department_id": department_id, "equipment_count": count}


@router.post("/", status_code=201, dependencies=[Depends(require_role(*WRITE_ROLES))])
def add_department(data: DepartmentIn):
    row = {"id": new_id(), **data.model_dump(mode="json"), "created_at": utc_now_iso()}
    conn = get_db()
    try:
        insert_row(conn, "departments", row)
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        log.warning("department_create_failed", error=str(e))
        raise HTTPException(status_code=409, detail=f"Department could not be created: {e}")
    finally:
        conn.close()
    return row


@router.put("/{department_id}", dependencies=[Depends(require_role(*WRITE_ROLES))])
def update_department(department_id: str, data: DepartmentUpdate):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = get_db()
    try:
        if update_row(conn, "departments", department_id, changes) == 0:
            raise HTTPException(status_code=404, detail="Department not found")
        conn.commit()
        return fetch_one(conn, "SELECT * FROM departments WHERE id = ?", (department_id,))
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"Department could not be updated: {e}")
    finally:
        conn.close()


@router.delete("/{department_id}", dependencies=[Depends(require_role(*WRITE_ROLES))])
def delete_department(department_id: str):
    conn = get_db()
    try:
        if delete_row(conn, "departments", department_id) == 0:
            raise HTTPException(status_code=404, detail="Department not found")
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise HTTPException(status_code=409, detail="Department still has equipment assigned")
    finally:
        conn.close()
    return {"message": f"Department {department_id} deleted"}
