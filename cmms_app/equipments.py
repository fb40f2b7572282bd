# cmms_app/equipments.py
import sqlite3
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from cmms_app.database import (
    delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso,
)
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.enums import EquipmentStatus
from cmms_app.models import EquipmentIn, EquipmentUpdate

router = APIRouter()
log = structlog.get_logger()

WRITE_ROLES = ("admin", "manager")

EQUIPMENT_SELECT = """
    SELECT e.*, c.name AS category_name, d.name AS department_name
    FROM equipment e
    LEFT JOIN categories c ON c.id = e.category_id
    LEFT JOIN departments d ON d.id = e.department_id
"""


def load_equipment(conn, equipment_id):
    return fetch_one(conn, EQUIPMENT_SELECT + " WHERE e.id = ?", (equipment_id,))


# List Equipment (allowed for all authenticated users)
@router.get("/")
def list_equipment(
    category_id: Optional[str] = Query(None),
    department_id: Optional[str] = Query(None),
    status: Optional[EquipmentStatus] = Query(None),
    user=Depends(get_current_user)
):
    query = EQUIPMENT_SELECT + " WHERE 1=1"
    params = []

    if category_id:
        query += " AND e.category_id = ?"
        params.append(category_id)
    if department_id:
        query += " AND e.department_id = ?"
        params.append(department_id)
    if status:
        query += " AND e.status = ?"
        params.append(status.value)

    query += " ORDER BY e.name"

    conn = get_db()
    try:
        rows = fetch_all(conn, query, params)
    except sqlite3.Error as e:
        log.error("equipment_fetch_failed", error=str(e))
        raise
    finally:
        conn.close()
    return {"equipment": rows}


@router.get("/{equipment_id}")
def get_equipment(equipment_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        row = load_equipment(conn, equipment_id)
    finally:
        conn.close()

    if not row:
        raise HTTPException(status_code=404, detail="Equipment not found")
    return row


# Add Equipment (admin / manager)
@router.post("/", status_code=201, dependencies=[Depends(require_role(*WRITE_ROLES))])
def add_equipment(data: EquipmentIn):
    row = {"id": new_id(), **data.model_dump(mode="json"), "created_at": utc_now_iso()}
    conn = get_db()
    try:
        insert_row(conn, "equipment", row)
        conn.commit()
        return load_equipment(conn, row["id"])
    except sqlite3.IntegrityError as e:
        conn.rollback()
        log.warning("equipment_create_failed", error=str(e))
        raise HTTPException(status_code=409, detail=f"Unknown category or department: {e}")
    finally:
        conn.close()


@router.put("/{equipment_id}", dependencies=[Depends(require_role(*WRITE_ROLES))])
def update_equipment(equipment_id: str, data: EquipmentUpdate):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = get_db()
    try:
        if update_row(conn, "equipment", equipment_id, changes) == 0:
            raise HTTPException(status_code=404, detail="Equipment not found")
        conn.commit()
        return load_equipment(conn, equipment_id)
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"Equipment could not be updated: {e}")
    finally:
        conn.close()


# Delete Equipment (its maintenance tasks go with it)
@router.delete("/{equipment_id}", dependencies=[Depends(require_role(*WRITE_ROLES))])
def delete_equipment(equipment_id: str):
    conn = get_db()
    try:
        if delete_row(conn, "equipment", equipment_id) == 0:
            raise HTTPException(status_code=404, detail="Equipment not found")
        conn.commit()
    finally:
        conn.close()
    return {"message": f"Equipment {equipment_id} deleted"}
