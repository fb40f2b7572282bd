# cmms_app/categories.py
import sqlite3

import structlog
from fastapi import APIRouter, Depends, HTTPException

from cmms_app.database import (
    delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso,
)
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.models import CategoryIn, CategoryUpdate

router = APIRouter()
log = structlog.get_logger()

WRITE_ROLES = ("admin", "manager")


@router.get("/")
def list_categories(user=Depends(get_current_user)):
    conn = get_db()
    try:
        return {"categories": fetch_all(conn, "SELECT * FROM categories ORDER BY name")}
    finally:
        conn.close()


@router.get("/{category_id}")
def get_category(category_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        row = fetch_one(conn, "SELECT * FROM categories WHERE id = ?", (category_id,))
    finally:
        conn.close()
    if not row:
        raise HTTPException(status_code=404, detail="Category not found")
    return row


@router.get("/{category_id}/equipment-count")
def get_category_equipment_count(category_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        count = conn.execute(
            "SELECT COUNT(*) FROM equipment WHERE category_id = ?", (category_id,)
        ).fetchone()[0]
    finally:
        conn.close()
    return {"category_id": category_id, "equipment_count": count}


@router.post("/", status_code=201, dependencies=[Depends(require_role(*WRITE_ROLES))])
def add_category(data: CategoryIn):
    row = {"id": new_id(), **data.model_dump(mode="json"), "created_at": utc_now_iso()}
    conn = get_db()
    try:
        insert_row(conn, "categories", row)
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        log.warning("category_create_failed", error=str(e))
        raise HTTPException(status_code=409, detail=f"Category could not be created: {e}")
    finally:
        conn.close()
    return row


@router.put("/{category_id}", dependencies=[Depends(require_role(*WRITE_ROLES))])
def update_category(category_id: str, data: CategoryUpdate):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = get_db()
    try:
        if update_row(conn, "categories", category_id, changes) == 0:
            raise HTTPException(status_code=404, detail="Category not found")
        conn.commit()
        return fetch_one(conn, "SELECT * FROM categories WHERE id = ?", (category_id,))
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"Category could not be updated: {e}")
    finally:
        conn.close()


@router.delete("/{category_id}", dependencies=[Depends(require_role(*WRITE_ROLES))])
def delete_category(category_id: str):
    conn = get_db()
    try:
        if delete_row(conn, "categories", category_id) == 0:
            raise HTTPException(status_code=404, detail="Category not found")
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise HTTPException(status_code=409, detail="Category is still used by equipment or tasks")
    finally:
        conn.close()
    return {"message": f"Category {category_id} deleted"}
