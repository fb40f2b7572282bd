# cmms_app/material_requests.py
import random
import sqlite3
from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from cmms_app.database import (
    delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso,
)
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.enums import MaterialRequestStatus
from cmms_app.models import (
    MaterialRequestIn, MaterialRequestItemIn, MaterialRequestItemUpdate, MaterialRequestUpdate, ReviewNotes,
)

router = APIRouter()
log = structlog.get_logger()

REVIEW_ROLES = ("admin", "manager")
SORTABLE_FIELDS = {"request_date", "request_id", "requester_name", "department", "status", "created_at"}
MAX_ID_ATTEMPTS = 10


def generate_reference(prefix):
    """Human readable reference such as PO-2024-0042."""
    return f"{prefix}-{datetime.now().year}-{random.randint(0, 9999):04d}"


def load_request(conn, request_pk):
    request = fetch_one(conn, "SELECT * FROM material_requests WHERE id = ?", (request_pk,))
    if request:
        request["items"] = fetch_all(conn, """
            SELECT * FROM material_request_items WHERE material_request_id = ? ORDER BY created_at
        """, (request_pk,))
    return request


def _insert_items(conn, request_pk, items):
    now = utc_now_iso()
    for item in items:
        insert_row(conn, "material_request_items", {
            "id": new_id(),
            "material_request_id": request_pk,
            **item.model_dump(mode="json"),
            "created_at": now,
            "updated_at": now,
        })


# --- Paginated list with filters ---
@router.get("/")
def list_material_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[MaterialRequestStatus] = Query(None),
    department: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    sort_by: str = Query("request_date"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    user=Depends(get_current_user)
):
    if sort_by not in SORTABLE_FIELDS:
        raise HTTPException(status_code=400, detail=f"Cannot sort by {sort_by}")

    where = " WHERE 1=1"
    params = []
    if status:
        where += " AND status = ?"
        params.append(status.value)
    if department:
        where += " AND department = ?"
        params.append(department)
    if search:
        where += " AND (requester_name LIKE ? OR request_id LIKE ?)"
        params.extend([f"%{search}%", f"%{search}%"])
    if start_date:
        where += " AND request_date >= ?"
        params.append(start_date)
    if end_date:
        where += " AND request_date <= ?"
        params.append(end_date)

    conn = get_db()
    try:
        count = conn.execute("SELECT COUNT(*) FROM material_requests" + where, params).fetchone()[0]
        rows = fetch_all(
            conn,
            f"SELECT id FROM material_requests{where} ORDER BY {sort_by} {sort_order.upper()} LIMIT ? OFFSET ?",
            [*params, limit, (page - 1) * limit],
        )
        data = [load_request(conn, row["id"]) for row in rows]
    finally:
        conn.close()

    return {"data": data, "count": count, "page": page, "limit": limit}


@router.get("/{request_pk}")
def get_material_request(request_pk: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        request = load_request(conn, request_pk)
    finally:
        conn.close()
    if not request:
        raise HTTPException(status_code=404, detail="Material request not found")
    return request


@router.post("/", status_code=201)
def create_material_request(data: MaterialRequestIn, user=Depends(get_current_user)):
    now = utc_now_iso()
    conn = get_db()
    try:
        for attempt in range(MAX_ID_ATTEMPTS):
            row = {
                "id": new_id(),
                "request_id": generate_reference("PO"),
                **data.model_dump(mode="json", exclude={"items"}),
                "created_at": now,
                "updated_at": now,
                "created_by": user["id"],
                "updated_by": user["id"],
            }
            try:
                insert_row(conn, "material_requests", row)
                break
            except sqlite3.IntegrityError as e:
                if "UNIQUE constraint failed: material_requests.request_id" not in str(e):
                    conn.rollback()
                    raise HTTPException(status_code=409, detail=f"Material request could not be created: {e}")
                if attempt < MAX_ID_ATTEMPTS - 1:
                    continue
                conn.rollback()
                raise HTTPException(status_code=500, detail="Could not generate unique request ID")

        _insert_items(conn, row["id"], data.items)
        conn.commit()
        request = load_request(conn, row["id"])
    finally:
        conn.close()

    log.info("material_request_created", request_id=request["request_id"], items=len(data.items))
    return request


@router.put("/{request_pk}")
def update_material_request(request_pk: str, data: MaterialRequestUpdate, user=Depends(get_current_user)):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    changes.update({"updated_at": utc_now_iso(), "updated_by": user["id"]})

    conn = get_db()
    try:
        if update_row(conn, "material_requests", request_pk, changes) == 0:
            raise HTTPException(status_code=404, detail="Material request not found")
        conn.commit()
        return load_request(conn, request_pk)
    finally:
        conn.close()


# Delete a material request (and its items via cascade)
@router.delete("/{request_pk}")
def delete_material_request(request_pk: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        if delete_row(conn, "material_requests", request_pk) == 0:
            raise HTTPException(status_code=404, detail="Material request not found")
        conn.commit()
    finally:
        conn.close()
    return {"message": f"Material request {request_pk} deleted"}


def _review(request_pk, status, notes, user):
    conn = get_db()
    try:
        updated = update_row(conn, "material_requests", request_pk, {
            "status": status.value,
            "notes": notes or None,
            "updated_at": utc_now_iso(),
            "updated_by": user["id"],
        })
        if updated == 0:
            raise HTTPException(status_code=404, detail="Material request not found")
        conn.commit()
        return load_request(conn, request_pk)
    finally:
        conn.close()


@router.put("/{request_pk}/approve")
def approve_material_request(request_pk: str, review: ReviewNotes, user=Depends(require_role(*REVIEW_ROLES))):
    return _review(request_pk, MaterialRequestStatus.APPROVED, review.notes, user)


@router.put("/{request_pk}/reject")
def reject_material_request(request_pk: str, review: ReviewNotes, user=Depends(require_role(*REVIEW_ROLES))):
    return _review(request_pk, MaterialRequestStatus.REJECTED, review.notes, user)


# --- Items ---
@router.post("/{request_pk}/items", status_code=201)
def add_material_request_item(request_pk: str, item: MaterialRequestItemIn, user=Depends(get_current_user)):
    conn = get_db()
    try:
        if not fetch_one(conn, "SELECT id FROM material_requests WHERE id = ?", (request_pk,)):
            raise HTTPException(status_code=404, detail="Material request not found")
        _insert_items(conn, request_pk, [item])
        conn.commit()
        return load_request(conn, request_pk)
    finally:
        conn.close()


@router.put("/items/{item_id}")
def update_material_request_item(item_id: str, item: MaterialRequestItemUpdate, user=Depends(get_current_user)):
    changes = item.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    changes["updated_at"] = utc_now_iso()

    conn = get_db()
    try:
        if update_row(conn, "material_request_items", item_id, changes) == 0:
            raise HTTPException(status_code=404, detail="Material request item not found")
        conn.commit()
        return fetch_one(conn, "SELECT * FROM material_request_items WHERE id = ?", (item_id,))
    finally:
        conn.close()


@router.delete("/items/{item_id}")
def delete_material_request_item(item_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        if delete_row(conn, "material_request_items", item_id) == 0:
            raise HTTPException(status_code=404, detail="Material request item not found")
        conn.commit()
    finally:
        conn.close()
    return {"message": f"Material request item {item_id} deleted"}
