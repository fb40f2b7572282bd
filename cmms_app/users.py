# cmms_app/users.py
import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from cmms_app.auth import hash_password
from cmms_app.config import DEFAULT_USER_PASSWORD
from cmms_app.database import (
    delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso,
)
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.enums import UserRole
from cmms_app.models import UserIn, UserUpdate

router = APIRouter()

# password_hash never leaves the database
USER_COLUMNS = "id, first_name, last_name, email, role, department, phone, created_at"


def list_users_by_role(conn, role):
    return fetch_all(conn, f"""
        SELECT {USER_COLUMNS} FROM users WHERE role = ? ORDER BY last_name
    """, (role,))


# --- Show current logged-in user's full profile ---
@router.get("/me")
def who_am_i(user=Depends(get_current_user)):
    conn = get_db()
    try:
        result = fetch_one(conn, f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user["id"],))
    finally:
        conn.close()

    if not result:
        raise HTTPException(status_code=404, detail="User not found")
    return result


# --- List users, optionally by role or department ---
@router.get("/")
def list_users(
    role: Optional[UserRole] = Query(None),
    department: Optional[str] = Query(None),
    user=Depends(get_current_user)
):
    query = f"SELECT {USER_COLUMNS} FROM users WHERE 1=1"
    params = []
    if role:
        query += " AND role = ?"
        params.append(role.value)
    if department:
        query += " AND department = ?"
        params.append(department)
    query += " ORDER BY last_name"

    conn = get_db()
    try:
        users = fetch_all(conn, query, params)
    finally:
        conn.close()
    return {"users": users}


@router.get("/{user_id}")
def get_user(user_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        result = fetch_one(conn, f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
    finally:
        conn.close()
    if not result:
        raise HTTPException(status_code=404, detail="User not found")
    return result


# --- Add a new user (admin only) ---
@router.post("/", status_code=201, dependencies=[Depends(require_role("admin"))])
def add_user(data: UserIn):
    fields = data.model_dump(mode="json", exclude={"password"})
    row = {
        "id": new_id(),
        **fields,
        "password_hash": hash_password(data.password or DEFAULT_USER_PASSWORD),
        "created_at": utc_now_iso(),
    }

    conn = get_db()
    try:
        insert_row(conn, "users", row)
        conn.commit()
        return fetch_one(conn, f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (row["id"],))
    except sqlite3.IntegrityError:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"A user with email {data.email} already exists")
    finally:
        conn.close()


@router.put("/{user_id}", dependencies=[Depends(require_role("admin"))])
def update_user(user_id: str, data: UserUpdate):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    conn = get_db()
    try:
        if update_row(conn, "users", user_id, changes) == 0:
            raise HTTPException(status_code=404, detail="User not found")
        conn.commit()
        return fetch_one(conn, f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
    except sqlite3.IntegrityError as e:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"User could not be updated: {e}")
    finally:
        conn.close()


# --- Delete user by ID (admin only) ---
@router.delete("/{user_id}", dependencies=[Depends(require_role("admin"))])
def delete_user(user_id: str):
    conn = get_db()
    try:
        if delete_row(conn, "users", user_id) == 0:
            raise HTTPException(status_code=404, detail="User not found")
        conn.commit()
    finally:
        conn.close()
    return {"message": f"User {user_id} deleted"}
