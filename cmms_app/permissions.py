# cmms_app/permissions.py
import sqlite3

from fastapi import APIRouter, Depends, HTTPException, Query

from cmms_app.database import delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, utc_now_iso
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.enums import UserRole
from cmms_app.models import PermissionIn, RolePermissionIn

router = APIRouter()


def role_has_permission(conn, role, permission_name):
    # admins implicitly hold every permission
    if role == UserRole.ADMIN.value:
        return True
    row = conn.execute("""
        SELECT 1 FROM role_permissions rp
        JOIN permissions p ON p.id = rp.permission_id
        WHERE rp.role = ? AND p.name = ?
    """, (role, permission_name)).fetchone()
    return row is not None


@router.get("/")
def list_permissions(user=Depends(get_current_user)):
    conn = get_db()
    try:
        return {"permissions": fetch_all(conn, "SELECT * FROM permissions ORDER BY module, name")}
    finally:
        conn.close()


@router.post("/", status_code=201, dependencies=[Depends(require_role("admin"))])
def add_permission(data: PermissionIn):
    row = {"id": new_id(), **data.model_dump(mode="json"), "created_at": utc_now_iso()}
    conn = get_db()
    try:
        insert_row(conn, "permissions", row)
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise HTTPException(status_code=409, detail=f"Permission {data.name} already exists")
    finally:
        conn.close()
    return row


@router.get("/check")
def check_permission(name: str = Query(...), user=Depends(get_current_user)):
    conn = get_db()
    try:
        allowed = role_has_permission(conn, user["role"], name)
    finally:
        conn.close()
    return {"permission": name, "role": user["role"], "allowed": allowed}


@router.get("/roles/{role}")
def list_role_permissions(role: UserRole, user=Depends(get_current_user)):
    conn = get_db()
    try:
        rows = fetch_all(conn, """
            SELECT rp.id, rp.role, rp.permission_id, rp.created_at,
                   p.name AS permission_name, p.module AS permission_module
            FROM role_permissions rp
            JOIN permissions p ON p.id = rp.permission_id
            WHERE rp.role = ?
            ORDER BY p.module, p.name
        """, (role.value,))
    finally:
        conn.close()
    return {"role": role.value, "permissions": rows}


@router.post("/roles", status_code=201, dependencies=[Depends(require_role("admin"))])
def add_permission_to_role(data: RolePermissionIn):
    row = {"id": new_id(), **data.model_dump(mode="json"), "created_at": utc_now_iso()}
    conn = get_db()
    try:
        insert_row(conn, "role_permissions", row)
        conn.commit()
    except sqlite3.IntegrityError:
        conn.rollback()
        raise HTTPException(status_code=409, detail="Unknown permission or already granted to this role")
    finally:
        conn.close()
    return row


@router.delete("/roles/{role_permission_id}", dependencies=[Depends(require_role("admin"))])
def remove_permission_from_role(role_permission_id: str):
    conn = get_db()
    try:
        if delete_row(conn, "role_permissions", role_permission_id) == 0:
            raise HTTPException(status_code=404, detail="Role permission not found")
        conn.commit()
    finally:
        conn.close()
    return {"message": f"Role permission {role_permission_id} removed"}


@router.get("/{permission_id}")
def get_permission(permission_id: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        row = fetch_one(conn, "SELECT * FROM permissions WHERE id = ?", (permission_id,))
    finally:
        conn.close()
    if not row:
        raise HTTPException(status_code=404, detail="Permission not found")
    return row
