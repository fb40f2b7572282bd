# cmms_app/proforma_invoices.py
import os
import re
import sqlite3
import time
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from cmms_app.config import (
    ALLOWED_UPLOAD_TYPES, DOCUMENTS_URL_PREFIX, MAX_UPLOAD_BYTES, get_upload_dir,
)
from cmms_app.database import (
    delete_row, fetch_all, fetch_one, get_db, insert_row, new_id, update_row, utc_now_iso,
)
from cmms_app.dependencies import get_current_user, require_role
from cmms_app.enums import PaymentStatus
from cmms_app.material_requests import MAX_ID_ATTEMPTS, generate_reference
from cmms_app.models import ProformaInvoiceIn, ProformaInvoiceUpdate

router = APIRouter()
upload_router = APIRouter()
log = structlog.get_logger()

FINANCE_ROLES = ("admin", "manager")
SORTABLE_FIELDS = {"issue_date", "expiry_date", "pi_id", "supplier_name", "total_amount", "created_at"}


def load_invoice(conn, invoice_pk):
    return fetch_one(conn, "SELECT * FROM proforma_invoices WHERE id = ?", (invoice_pk,))


def insert_invoice(conn, fields, user_id):
    """Insert an invoice with a fresh PI-<year>-NNNN reference; returns the row."""
    now = utc_now_iso()
    for attempt in range(MAX_ID_ATTEMPTS):
        row = {
            "id": new_id(),
            "pi_id": generate_reference("PI"),
            **fields,
            "created_at": now,
            "updated_at": now,
            "created_by": user_id,
            "updated_by": user_id,
        }
        try:
            insert_row(conn, "proforma_invoices", row)
            return row
        except sqlite3.IntegrityError as e:
            if "UNIQUE constraint failed: proforma_invoices.pi_id" not in str(e):
                log.warning("proforma_invoice_create_failed", error=str(e))
                raise HTTPException(status_code=409, detail=f"Proforma invoice could not be created: {e}")
            if attempt < MAX_ID_ATTEMPTS - 1:
                continue
            raise HTTPException(status_code=500, detail="Could not generate unique invoice ID")


def stored_document_path(document_url):
    if not document_url or not document_url.startswith(DOCUMENTS_URL_PREFIX + "/"):
        return None
    return os.path.join(get_upload_dir(), os.path.basename(document_url))


def safe_filename(original_name):
    cleaned = re.sub(r"[^a-zA-Z0-9.-]", "_", original_name or "document")
    return f"{int(time.time() * 1000)}_{cleaned}"


# --- Paginated list with filters ---
@router.get("/")
def list_proforma_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[PaymentStatus] = Query(None),
    currency: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    sort_by: str = Query("issue_date"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    user=Depends(get_current_user)
):
    if sort_by not in SORTABLE_FIELDS:
        raise HTTPException(status_code=400, detail=f"Cannot sort by {sort_by}")

    where = " WHERE 1=1"
    params = []
    if status:
        where += " AND payment_status = ?"
        params.append(status.value)
    if currency:
        where += " AND currency = ?"
        params.append(currency)
    if search:
        where += " AND (supplier_name LIKE ? OR pi_id LIKE ? OR invoice_number LIKE ?)"
        params.extend([f"%{search}%"] * 3)
    if start_date:
        where += " AND issue_date >= ?"
        params.append(start_date)
    if end_date:
        where += " AND issue_date <= ?"
        params.append(end_date)

    conn = get_db()
    try:
        count = conn.execute("SELECT COUNT(*) FROM proforma_invoices" + where, params).fetchone()[0]
        data = fetch_all(
            conn,
            f"SELECT * FROM proforma_invoices{where} ORDER BY {sort_by} {sort_order.upper()} LIMIT ? OFFSET ?",
            [*params, limit, (page - 1) * limit],
        )
    finally:
        conn.close()

    return {"data": data, "count": count, "page": page, "limit": limit}


@router.get("/{invoice_pk}")
def get_proforma_invoice(invoice_pk: str, user=Depends(get_current_user)):
    conn = get_db()
    try:
        invoice = load_invoice(conn, invoice_pk)
    finally:
        conn.close()
    if not invoice:
        raise HTTPException(status_code=404, detail="Proforma invoice not found")
    return invoice


@router.post("/", status_code=201, dependencies=[Depends(require_role(*FINANCE_ROLES))])
def create_proforma_invoice(data: ProformaInvoiceIn, user=Depends(get_current_user)):
    conn = get_db()
    try:
        row = insert_invoice(conn, data.model_dump(mode="json"), user["id"])
        conn.commit()
    finally:
        conn.close()
    log.info("proforma_invoice_created", pi_id=row["pi_id"])
    return row


@router.put("/{invoice_pk}", dependencies=[Depends(require_role(*FINANCE_ROLES))])
def update_proforma_invoice(invoice_pk: str, data: ProformaInvoiceUpdate, user=Depends(get_current_user)):
    changes = data.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    changes.update({"updated_at": utc_now_iso(), "updated_by": user["id"]})

    conn = get_db()
    try:
        if update_row(conn, "proforma_invoices", invoice_pk, changes) == 0:
            raise HTTPException(status_code=404, detail="Proforma invoice not found")
        conn.commit()
        return load_invoice(conn, invoice_pk)
    finally:
        conn.close()


@router.delete("/{invoice_pk}", dependencies=[Depends(require_role(*FINANCE_ROLES))])
def delete_proforma_invoice(invoice_pk: str):
    conn = get_db()
    try:
        invoice = load_invoice(conn, invoice_pk)
        if not invoice:
            raise HTTPException(status_code=404, detail="Proforma invoice not found")
        delete_row(conn, "proforma_invoices", invoice_pk)
        conn.commit()
    finally:
        conn.close()

    path = stored_document_path(invoice["document_url"])
    if path and os.path.exists(path):
        os.remove(path)
        log.info("invoice_document_removed", path=path)
    return {"message": f"Proforma invoice {invoice_pk} deleted"}


def _set_payment_status(invoice_pk, status, user):
    conn = get_db()
    try:
        updated = update_row(conn, "proforma_invoices", invoice_pk, {
            "payment_status": status.value,
            "updated_at": utc_now_iso(),
            "updated_by": user["id"],
        })
        if updated == 0:
            raise HTTPException(status_code=404, detail="Proforma invoice not found")
        conn.commit()
        return load_invoice(conn, invoice_pk)
    finally:
        conn.close()


@router.put("/{invoice_pk}/paid")
def mark_proforma_invoice_paid(invoice_pk: str, user=Depends(require_role(*FINANCE_ROLES))):
    return _set_payment_status(invoice_pk, PaymentStatus.PAID, user)


@router.put("/{invoice_pk}/cancel")
def cancel_proforma_invoice(invoice_pk: str, user=Depends(require_role(*FINANCE_ROLES))):
    return _set_payment_status(invoice_pk, PaymentStatus.CANCELED, user)


# --- File upload endpoint: document + invoice fields in one multipart form ---
@upload_router.post("/upload", status_code=201)
def upload_invoice_document(
    document: Optional[UploadFile] = File(None),
    supplier_name: str = Form(...),
    invoice_number: str = Form(...),
    total_amount: float = Form(...),
    currency: str = Form(...),
    issue_date: str = Form(...),
    expiry_date: str = Form(...),
    notes: Optional[str] = Form(None),
    user=Depends(get_current_user)
):
    if document is None or not document.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if document.content_type not in ALLOWED_UPLOAD_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PDF, DOC, DOCX, JPG, and PNG files are allowed.",
        )

    contents = document.file.read(MAX_UPLOAD_BYTES + 1)
    if len(contents) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large. Maximum size is 10MB.")

    upload_dir = get_upload_dir()
    os.makedirs(upload_dir, exist_ok=True)
    file_name = safe_filename(document.filename)
    file_path = f"{DOCUMENTS_URL_PREFIX}/{file_name}"
    with open(os.path.join(upload_dir, file_name), "wb") as f:
        f.write(contents)

    conn = get_db()
    try:
        row = insert_invoice(conn, {
            "supplier_name": supplier_name,
            "invoice_number": invoice_number,
            "total_amount": total_amount,
            "currency": currency,
            "issue_date": issue_date,
            "expiry_date": expiry_date,
            "payment_status": PaymentStatus.PENDING.value,
            "document_url": file_path,
            "notes": notes or None,
        }, user["id"])
        conn.commit()
    except Exception as e:
        conn.rollback()
        os.remove(os.path.join(upload_dir, file_name))
        log.error("invoice_upload_failed", error=str(e))
        raise
    finally:
        conn.close()

    log.info("invoice_document_uploaded", pi_id=row["pi_id"], file=file_name)
    return {
        "success": True,
        "data": row,
        "file": {"name": file_name, "path": file_path},
    }
