# cmms_app/database.py
import sqlite3
import uuid
from datetime import datetime, timezone

from cmms_app.config import get_db_path

SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS departments (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    location TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS equipment (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    serial_number TEXT NOT NULL,
    category_id TEXT REFERENCES categories(id),
    department_id TEXT REFERENCES departments(id),
    status TEXT NOT NULL DEFAULT 'operational',
    purchase_date TEXT,
    last_maintenance TEXT,
    next_maintenance TEXT,
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    role TEXT NOT NULL DEFAULT 'user',
    department TEXT,
    phone TEXT,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS maintenance_tasks (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    equipment_id TEXT NOT NULL REFERENCES equipment(id) ON DELETE CASCADE,
    category_id TEXT REFERENCES categories(id),
    scheduled_date TEXT NOT NULL,
    completed_date TEXT,
    estimated_duration REAL,
    actual_duration REAL,
    priority TEXT NOT NULL DEFAULT 'medium',
    status TEXT NOT NULL DEFAULT 'scheduled',
    assigned_to TEXT REFERENCES users(id) ON DELETE SET NULL,
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS task_status_history (
    id TEXT PRIMARY KEY,
    task_id TEXT NOT NULL REFERENCES maintenance_tasks(id) ON DELETE CASCADE,
    status_date TEXT NOT NULL,
    status TEXT NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL,
    created_by TEXT
);

CREATE TABLE IF NOT EXISTS settings (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
    company_name TEXT,
    system_name TEXT,
    date_format TEXT,
    time_format TEXT,
    default_language TEXT,
    timezone TEXT,
    email_notifications INTEGER,
    maintenance_due_reminders INTEGER,
    equipment_status_changes INTEGER,
    system_updates INTEGER,
    daily_digest INTEGER,
    reminder_days INTEGER,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS permissions (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    module TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS role_permissions (
    id TEXT PRIMARY KEY,
    role TEXT NOT NULL,
    permission_id TEXT NOT NULL REFERENCES permissions(id) ON DELETE CASCADE,
    created_at TEXT NOT NULL,
    UNIQUE (role, permission_id)
);

CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS task_maintenance (
    id TEXT PRIMARY KEY,
    task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
    equipment_id TEXT NOT NULL REFERENCES equipment(id) ON DELETE CASCADE,
    category_id TEXT REFERENCES categories(id),
    department_id TEXT REFERENCES departments(id),
    scheduled_date TEXT NOT NULL,
    frequency TEXT,
    custom_days INTEGER,
    priority TEXT NOT NULL DEFAULT 'medium',
    status TEXT NOT NULL DEFAULT 'scheduled',
    type TEXT NOT NULL DEFAULT 'predictive',
    assigned_to TEXT REFERENCES users(id) ON DELETE SET NULL,
    description TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notification_state (
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    task_id TEXT NOT NULL REFERENCES maintenance_tasks(id) ON DELETE CASCADE,
    kind TEXT NOT NULL,
    read INTEGER NOT NULL DEFAULT 0,
    dismissed INTEGER NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (user_id, task_id, kind)
);

CREATE TABLE IF NOT EXISTS material_requests (
    id TEXT PRIMARY KEY,
    request_id TEXT NOT NULL UNIQUE,
    requester_name TEXT NOT NULL,
    department TEXT NOT NULL,
    request_date TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    created_by TEXT,
    updated_by TEXT
);

CREATE TABLE IF NOT EXISTS material_request_items (
    id TEXT PRIMARY KEY,
    material_request_id TEXT NOT NULL REFERENCES material_requests(id) ON DELETE CASCADE,
    item_name TEXT NOT NULL,
    quantity REAL NOT NULL,
    unit TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS proforma_invoices (
    id TEXT PRIMARY KEY,
    pi_id TEXT NOT NULL UNIQUE,
    supplier_name TEXT NOT NULL,
    invoice_number TEXT NOT NULL,
    total_amount REAL NOT NULL,
    currency TEXT NOT NULL,
    issue_date TEXT NOT NULL,
    expiry_date TEXT NOT NULL,
    payment_status TEXT NOT NULL DEFAULT 'pending',
    document_url TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    created_by TEXT,
    updated_by TEXT
);
"""


def get_db():
    """Open a connection to the configured SQLite database."""
    conn = sqlite3.connect(get_db_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(conn):
    conn.executescript(SCHEMA)
    conn.commit()


def new_id():
    return str(uuid.uuid4())


def utc_now_iso():
    return datetime.now(timezone.utc).isoformat()


def fetch_all(conn, query, params=()):
    cursor = conn.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def fetch_one(conn, query, params=()):
    row = conn.execute(query, params).fetchone()
    return dict(row) if row else None


# Column names always come from pydantic field names, never from the client
def insert_row(conn, table, data):
    fields = list(data.keys())
    query = f"""
        INSERT INTO {table} ({','.join(fields)})
        VALUES ({','.join(['?'] * len(fields))})
    """
    conn.execute(query, [data[field] for field in fields])


def update_row(conn, table, row_id, data):
    """Update the given columns of one row; returns the number of rows touched."""
    assignments = ", ".join(f"{field} = ?" for field in data)
    cursor = conn.execute(
        f"UPDATE {table} SET {assignments} WHERE id = ?",
        [*data.values(), row_id],
    )
    return cursor.rowcount


def delete_row(conn, table, row_id):
    cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
    return cursor.rowcount
