# cmms_app/reports.py
import pandas as pd
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from cmms_app import report_engine
from cmms_app.csv_export import EmptyExportError, csv_response
from cmms_app.database import get_db
from cmms_app.dependencies import get_current_user
from cmms_app.enums import UserRole
from cmms_app.report_charts import summary_chart_base64
from cmms_app.utils import parse_date

router = APIRouter()
log = structlog.get_logger()


def read_records(conn, query, params=()):
    """Run a query through pandas and hand back plain dicts with None for NULL."""
    df = pd.read_sql_query(query, conn, params=params)
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict("records")


def load_tasks(conn, start_date, end_date):
    return read_records(conn, """
        SELECT t.*, e.name AS equipment_name
        FROM maintenance_tasks t
        LEFT JOIN equipment e ON e.id = t.equipment_id
        WHERE t.scheduled_date >= ? AND t.scheduled_date <= ?
        ORDER BY t.scheduled_date
    """, (start_date, end_date + "T23:59:59.999999"))


def load_equipment(conn):
    return read_records(conn, "SELECT * FROM equipment ORDER BY name")


def load_departments(conn):
    return read_records(conn, "SELECT * FROM departments ORDER BY name")


def load_technicians(conn):
    return read_records(conn, """
        SELECT id, first_name, last_name, email, department
        FROM users WHERE role = ? ORDER BY last_name
    """, (UserRole.TECHNICIAN.value,))


def build_report(report_name, start_date, end_date):
    conn = get_db()
    try:
        tasks = load_tasks(conn, start_date, end_date)
        if report_name == "maintenance-summary":
            return report_engine.maintenance_summary(tasks, start_date, end_date)
        if report_name == "equipment-performance":
            return report_engine.equipment_performance(load_equipment(conn), tasks, start_date, end_date)
        if report_name == "department-analysis":
            return report_engine.department_analysis(
                load_departments(conn), load_equipment(conn), tasks, start_date, end_date
            )
        if report_name == "technician-performance":
            return report_engine.technician_performance(load_technicians(conn), tasks, start_date, end_date)
        if report_name == "calendar":
            return report_engine.maintenance_calendar(tasks, load_equipment(conn), start_date, end_date)
    except Exception as e:
        log.error("report_generation_failed", report=report_name, error=str(e))
        raise
    finally:
        conn.close()
    raise HTTPException(status_code=404, detail=f"Unknown report: {report_name}")


def date_window(
    start_date: str = Query(..., description="YYYY-MM-DD, inclusive"),
    end_date: str = Query(..., description="YYYY-MM-DD, inclusive"),
):
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        raise HTTPException(status_code=400, detail="Dates must be ISO formatted (YYYY-MM-DD)")
    if start > end:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")
    return start.isoformat(), end.isoformat()


@router.get("/maintenance-summary")
def maintenance_summary(window=Depends(date_window), user=Depends(get_current_user)):
    return build_report("maintenance-summary", *window)


@router.get("/maintenance-summary/chart")
def maintenance_summary_chart(window=Depends(date_window), user=Depends(get_current_user)):
    summary = build_report("maintenance-summary", *window)
    return {"summary": summary, "image_base64": summary_chart_base64(summary)}


@router.get("/equipment-performance")
def equipment_performance(window=Depends(date_window), user=Depends(get_current_user)):
    return {"equipment": build_report("equipment-performance", *window)}


@router.get("/department-analysis")
def department_analysis(window=Depends(date_window), user=Depends(get_current_user)):
    return {"departments": build_report("department-analysis", *window)}


@router.get("/technician-performance")
def technician_performance(window=Depends(date_window), user=Depends(get_current_user)):
    return {"technicians": build_report("technician-performance", *window)}


@router.get("/calendar")
def maintenance_calendar(window=Depends(date_window), user=Depends(get_current_user)):
    return {"events": build_report("calendar", *window)}


@router.get("/{report_name}/export")
def export_report(report_name: str, window=Depends(date_window), user=Depends(get_current_user)):
    data = build_report(report_name, *window)
    records = [data] if isinstance(data, dict) else data
    filename = f"{report_name}_{window[0]}_{window[1]}"
    try:
        response = csv_response(records, filename)
    except EmptyExportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    log.info("report_exported", report=report_name, rows=len(records))
    return response
