"""Report aggregation over already-fetched task / equipment / department rows.

Every function is pure: rows in, plain dicts out. Tasks whose
scheduled_date cannot be parsed never fall inside a date window.
"""
from cmms_app.enums import TaskPriority, TaskStatus
from cmms_app.utils import parse_date, percentage, safe_float

COMPLETED = TaskStatus.COMPLETED.value
CANCELLED = TaskStatus.CANCELLED.value
SCHEDULED = TaskStatus.SCHEDULED.value
CRITICAL = TaskPriority.CRITICAL.value
HIGH = TaskPriority.HIGH.value


def in_date_range(task, start_date, end_date):
    """True when task.scheduled_date falls in [start_date, end_date]."""
    scheduled = parse_date(task.get("scheduled_date"))
    start = parse_date(start_date)
    end = parse_date(end_date)
    if scheduled is None or start is None or end is None:
        return False
    return start <= scheduled <= end


def tasks_in_range(tasks, start_date, end_date):
    return [task for task in tasks if in_date_range(task, start_date, end_date)]


def _count(tasks, field, value):
    return sum(1 for task in tasks if task.get(field) == value)


def maintenance_summary(tasks, start_date, end_date):
    window = tasks_in_range(tasks, start_date, end_date)
    return {
        "total": len(window),
        "completed": _count(window, "status", COMPLETED),
        "in_progress": _count(window, "status", TaskStatus.IN_PROGRESS.value),
        "scheduled": _count(window, "status", SCHEDULED),
        "cancelled": _count(window, "status", CANCELLED),
        "partial": _count(window, "status", TaskStatus.PARTIAL.value),
        "by_priority": {
            "critical": _count(window, "priority", CRITICAL),
            "high": _count(window, "priority", HIGH),
            "medium": _count(window, "priority", TaskPriority.MEDIUM.value),
            "low": _count(window, "priority", TaskPriority.LOW.value),
        },
        "total_estimated_hours": sum(safe_float(t.get("estimated_duration")) for t in window),
        "total_actual_hours": sum(safe_float(t.get("actual_duration")) for t in window),
    }


def equipment_performance(equipment, tasks, start_date, end_date):
    window = tasks_in_range(tasks, start_date, end_date)
    results = []
    for item in equipment:
        item_tasks = [t for t in window if t.get("equipment_id") == item["id"]]
        completed = _count(item_tasks, "status", COMPLETED)
        cancelled = _count(item_tasks, "status", CANCELLED)
        results.append({
            "id": item["id"],
            "name": item.get("name"),
            "status": item.get("status"),
            "total_tasks": len(item_tasks),
            "completed_tasks": completed,
            "cancelled_tasks": cancelled,
            "maintenance_rate": percentage(completed, len(item_tasks)),
            "downtime": percentage(cancelled, len(item_tasks)),
            "last_maintenance": item.get("last_maintenance"),
            "next_maintenance": item.get("next_maintenance"),
        })
    return results


def _task_hours(task):
    # a recorded actual duration (even 0) wins over the estimate
    if task.get("actual_duration") is not None:
        return safe_float(task["actual_duration"])
    return safe_float(task.get("estimated_duration"))


def department_analysis(departments, equipment, tasks, start_date, end_date):
    window = tasks_in_range(tasks, start_date, end_date)
    results = []
    for dept in departments:
        dept_equipment_ids = {e["id"] for e in equipment if e.get("department_id") == dept["id"]}
        dept_tasks = [t for t in window if t.get("equipment_id") in dept_equipment_ids]
        results.append({
            "id": dept["id"],
            "name": dept.get("name"),
            "location": dept.get("location"),
            "equipment_count": len(dept_equipment_ids),
            "maintenance_tasks": len(dept_tasks),
            "completed_tasks": _count(dept_tasks, "status", COMPLETED),
            "scheduled_tasks": _count(dept_tasks, "status", SCHEDULED),
            "critical_tasks": _count(dept_tasks, "priority", CRITICAL),
            "total_hours": sum(_task_hours(t) for t in dept_tasks),
        })
    return results


def efficiency(completed_tasks):
    """Average estimated/actual ratio as a percentage; may exceed 100."""
    ratios = []
    for task in completed_tasks:
        estimated = safe_float(task.get("estimated_duration"))
        actual = safe_float(task.get("actual_duration"))
        if estimated and actual:
            ratios.append(estimated / actual)
    return (sum(ratios) / len(ratios)) * 100 if ratios else 0


def technician_performance(technicians, tasks, start_date, end_date):
    window = tasks_in_range(tasks, start_date, end_date)
    results = []
    for tech in technicians:
        tech_tasks = [t for t in window if t.get("assigned_to") == tech["id"]]
        completed = [t for t in tech_tasks if t.get("status") == COMPLETED]
        results.append({
            "id": tech["id"],
            "name": f"{tech.get('first_name', '')} {tech.get('last_name', '')}".strip(),
            "total_tasks": len(tech_tasks),
            "completed_tasks": len(completed),
            "completion_rate": percentage(len(completed), len(tech_tasks)),
            "efficiency": efficiency(completed),
            "total_hours": sum(safe_float(t.get("actual_duration")) for t in completed),
            "critical_tasks": _count(tech_tasks, "priority", CRITICAL),
            "high_priority_tasks": _count(tech_tasks, "priority", HIGH),
        })
    return results


def maintenance_calendar(tasks, equipment, start_date, end_date):
    names = {e["id"]: e.get("name") for e in equipment}
    window = sorted(
        tasks_in_range(tasks, start_date, end_date),
        key=lambda t: parse_date(t.get("scheduled_date")),
    )
    return [
        {
            "id": task["id"],
            "title": task.get("title"),
            "start": task.get("scheduled_date"),
            "end": task.get("completed_date") or task.get("scheduled_date"),
            "status": task.get("status"),
            "priority": task.get("priority"),
            "equipment": names.get(task.get("equipment_id"), task.get("equipment_name")),
            "assigned_to": task.get("assigned_to"),
        }
        for task in window
    ]
