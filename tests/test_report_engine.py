import pytest

from cmms_app.report_engine import (
    department_analysis,
    efficiency,
    equipment_performance,
    in_date_range,
    maintenance_calendar,
    maintenance_summary,
    technician_performance,
)

START = "2024-01-01"
END = "2024-01-31"


@pytest.fixture
def tasks():
    return [
        {"id": "t1", "title": "Oil change", "equipment_id": "e1", "scheduled_date": "2024-01-05",
         "status": "completed", "priority": "high", "estimated_duration": 2, "actual_duration": 4,
         "assigned_to": "u1", "completed_date": "2024-01-06"},
        {"id": "t2", "title": "Belt check", "equipment_id": "e1", "scheduled_date": "2024-01-02T08:00:00Z",
         "status": "completed", "priority": "critical", "estimated_duration": 3, "actual_duration": 1.5,
         "assigned_to": "u1"},
        {"id": "t3", "title": "Inspection", "equipment_id": "e2", "scheduled_date": "2024-01-20",
         "status": "scheduled", "priority": "medium", "estimated_duration": 1, "actual_duration": None,
         "assigned_to": "u2"},
        {"id": "t4", "title": "Calibration", "equipment_id": "e2", "scheduled_date": "2024-01-31",
         "status": "cancelled", "priority": "low", "estimated_duration": None, "actual_duration": 0,
         "assigned_to": None},
        {"id": "t5", "title": "Out of window", "equipment_id": "e1", "scheduled_date": "2024-02-01",
         "status": "completed", "priority": "high", "estimated_duration": 5, "actual_duration": 5},
        {"id": "t6", "title": "Broken date", "equipment_id": "e1", "scheduled_date": "someday",
         "status": "scheduled", "priority": "high"},
    ]


@pytest.fixture
def equipment():
    return [
        {"id": "e1", "name": "Pump", "status": "operational", "department_id": "d1",
         "last_maintenance": "2023-12-01", "next_maintenance": "2024-03-01"},
        {"id": "e2", "name": "Press", "status": "maintenance", "department_id": "d1"},
        {"id": "e3", "name": "Idle lathe", "status": "operational", "department_id": "d2"},
    ]


def test_summary_counts_statuses_in_window(tasks):
    summary = maintenance_summary(tasks, START, END)

    assert summary["total"] == 4
    assert summary["completed"] == 2
    assert summary["scheduled"] == 1
    assert summary["cancelled"] == 1
    assert summary["in_progress"] == 0
    assert summary["partial"] == 0
    assert summary["by_priority"] == {"critical": 1, "high": 1, "medium": 1, "low": 1}
    assert summary["total_estimated_hours"] == 6
    assert summary["total_actual_hours"] == 5.5


def test_date_range_is_inclusive_on_both_ends():
    assert in_date_range({"scheduled_date": "2024-01-01"}, START, END)
    assert in_date_range({"scheduled_date": "2024-01-31T23:00:00"}, START, END)
    assert not in_date_range({"scheduled_date": "2023-12-31"}, START, END)
    assert not in_date_range({"scheduled_date": None}, START, END)


def test_empty_window_has_no_division_errors(equipment):
    assert maintenance_summary([], START, END)["total"] == 0

    performance = equipment_performance(equipment, [], START, END)
    assert all(row["maintenance_rate"] == 0 and row["downtime"] == 0 for row in performance)

    techs = technician_performance([{"id": "u9", "first_name": "No", "last_name": "Tasks"}], [], START, END)
    assert techs[0]["completion_rate"] == 0
    assert techs[0]["efficiency"] == 0


def test_equipment_performance_rates(tasks, equipment):
    rows = {row["id"]: row for row in equipment_performance(equipment, tasks, START, END)}

    assert rows["e1"]["total_tasks"] == 2
    assert rows["e1"]["maintenance_rate"] == 100
    assert rows["e1"]["downtime"] == 0
    assert rows["e1"]["next_maintenance"] == "2024-03-01"
    assert rows["e2"]["maintenance_rate"] == 0
    assert rows["e2"]["downtime"] == 50
    assert rows["e3"]["total_tasks"] == 0


def test_department_hours_prefer_recorded_actual_duration(tasks, equipment):
    departments = [{"id": "d1", "name": "Production", "location": "Hall A"}, {"id": "d2", "name": "Tooling"}]
    rows = {row["id"]: row for row in department_analysis(departments, equipment, tasks, START, END)}

    d1 = rows["d1"]
    assert d1["equipment_count"] == 2
    assert d1["maintenance_tasks"] == 4
    assert d1["completed_tasks"] == 2
    assert d1["scheduled_tasks"] == 1
    assert d1["critical_tasks"] == 1
    # 4 + 1.5 actual, 1 estimated, and t4 records an actual of 0
    assert d1["total_hours"] == 6.5
    assert rows["d2"]["maintenance_tasks"] == 0


def test_efficiency_averages_ratios_and_is_not_clamped():
    assert efficiency([{"estimated_duration": 2, "actual_duration": 4}]) == 50
    assert efficiency([{"estimated_duration": 3, "actual_duration": 1.5}]) == 200
    assert efficiency([{"estimated_duration": 0, "actual_duration": 4}]) == 0


def test_technician_performance(tasks):
    technicians = [
        {"id": "u1", "first_name": "Tom", "last_name": "Wrench"},
        {"id": "u2", "first_name": "Ann", "last_name": "Volt"},
    ]
    rows = {row["id"]: row for row in technician_performance(technicians, tasks, START, END)}

    tom = rows["u1"]
    assert tom["name"] == "Tom Wrench"
    assert tom["total_tasks"] == 2
    assert tom["completion_rate"] == 100
    assert tom["efficiency"] == pytest.approx(125)
    assert tom["total_hours"] == 5.5
    assert tom["critical_tasks"] == 1
    assert tom["high_priority_tasks"] == 1
    assert rows["u2"]["completion_rate"] == 0


def test_calendar_is_sorted_and_named(tasks, equipment):
    events = maintenance_calendar(tasks, equipment, START, END)

    assert [event["id"] for event in events] == ["t2", "t1", "t3", "t4"]
    assert events[1]["equipment"] == "Pump"
    assert events[1]["end"] == "2024-01-06"
    assert events[0]["end"] == events[0]["start"]
