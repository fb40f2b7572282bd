# cmms_app/report_charts.py
import base64
import io

from matplotlib.figure import Figure

from cmms_app.enums import TASK_PRIORITY_BADGES, TASK_STATUS_BADGES

COLOR_MAP = {
    "blue": "#3B82F6",
    "amber": "#F59E0B",
    "green": "#10B981",
    "gray": "#9CA3AF",
    "purple": "#8B5CF6",
    "slate": "#64748B",
    "orange": "#F97316",
    "red": "#EF4444",
}


def summary_chart_base64(summary):
    """Render status and priority counts of a maintenance summary as a PNG (base64)."""
    fig = Figure(figsize=(12, 5))
    ax_status, ax_priority = fig.subplots(1, 2)

    status_labels = [badge["label"] for badge in TASK_STATUS_BADGES.values()]
    status_counts = [summary[status.value.replace("-", "_")] for status in TASK_STATUS_BADGES]
    status_colors = [COLOR_MAP[badge["color"]] for badge in TASK_STATUS_BADGES.values()]
    ax_status.bar(status_labels, status_counts, color=status_colors)
    ax_status.set_title(f"Tasks by Status (total {summary['total']})", fontweight='bold')
    ax_status.set_ylabel("Tasks")
    ax_status.tick_params(axis='x', rotation=30)

    priority_labels = [badge["label"] for badge in TASK_PRIORITY_BADGES.values()]
    priority_counts = [summary["by_priority"][priority.value] for priority in TASK_PRIORITY_BADGES]
    priority_colors = [COLOR_MAP[badge["color"]] for badge in TASK_PRIORITY_BADGES.values()]
    ax_priority.bar(priority_labels, priority_counts, color=priority_colors)
    ax_priority.set_title("Tasks by Priority", fontweight='bold')
    ax_priority.grid(axis='y', alpha=0.3)
    ax_status.grid(axis='y', alpha=0.3)

    fig.tight_layout()
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=100, bbox_inches='tight')
    return base64.b64encode(buffer.getvalue()).decode("utf-8")
