import base64

import matplotlib.pyplot as plt

from cmms_app.report_charts import summary_chart_base64
from cmms_app.report_engine import maintenance_summary


def test_chart_renders_without_pyplot_figures():
    summary = maintenance_summary([
        {"id": "1", "scheduled_date": "2024-01-02", "status": "completed", "priority": "high"},
    ], "2024-01-01", "2024-01-31")
    open_before = plt.get_fignums()

    image = summary_chart_base64(summary)

    assert base64.b64decode(image).startswith(b"\x89PNG")
    assert plt.get_fignums() == open_before
