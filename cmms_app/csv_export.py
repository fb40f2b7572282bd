# cmms_app/csv_export.py
import json

from fastapi import Response


class EmptyExportError(ValueError):
    pass


def _format_cell(cell):
    if cell is None:
        return ""
    if isinstance(cell, (dict, list, tuple)):
        encoded = json.dumps(cell, separators=(",", ":"), default=str).replace('"', '""')
        return f'"{encoded}"'
    if isinstance(cell, bool):
        text = "true" if cell else "false"
    elif isinstance(cell, float) and cell.is_integer():
        text = str(int(cell))
    else:
        text = str(cell)
    text = text.replace('"', '""')
    if "," in text or '"' in text or "\n" in text:
        return f'"{text}"'
    return text


def to_csv(records):
    """Flatten a list of records into CSV text; headers come from the first record."""
    if not records:
        raise EmptyExportError("No data to export")

    headers = list(records[0].keys())
    lines = [",".join(headers)]
    for row in records:
        lines.append(",".join(_format_cell(row.get(header)) for header in headers))
    return "\n".join(lines)


def csv_response(records, filename):
    content = to_csv(records)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
    )
