"""Attendance report serialisation (CSV, JSON, Excel)."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

import pandas as pd

from ..core.enums import ExportFormat
from .model import AttendanceReportRow

EXPORT_COLUMNS = [
    "employee_name",
    "employee_email",
    "department",
    "employee_type",
    "date",
    "status",
    "reason",
    "marked_at",
]

_HEADERS = {
    "employee_name": "Employee Name",
    "employee_email": "Email",
    "department": "Department",
    "employee_type": "Employee Type",
    "date": "Date",
    "status": "Status",
    "reason": "Reason",
    "marked_at": "Marked At",
}


@dataclass(frozen=True)
class ExportFile:
    filename: str
    mimetype: str
    content: bytes


def _flat_rows(rows: Sequence[AttendanceReportRow]) -> list[dict]:
    out = []
    for row in rows:
        data = row.to_dict()
        out.append({col: data.get(col) or "" for col in EXPORT_COLUMNS})
    return out


def write_csv(rows: Sequence[AttendanceReportRow], *, filename_stem: str) -> ExportFile:
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=EXPORT_COLUMNS)
    writer.writerow(_HEADERS)
    for row in _flat_rows(rows):
        writer.writerow(row)
    # BOM so Excel opens the file as UTF-8.
    return ExportFile(f"{filename_stem}.csv", "text/csv", out.getvalue().encode("utf-8-sig"))


def write_json(rows: Sequence[AttendanceReportRow], *, filename_stem: str, exported_at: datetime) -> ExportFile:
    payload = {
        "attendance": [r.to_dict() for r in rows],
        "total": len(rows),
        "export_date": exported_at.isoformat(),
    }
    content = json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")
    return ExportFile(f"{filename_stem}.json", "application/json", content)


def write_xlsx(rows: Sequence[AttendanceReportRow], *, filename_stem: str) -> ExportFile:
    df = pd.DataFrame(_flat_rows(rows), columns=EXPORT_COLUMNS).rename(columns=_HEADERS)
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Attendance")
    return ExportFile(
        f"{filename_stem}.xlsx",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        out.getvalue(),
    )


def export_rows(
    rows: Sequence[AttendanceReportRow],
    fmt: ExportFormat,
    *,
    filename_stem: str,
    exported_at: datetime,
) -> ExportFile:
    if fmt == ExportFormat.CSV:
        return write_csv(rows, filename_stem=filename_stem)
    if fmt == ExportFormat.JSON:
        return write_json(rows, filename_stem=filename_stem, exported_at=exported_at)
    return write_xlsx(rows, filename_stem=filename_stem)
