"""Leaderboard snapshot export (Excel and CSV) using openpyxl."""
from __future__ import annotations

from io import BytesIO

import openpyxl
from django.http import HttpResponse
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from core.export import queryset_to_csv_response
from targets.models import LeaderboardSnapshot

HEADERS = [
    "Rang",
    "Vendeur",
    "E-mail",
    "Realise",
    "Objectif",
    "Realisation %",
    "Tendance",
    "Serie (jours)",
]

CSV_COLUMNS = [
    ("rank", "Rang"),
    (lambda row: row.user.display_name, "Vendeur"),
    (lambda row: row.user.email, "E-mail"),
    ("score", "Realise"),
    ("total_target", "Objectif"),
    ("achievement_pct", "Realisation %"),
    (lambda row: row.get_trend_display(), "Tendance"),
    ("streak_days", "Serie (jours)"),
]


def _filename(snapshot: LeaderboardSnapshot) -> str:
    return f"classement_{snapshot.period.label}_{snapshot.sequence}"


def export_snapshot_to_csv(snapshot: LeaderboardSnapshot) -> HttpResponse:
    rows = snapshot.rows.select_related("user").order_by("rank")
    return queryset_to_csv_response(rows, CSV_COLUMNS, _filename(snapshot))


def export_snapshot_to_excel(snapshot: LeaderboardSnapshot) -> HttpResponse:
    """
    Export the rows of a leaderboard snapshot to an Excel (.xlsx) file
    returned as an ``HttpResponse`` suitable for direct download.
    """
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = f"Classement {snapshot.period.label}"

    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")

    for col_num, header in enumerate(HEADERS, 1):
        cell = ws.cell(row=1, column=col_num, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center")

    rows = snapshot.rows.select_related("user").order_by("rank")
    for row_num, row in enumerate(rows.iterator(), start=2):
        ws.cell(row=row_num, column=1, value=row.rank)
        ws.cell(row=row_num, column=2, value=row.user.display_name)
        ws.cell(row=row_num, column=3, value=row.user.email)
        ws.cell(row=row_num, column=4, value=row.score)
        ws.cell(row=row_num, column=5, value=row.total_target)
        ws.cell(row=row_num, column=6, value=row.achievement_pct)
        ws.cell(row=row_num, column=7, value=row.get_trend_display())
        ws.cell(row=row_num, column=8, value=row.streak_days)

    for col_num in range(1, len(HEADERS) + 1):
        col_letter = get_column_letter(col_num)
        max_length = len(HEADERS[col_num - 1])
        for column_cells in ws.iter_rows(min_row=2, min_col=col_num, max_col=col_num):
            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max_length + 4, 50)

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    response = HttpResponse(
        buffer.getvalue(),
        content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    response["Content-Disposition"] = f'attachment; filename="{_filename(snapshot)}.xlsx"'
    return response
