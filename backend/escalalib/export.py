"""CSV, XLSX and PDF rendering of a stored period schedule."""
import csv
import io
from typing import Dict, List, Sequence

import openpyxl
from fpdf import FPDF
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .models import WEEKEND, Employee, PeriodSchedule

DAY_NAMES_PT = {
    'monday': 'Segunda-feira',
    'tuesday': 'Terça-feira',
    'wednesday': 'Quarta-feira',
    'thursday': 'Quinta-feira',
    'friday': 'Sexta-feira',
    'saturday': 'Sábado',
    'sunday': 'Domingo',
}

_COLUMNS = ["Data", "Dia", "Status", "Feriado", "Expediente", "Plantão"]
_WIDTHS = [12, 15, 10, 26, 48, 24]


def schedule_rows(schedule: PeriodSchedule, employees: Sequence[Employee]) -> List[Dict]:
    """One flat row per date; employees are looked up by id, inactive ones included."""
    names = {e.id: e.name for e in employees}

    def _name(emp_id):
        return names.get(emp_id, f"#{emp_id}")

    rows = []
    for entry in schedule.entries:
        regular = [
            f"{_name(a.employee_id)} {a.start_time}-{a.end_time}"
            for a in entry.assignments if a.type != 'oncall'
        ]
        rows.append({
            "Data": entry.date,
            "Dia": DAY_NAMES_PT[entry.day_of_week],
            "Status": entry.status,
            "Feriado": entry.holiday_name or '',
            "Expediente": "; ".join(regular),
            "Plantão": _name(entry.oncall_employee_id) if entry.oncall_employee_id is not None else '',
        })
    return rows


def to_csv(rows: List[Dict]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_COLUMNS, lineterminator='\r\n')
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def to_xlsx(schedule: PeriodSchedule, rows: List[Dict]) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = f"Escala {schedule.start[:7]}"
    thin = Side(border_style="thin", color="CBD5E1")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for c, (header, width) in enumerate(zip(_COLUMNS, _WIDTHS), start=1):
        cell = ws.cell(1, c, header)
        cell.font = Font(bold=True, color="FFFFFF", size=9)
        cell.fill = PatternFill(fill_type="solid", fgColor="1E293B")
        cell.alignment = Alignment(horizontal="left")
        cell.border = border
        ws.column_dimensions[get_column_letter(c)].width = width
    for r_idx, (entry, row) in enumerate(zip(schedule.entries, rows), start=2):
        if entry.is_holiday:
            fill_color = "FEE2E2"
        elif entry.day_of_week in WEEKEND:
            fill_color = "E2E8F0"
        else:
            fill_color = "F8FAFC" if r_idx % 2 == 0 else "FFFFFF"
        for c, key in enumerate(_COLUMNS, start=1):
            cell = ws.cell(r_idx, c, row[key])
            cell.font = Font(size=9)
            cell.fill = PatternFill(fill_type="solid", fgColor=fill_color)
            cell.border = border
    ws.freeze_panes = "A2"
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


_PDF_WIDTHS = [22, 28, 18, 45, 120, 44]
_CELL_PADDING = 2


def pdf_text(value) -> str:
    """Core PDF fonts are Latin-1 only; other characters become '?'."""
    return str(value).encode('latin-1', 'replace').decode('latin-1')


def fit_text(pdf: FPDF, text: str, width: float) -> str:
    """Cut text with a trailing '...' so it fits a cell of the current font."""
    limit = width - _CELL_PADDING
    if pdf.get_string_width(text) <= limit:
        return text
    while text and pdf.get_string_width(text + '...') > limit:
        text = text[:-1]
    return text + '...'


class _SchedulePdf(FPDF):
    def __init__(self, title: str):
        super().__init__(orientation="L", unit="mm", format="A4")
        self.title_text = title

    def header(self):
        self.set_text_color(30, 41, 59)
        self.set_font("Helvetica", "B", 13)
        self.cell(0, 8, self.title_text)
        self.ln(10)

    def footer(self):
        self.set_y(-12)
        self.set_font("Helvetica", "I", 7)
        self.set_text_color(120, 120, 120)
        self.cell(0, 5, pdf_text(f"OpenEscala  |  {self.title_text}  |  Página {self.page_no()}"), align="C")


def to_pdf(schedule: PeriodSchedule, rows: List[Dict]) -> bytes:
    """Landscape A4 table, one line per day; weekends and holidays shaded."""
    pdf = _SchedulePdf(f"Escala {schedule.start[:7]}")
    pdf.set_auto_page_break(auto=True, margin=18)
    pdf.add_page()
    pdf.set_draw_color(203, 213, 225)
    pdf.set_line_width(0.2)

    pdf.set_fill_color(30, 41, 59)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", "B", 8)
    for header, width in zip(_COLUMNS, _PDF_WIDTHS):
        pdf.cell(width, 8, header, border=1, fill=True)
    pdf.ln()

    pdf.set_text_color(30, 41, 59)
    pdf.set_font("Helvetica", "", 6)
    for entry, row in zip(schedule.entries, rows):
        if entry.is_holiday:
            pdf.set_fill_color(254, 226, 226)
        elif entry.day_of_week in WEEKEND:
            pdf.set_fill_color(226, 232, 240)
        else:
            pdf.set_fill_color(255, 255, 255)
        for key, width in zip(_COLUMNS, _PDF_WIDTHS):
            pdf.cell(width, 6, fit_text(pdf, pdf_text(row[key]), width), border=1, fill=True)
        pdf.ln()
    return bytes(pdf.output())
