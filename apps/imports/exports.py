"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Excel workbooks produced by the import module: import
             templates and downloadable error reports.
-------------------------------------------------------------------------
"""
from typing import Any, Dict, List, Sequence

from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from apps.imports.errors import REPORT_FIXED_COLUMNS
from apps.imports.mapping import HeaderMappingResult
from apps.payroll.fields import sample_value

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _write_header(ws, headers: Sequence[str], fill_color: str = '366092') -> None:
    header_fill = PatternFill(start_color=fill_color, end_color=fill_color, fill_type='solid')
    header_font = Font(bold=True, color='FFFFFF')
    for col_num, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col_num)
        cell.value = header
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)


def _set_widths(ws, count: int, width: int = 18) -> None:
    for col_num in range(1, count + 1):
        ws.column_dimensions[get_column_letter(col_num)].width = width


def build_template_workbook(header_result: HeaderMappingResult, fields: Sequence[str]) -> Workbook:
    """
    Blank import template with one realistic sample row.

    Args:
        header_result: Header text per field.
        fields: Fields in column order.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Mẫu Import Lương"

    _write_header(ws, [header_result.headers[f] for f in fields])
    for col_num, field_name in enumerate(fields, 1):
        ws.cell(row=2, column=col_num).value = sample_value(field_name)

    _set_widths(ws, len(fields))
    ws.freeze_panes = 'A2'
    return wb


def build_error_report_workbook(report_rows: List[Dict[str, Any]]) -> Workbook:
    """Workbook listing rejected rows, as built by create_error_report_data."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Lỗi Import"

    headers: List[str] = list(REPORT_FIXED_COLUMNS)
    for row in report_rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    _write_header(ws, headers, fill_color='C0504D')
    for row_num, row in enumerate(report_rows, 2):
        for col_num, header in enumerate(headers, 1):
            value = row.get(header, '')
            if not isinstance(value, (str, int, float)) and value is not None:
                value = str(value)
            ws.cell(row=row_num, column=col_num).value = value

    _set_widths(ws, len(headers))
    ws.column_dimensions['D'].width = 60
    return wb


def workbook_response(wb: Workbook, prefix: str) -> HttpResponse:
    """Stream a workbook as an xlsx attachment."""
    timestamp = timezone.now().strftime('%Y%m%d_%H%M%S')
    filename = f'{prefix}_{timestamp}.xlsx'

    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'

    wb.save(response)
    return response
