"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Excel ingestion parsers for payroll, attendance and
             employee sheets. Per-row problems are collected as
             ImportErrorRecord; only unreadable workbooks raise.
-------------------------------------------------------------------------
"""
import io
import math
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from apps.core.exceptions import UnreadableWorkbook
from apps.employees.models import Role
from apps.imports.errors import (
    ErrorType, ImportErrorCollector, ImportErrorRecord,
    validate_employee_id, validate_salary_month,
)
from apps.payroll.fields import NUMERIC_FIELDS, PAYROLL_HEADER_TO_FIELD


PHONE_RE = re.compile(r'^[0-9+\-\s()]*$')
TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})$')
MONTH_FIRST_RE = re.compile(r'^(\d{1,2})[-/](\d{4})$')
YEAR_FIRST_RE = re.compile(r'^(\d{4})[-/](\d{1,2})$')

EMPLOYEE_COLUMN_ALIASES: Dict[str, List[str]] = {
    'employee_id': ['mã nhân viên', 'employee_id', 'ma_nhan_vien', 'mã nv', 'manv', 'id'],
    'full_name': ['họ tên', 'full_name', 'ho_ten', 'họ và tên', 'hoten', 'name', 'tên'],
    'cccd': ['cccd', 'cmnd', 'số cccd', 'so_cccd', 'căn cước', 'can_cuoc'],
    'department': ['phòng ban', 'department', 'phong_ban', 'dept', 'bộ phận', 'bo_phan'],
    'chuc_vu': ['chức vụ', 'position', 'chuc_vu', 'vai trò', 'role', 'chucvu'],
    'phone_number': ['số điện thoại', 'phone', 'phone_number', 'sdt', 'điện thoại', 'dien_thoai'],
    'is_active': ['trạng thái', 'status', 'is_active', 'active', 'hoạt động', 'hoat_dong'],
}
EMPLOYEE_REQUIRED_COLUMNS = ['employee_id', 'full_name', 'cccd', 'department']

EMPLOYEE_FIELD_LIMITS: Dict[str, Tuple[int, str]] = {
    'employee_id': (50, "Mã nhân viên quá dài (tối đa 50 ký tự)"),
    'full_name': (255, "Họ tên quá dài (tối đa 255 ký tự)"),
    'cccd': (20, "Số CCCD quá dài (tối đa 20 ký tự)"),
    'department': (100, "Tên phòng ban quá dài (tối đa 100 ký tự)"),
}

CHUC_VU_ALIASES: Dict[str, str] = {
    'nhân viên': Role.NHAN_VIEN, 'nhanvien': Role.NHAN_VIEN,
    'tổ trưởng': Role.TO_TRUONG, 'totruong': Role.TO_TRUONG, 'tổ_trưởng': Role.TO_TRUONG,
    'trưởng phòng': Role.TRUONG_PHONG, 'truongphong': Role.TRUONG_PHONG,
    'trưởng_phòng': Role.TRUONG_PHONG, 'phó phòng': Role.TRUONG_PHONG, 'phophong': Role.TRUONG_PHONG,
    'giám đốc': Role.GIAM_DOC, 'giamdoc': Role.GIAM_DOC,
    'kế toán': Role.KE_TOAN, 'ketoan': Role.KE_TOAN,
    'người lập biểu': Role.NGUOI_LAP_BIEU, 'nguoilapbieu': Role.NGUOI_LAP_BIEU,
    'văn phòng': Role.VAN_PHONG, 'vanphong': Role.VAN_PHONG,
}
IMPORTABLE_ROLES = [r for r in Role.values if r != Role.ADMIN]

ACTIVE_VALUES = {'true', '1', 'có', 'hoạt động', 'active', 'yes'}

PAYROLL_KEY_ALIASES: Dict[str, List[str]] = {
    'employee_id': ['mã nhân viên', 'employee_id', 'ma_nhan_vien', 'mã nv', 'id'],
    'salary_month': ['tháng lương', 'salary_month', 'thang_luong', 'month'],
}

ATTENDANCE_SUMMARY_PATTERNS: Dict[str, List[str]] = {
    'total_hours': ['tổng giờ công', 'tong gio cong', 'total hours'],
    'total_days': ['tổng ngày công', 'tong ngay cong', 'total days'],
    'total_meal_ot_hours': ['tổng giờ ăn tc', 'tong gio an tc', 'meal ot'],
    'total_ot_hours': ['tổng giờ tăng ca', 'tong gio tang ca', 'total ot'],
    'sick_days': ['nghỉ ốm', 'nghi om', 'sick'],
}


@dataclass
class ParseResult:
    """
    Output of a parser.

    Attributes:
        records: Valid records, each carrying its source row as '_row'.
        errors: Collected row errors.
        headers: Header cells as written in the file.
        total_rows: Non-empty data rows seen.
    """
    records: List[Dict[str, Any]] = field(default_factory=list)
    errors: ImportErrorCollector = field(default_factory=ImportErrorCollector)
    headers: List[str] = field(default_factory=list)
    total_rows: int = 0

    @property
    def success(self) -> bool:
        return len(self.records) > 0


# =====================================================================
# WORKBOOK ACCESS
# =====================================================================

def open_worksheet(buffer: bytes):
    """
    Load the first worksheet of an xlsx buffer.

    Raises:
        UnreadableWorkbook: If the buffer is not a readable workbook.
    """
    try:
        wb = openpyxl.load_workbook(io.BytesIO(buffer), data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError, TypeError) as e:
        raise UnreadableWorkbook(f"Không thể đọc file Excel: {e}")
    if not wb.worksheets:
        raise UnreadableWorkbook("File Excel không có sheet nào")
    return wb.worksheets[0]


def read_rows(ws) -> List[List[Any]]:
    """All rows of a worksheet as lists of cell values."""
    return [list(row) for row in ws.iter_rows(values_only=True)]


def merged_value_map(ws) -> Dict[Tuple[int, int], Any]:
    """Map every cell inside a merged range to its top-left value (1-based)."""
    values: Dict[Tuple[int, int], Any] = {}
    for merged in ws.merged_cells.ranges:
        top_left = ws.cell(row=merged.min_row, column=merged.min_col).value
        for r in range(merged.min_row, merged.max_row + 1):
            for c in range(merged.min_col, merged.max_col + 1):
                values[(r, c)] = top_left
    return values


def cell_text(value: Any) -> str:
    """Cell value as trimmed text; whole floats lose their '.0'."""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d')
    return str(value).strip()


def month_text(value: Any) -> str:
    """Salary month cell as text; date-formatted cells become YYYY-MM."""
    if isinstance(value, (datetime, date)):
        return value.strftime('%Y-%m')
    return cell_text(value)


def parse_number(value: Any) -> float:
    """
    Coerce a cell to a number regardless of decimal separator.

    '1.234,5' and '1,234.5' both give 1234.5; '2,5' gives 2.5. A
    separator repeated within the number is thousands grouping, so
    '8.200.000' and '5,000,000' are whole numbers. Empty, unparseable
    or non-finite values give 0.
    """
    if value is None or value == '':
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0

    text = re.sub(r'\s', '', str(value))
    if not text:
        return 0.0
    if text.count('.') > 1:
        text = text.replace('.', '')
    if text.count(',') > 1:
        text = text.replace(',', '')
    has_comma = ',' in text
    has_dot = '.' in text
    if has_comma and not has_dot:
        text = text.replace(',', '.', 1)
    elif has_comma and has_dot:
        if text.rfind(',') > text.rfind('.'):
            text = text.replace('.', '').replace(',', '.', 1)
        else:
            text = text.replace(',', '')
    match = re.match(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?', text)
    if not match:
        return 0.0
    try:
        number = float(match.group(0))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_time_value(value: Any) -> Optional[time]:
    """Check-in/out cell as a time: Excel day fraction, time object or 'H:MM'."""
    if value is None or value == '' or value == 0:
        return None
    if isinstance(value, datetime):
        return value.time().replace(second=0, microsecond=0)
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if isinstance(value, (int, float)):
        total_minutes = int(round(float(value) * 24 * 60)) % (24 * 60)
        return time(total_minutes // 60, total_minutes % 60)
    text = str(value).strip()
    if not text or text in ('0', '-'):
        return None
    match = TIME_RE.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours < 24 and minutes < 60:
            return time(hours, minutes)
    return None


def parse_period(value: Any) -> Optional[Tuple[int, int]]:
    """Attendance month as (year, month) from MM-YYYY, MM/YYYY or YYYY-MM."""
    if isinstance(value, (datetime, date)):
        return value.year, value.month
    text = cell_text(value)
    if not text:
        return None
    match = MONTH_FIRST_RE.match(text)
    if match:
        return int(match.group(2)), int(match.group(1))
    match = YEAR_FIRST_RE.match(text)
    if match:
        return int(match.group(1)), int(match.group(2))
    return None


def detect_columns(headers: Sequence[str], aliases: Dict[str, List[str]]) -> Dict[str, int]:
    """
    Find the column index of each field by alias substring.

    Headers are lower-cased and trimmed. A field matches the first
    header containing any of its aliases. Each column is used once.
    """
    normalized = [str(h or '').lower().strip() for h in headers]
    indexes: Dict[str, int] = {}
    used = set()
    for field_name, names in aliases.items():
        for idx, header in enumerate(normalized):
            if idx in used or not header:
                continue
            if any(name in header for name in names):
                indexes[field_name] = idx
                used.add(idx)
                break
    return indexes


def _row_is_empty(row: Sequence[Any]) -> bool:
    return all(cell_text(v) == '' for v in row)


def _original_data(headers: Sequence[str], row: Sequence[Any]) -> Dict[str, Any]:
    data = {}
    for idx, header in enumerate(headers):
        if header:
            value = row[idx] if idx < len(row) else None
            data[header] = cell_text(value) if isinstance(value, datetime) else value
    return data


# =====================================================================
# PAYROLL
# =====================================================================

def detect_payroll_columns(headers: Sequence[str]) -> Dict[str, int]:
    """
    Map payroll fields to column indexes.

    Exact header text wins; remaining fields then fall back to alias
    substring matching on lower-cased headers.
    """
    indexes: Dict[str, int] = {}
    used = set()
    for idx, header in enumerate(headers):
        field_name = PAYROLL_HEADER_TO_FIELD.get(str(header or '').strip())
        if field_name and field_name not in indexes:
            indexes[field_name] = idx
            used.add(idx)

    aliases: Dict[str, List[str]] = {}
    for header, field_name in PAYROLL_HEADER_TO_FIELD.items():
        if field_name not in indexes:
            aliases[field_name] = PAYROLL_KEY_ALIASES.get(field_name, []) + [header.lower(), field_name]
    normalized = [str(h or '').lower().strip() for h in headers]
    for field_name, names in aliases.items():
        for idx, header in enumerate(normalized):
            if idx in used or not header:
                continue
            if any(name in header for name in names):
                indexes[field_name] = idx
                used.add(idx)
                break
    return indexes


def parse_payroll_workbook(buffer: bytes, filename: str = '', is_t13: bool = False) -> ParseResult:
    """
    Parse a payroll sheet into payroll dicts.

    Rows are checked for employee code and salary month, then for
    duplicate (employee_id, salary_month) pairs within the file.
    Numeric fields default to 0 when empty or invalid.

    Args:
        buffer: Raw xlsx bytes.
        filename: Original filename, stored as source_file.
        is_t13: Validate months against the YYYY-13 format.

    Raises:
        UnreadableWorkbook: Unreadable file, no header row, or missing
                            employee_id / salary_month columns.
    """
    rows = read_rows(open_worksheet(buffer))
    if not rows or _row_is_empty(rows[0]):
        raise UnreadableWorkbook("File Excel không có dữ liệu hoặc thiếu header")

    headers = [cell_text(h) for h in rows[0]]
    columns = detect_payroll_columns(headers)
    missing = [f for f in ('employee_id', 'salary_month') if f not in columns]
    if missing:
        raise UnreadableWorkbook(f"Thiếu các cột bắt buộc: {', '.join(missing)}")

    result = ParseResult(headers=headers)
    seen_keys: Dict[Tuple[str, str], int] = {}

    for offset, row in enumerate(rows[1:]):
        row_number = offset + 2
        if _row_is_empty(row):
            continue
        result.total_rows += 1
        original = _original_data(headers, row)

        def _cell(name):
            idx = columns.get(name)
            return row[idx] if idx is not None and idx < len(row) else None

        raw_id = _cell('employee_id')
        if result.errors.add(validate_employee_id(raw_id, row_number, original)):
            continue
        employee_id = cell_text(raw_id)

        salary_month = month_text(_cell('salary_month'))
        if result.errors.add(validate_salary_month(
            salary_month or None, row_number, employee_id, original, is_t13=is_t13
        )):
            continue

        key = (employee_id, salary_month)
        if key in seen_keys:
            result.errors.add(ImportErrorRecord(
                row=row_number,
                error=f"Trùng lặp Mã NV và Tháng với dòng {seen_keys[key]}",
                error_type=ErrorType.DUPLICATE,
                employee_id=employee_id,
                salary_month=salary_month,
                original_data=original
            ))
            continue
        seen_keys[key] = row_number

        record: Dict[str, Any] = {
            '_row': row_number,
            '_original': original,
            'employee_id': employee_id,
            'salary_month': salary_month,
            'source_file': filename,
        }
        for field_name in NUMERIC_FIELDS:
            if field_name in columns:
                record[field_name] = parse_number(_cell(field_name))
        result.records.append(record)

    return result


# =====================================================================
# EMPLOYEES
# =====================================================================

def normalize_chuc_vu(raw: str) -> str:
    value = (raw or '').strip().lower()
    if not value:
        return Role.NHAN_VIEN
    return CHUC_VU_ALIASES.get(value, value)


def parse_employee_workbook(buffer: bytes, filename: str = '') -> ParseResult:
    """
    Parse an employee master sheet.

    Instruction rows (first cell starting with '===') are skipped.

    Raises:
        UnreadableWorkbook: Unreadable file or missing required columns.
    """
    rows = read_rows(open_worksheet(buffer))
    if len(rows) < 2:
        raise UnreadableWorkbook("File Excel không có dữ liệu hoặc thiếu header")

    headers = [cell_text(h) for h in rows[0]]
    columns = detect_columns(headers, EMPLOYEE_COLUMN_ALIASES)
    missing = [c for c in EMPLOYEE_REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise UnreadableWorkbook(
            f"Thiếu các cột bắt buộc: {', '.join(missing)}. Vui lòng kiểm tra lại header của file Excel."
        )

    result = ParseResult(headers=headers)
    seen_ids: Dict[str, int] = {}
    required_messages = {
        'employee_id': "Thiếu mã nhân viên",
        'full_name': "Thiếu họ tên",
        'cccd': "Thiếu số CCCD",
        'department': "Thiếu phòng ban",
    }

    for offset, row in enumerate(rows[1:]):
        row_number = offset + 2
        if _row_is_empty(row) or cell_text(row[0] if row else None).startswith('==='):
            continue
        result.total_rows += 1
        original = _original_data(headers, row)

        def _text(name: str) -> str:
            idx = columns.get(name)
            return cell_text(row[idx]) if idx is not None and idx < len(row) else ''

        values = {name: _text(name) for name in EMPLOYEE_REQUIRED_COLUMNS}
        employee_id = values['employee_id']

        def _reject(message: str, error_type: str = ErrorType.VALIDATION, field_name: Optional[str] = None):
            result.errors.add(ImportErrorRecord(
                row=row_number, error=message, error_type=error_type,
                employee_id=employee_id or None, field=field_name, original_data=original
            ))

        missing_field = next((n for n in EMPLOYEE_REQUIRED_COLUMNS if not values[n]), None)
        if missing_field:
            _reject(required_messages[missing_field], field_name=missing_field)
            continue

        if employee_id in seen_ids:
            _reject("Mã nhân viên bị trùng trong file", ErrorType.DUPLICATE, 'employee_id')
            continue
        seen_ids[employee_id] = row_number

        too_long = next(
            (n for n, (limit, _) in EMPLOYEE_FIELD_LIMITS.items() if len(values[n]) > limit),
            None
        )
        if too_long:
            _reject(EMPLOYEE_FIELD_LIMITS[too_long][1], field_name=too_long)
            continue

        raw_chuc_vu = _text('chuc_vu')
        chuc_vu = normalize_chuc_vu(raw_chuc_vu)
        if chuc_vu not in IMPORTABLE_ROLES:
            _reject(
                f'Chức vụ không hợp lệ: "{raw_chuc_vu}". Chỉ chấp nhận: {", ".join(IMPORTABLE_ROLES)}',
                field_name='chuc_vu'
            )
            continue

        phone = _text('phone_number')
        if phone and (len(phone) > 15 or not PHONE_RE.match(phone)):
            _reject(
                "Số điện thoại không hợp lệ (chỉ chấp nhận số, +, -, khoảng trắng, dấu ngoặc)",
                ErrorType.FORMAT, 'phone_number'
            )
            continue

        active_text = _text('is_active').lower() if 'is_active' in columns else ''
        is_active = True if not active_text else active_text in ACTIVE_VALUES

        result.records.append({
            '_row': row_number,
            '_original': original,
            'employee_id': employee_id,
            'full_name': values['full_name'],
            'cccd': values['cccd'],
            'department': values['department'],
            'chuc_vu': chuc_vu,
            'phone_number': phone,
            'is_active': is_active,
            'source_file': filename,
        })

    return result


# =====================================================================
# ATTENDANCE
# =====================================================================

@dataclass
class AttendanceLayout:
    employee_id_col: int
    month_col: int
    day_start_col: int
    days_in_month: int
    summary_cols: Dict[str, int]


def detect_attendance_layout(ws) -> Optional[AttendanceLayout]:
    """Locate employee, month, day and summary columns in header row 1."""
    employee_col = month_col = day_start = None
    summary_cols: Dict[str, int] = {}
    max_col = ws.max_column

    for col in range(1, max_col + 1):
        value = ws.cell(row=1, column=col).value
        text = cell_text(value).lower()
        if not text:
            continue
        if 'mã' in text and ('nv' in text or 'nhân viên' in text):
            employee_col = col
        elif 'tháng' in text or text == 'thang':
            month_col = col
        elif text == '1' and day_start is None:
            day_start = col
        for key, patterns in ATTENDANCE_SUMMARY_PATTERNS.items():
            if any(p in text for p in patterns):
                summary_cols[key] = col

    if employee_col is None or month_col is None or day_start is None:
        return None

    days = 0
    for col in range(day_start, max_col + 1):
        text = cell_text(ws.cell(row=1, column=col).value)
        if not text:
            continue
        if text.isdigit() and 1 <= int(text) <= 31:
            days = max(days, int(text))
        elif col in (summary_cols.get('total_hours'), summary_cols.get('total_days')):
            break

    return AttendanceLayout(employee_col, month_col, day_start, days, summary_cols)


def parse_attendance_workbook(buffer: bytes, filename: str = '') -> ParseResult:
    """
    Parse a monthly attendance sheet laid out in row pairs.

    For each employee the first row holds check-in/check-out per day
    and the summary totals; the second row holds working and overtime
    units. Each day spans two columns starting at the header '1'.
    Days with no punches and zero units are dropped.

    Raises:
        UnreadableWorkbook: Unreadable file or undetectable header.
    """
    ws = open_worksheet(buffer)
    layout = detect_attendance_layout(ws)
    if layout is None:
        raise UnreadableWorkbook("Không thể nhận diện các cột tiêu đề (Mã NV, Tháng, ngày 1)")

    merged = merged_value_map(ws)
    result = ParseResult(headers=[cell_text(c.value) for c in ws[1]])

    def _value(r: int, c: Optional[int]) -> Any:
        if c is None:
            return None
        if (r, c) in merged:
            return merged[(r, c)]
        return ws.cell(row=r, column=c).value

    row = 2
    max_row = ws.max_row
    while row <= max_row:
        employee_id = cell_text(_value(row, layout.employee_id_col))
        if not employee_id:
            row += 1
            continue
        result.total_rows += 1

        raw_month = _value(row, layout.month_col)
        period = parse_period(raw_month)
        if period is None or not 1 <= period[1] <= 12:
            result.errors.add(ImportErrorRecord(
                row=row,
                error=(f"Tháng không hợp lệ: {cell_text(raw_month)}" if period is None
                       else f"Tháng phải từ 1-12: {period[1]}"),
                error_type=ErrorType.VALIDATION,
                employee_id=employee_id,
                field='salary_month'
            ))
            row += 2
            continue

        year, month = period
        days = []
        for day in range(1, layout.days_in_month + 1):
            col = layout.day_start_col + (day - 1) * 2
            check_in = parse_time_value(_value(row, col))
            check_out = parse_time_value(_value(row, col + 1))
            working = parse_number(_value(row + 1, col))
            overtime = parse_number(_value(row + 1, col + 1))
            if working == 0 and overtime == 0 and check_in is None and check_out is None:
                continue
            try:
                work_date = date(year, month, day)
            except ValueError:
                continue
            days.append({
                'work_date': work_date,
                'check_in_time': check_in,
                'check_out_time': check_out,
                'working_units': working,
                'overtime_units': overtime,
            })

        summary = {
            key: parse_number(_value(row, layout.summary_cols.get(key)))
            for key in ATTENDANCE_SUMMARY_PATTERNS
        }
        result.records.append({
            '_row': row,
            'employee_id': employee_id,
            'period_year': year,
            'period_month': month,
            'daily': days,
            'summary': summary,
            'source_file': filename,
        })
        row += 2

    return result
