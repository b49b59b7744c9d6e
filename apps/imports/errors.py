"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Import error collector. Row validation and the typed
             error taxonomy shared by the payroll, attendance and
             employee importers. Performs no I/O.
-------------------------------------------------------------------------
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set

from django.db import models

from apps.core.utils import MONTHLY_SALARY_MONTH_RE, T13_SALARY_MONTH_RE


MIN_SALARY_YEAR = 2020

REPORT_FIXED_COLUMNS = ['Dòng', 'Mã NV', 'Tháng', 'Lỗi', 'Loại Lỗi']


class ErrorType(models.TextChoices):
    """Classification of a rejected import row."""
    VALIDATION = 'validation', 'Lỗi dữ liệu'
    DUPLICATE = 'duplicate', 'Trùng lặp'
    EMPLOYEE_NOT_FOUND = 'employee_not_found', 'Không tìm thấy NV'
    DATABASE = 'database', 'Lỗi database'
    FORMAT = 'format', 'Lỗi định dạng'


def error_type_label(error_type: str) -> str:
    try:
        return str(ErrorType(error_type).label)
    except ValueError:
        return error_type


@dataclass
class ImportErrorRecord:
    """
    One rejected row.

    Attributes:
        row: 1-based spreadsheet row number (header is row 1).
        error: Vietnamese message shown to the admin.
        error_type: ErrorType value.
        employee_id: Employee code from the row, when readable.
        salary_month: Month from the row, when readable.
        field: Field the error refers to.
        original_data: Raw cell values keyed by header.
    """
    row: int
    error: str
    error_type: str
    employee_id: Optional[str] = None
    salary_month: Optional[str] = None
    field: Optional[str] = None
    original_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'row': self.row,
            'employee_id': self.employee_id,
            'salary_month': self.salary_month,
            'field': self.field,
            'error': self.error,
            'errorType': self.error_type,
            'originalData': self.original_data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImportErrorRecord':
        """Rebuild a record posted back by a client for export."""
        try:
            row = int(data.get('row') or 0)
        except (TypeError, ValueError):
            row = 0
        return cls(
            row=row,
            error=str(data.get('error') or ''),
            error_type=str(data.get('errorType') or data.get('error_type') or ErrorType.VALIDATION),
            employee_id=data.get('employee_id'),
            salary_month=data.get('salary_month'),
            field=data.get('field'),
            original_data=data.get('originalData') or data.get('original_data'),
        )


def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == '':
        return True
    return False


def validate_employee_id(
    value: Any,
    row: int,
    original_data: Optional[Dict[str, Any]] = None
) -> Optional[ImportErrorRecord]:
    """
    Check that the employee code cell is present.

    Returns:
        None when valid, otherwise a validation error record.
    """
    if value is None:
        return ImportErrorRecord(
            row=row, error="Thiếu Mã NV", error_type=ErrorType.VALIDATION,
            field='employee_id', original_data=original_data
        )
    if str(value).strip() == '':
        return ImportErrorRecord(
            row=row, error="Mã NV rỗng", error_type=ErrorType.VALIDATION,
            field='employee_id', original_data=original_data
        )
    return None


def validate_salary_month(
    value: Any,
    row: int,
    employee_id: Optional[str] = None,
    original_data: Optional[Dict[str, Any]] = None,
    is_t13: bool = False,
    current_year: Optional[int] = None
) -> Optional[ImportErrorRecord]:
    """
    Check a salary month cell.

    Monthly payroll requires YYYY-MM with month 01-12; the 13th-month
    payroll requires YYYY-13. In both modes the year must lie between
    2020 and next year.

    Args:
        value: Raw cell value.
        row: Spreadsheet row number.
        employee_id: Employee code, echoed into the error.
        original_data: Raw row values for the error report.
        is_t13: Validate against the 13th-month format.
        current_year: Override for the current year.

    Returns:
        None when valid, otherwise a validation error record.
    """
    def _error(message: str, month: Optional[str] = None) -> ImportErrorRecord:
        return ImportErrorRecord(
            row=row, error=message, error_type=ErrorType.VALIDATION,
            employee_id=employee_id, salary_month=month,
            field='salary_month', original_data=original_data
        )

    if is_empty_value(value):
        return _error("Thiếu Tháng")

    month_text = str(value).strip()
    if is_t13:
        if not T13_SALARY_MONTH_RE.match(month_text):
            return _error(
                f'Tháng không hợp lệ: "{month_text}". Định dạng đúng: YYYY-13 (VD: 2024-13)',
                month_text
            )
    else:
        if not MONTHLY_SALARY_MONTH_RE.match(month_text):
            return _error(
                f'Tháng không hợp lệ: "{month_text}". Định dạng đúng: YYYY-MM (VD: 2024-01)',
                month_text
            )
        month = int(month_text[5:7])
        if month < 1 or month > 12:
            return _error(
                f'Tháng không hợp lệ: "{month_text}". Tháng phải từ 01 đến 12',
                month_text
            )

    year = int(month_text[:4])
    max_year = (current_year or date.today().year) + 1
    if year < MIN_SALARY_YEAR or year > max_year:
        return _error(
            f'Năm không hợp lệ: "{year}". Năm phải từ {MIN_SALARY_YEAR} đến {max_year}',
            month_text
        )
    return None


def validate_employee_exists(
    employee_id: str,
    valid_employee_ids: Set[str],
    row: int,
    salary_month: Optional[str] = None,
    original_data: Optional[Dict[str, Any]] = None
) -> Optional[ImportErrorRecord]:
    """Check an employee code against a pre-fetched set of known codes."""
    if employee_id not in valid_employee_ids:
        return ImportErrorRecord(
            row=row,
            error=f'Mã NV không tồn tại: "{employee_id}"',
            error_type=ErrorType.EMPLOYEE_NOT_FOUND,
            employee_id=employee_id,
            salary_month=salary_month,
            field='employee_id',
            original_data=original_data
        )
    return None


def create_error_report_data(errors: Iterable[ImportErrorRecord], headers: List[str]) -> List[Dict[str, Any]]:
    """
    Render errors as rows for a spreadsheet export.

    Each row starts with Dòng, Mã NV, Tháng, Lỗi and Loại Lỗi, followed
    by the original row's values for every other header, verbatim.
    """
    report = []
    for error in errors:
        row: Dict[str, Any] = {
            'Dòng': error.row,
            'Mã NV': error.employee_id or 'N/A',
            'Tháng': error.salary_month or 'N/A',
            'Lỗi': error.error,
            'Loại Lỗi': error_type_label(error.error_type),
        }
        if error.original_data:
            for header in headers:
                if header not in REPORT_FIXED_COLUMNS:
                    value = error.original_data.get(header)
                    row[header] = '' if value is None else value
        report.append(row)
    return report


@dataclass
class ImportErrorCollector:
    """
    Accumulates row errors across the passes of one import.

    Rows are rejected at most once: once a row has an error, later
    passes skip it, so the earliest (most specific) error is kept.
    """
    errors: List[ImportErrorRecord] = field(default_factory=list)
    _rejected_rows: Set[int] = field(default_factory=set)

    def add(self, error: Optional[ImportErrorRecord]) -> bool:
        """Record an error; returns True when one was recorded."""
        if error is None:
            return False
        self.errors.append(error)
        self._rejected_rows.add(error.row)
        return True

    def is_rejected(self, row: int) -> bool:
        return row in self._rejected_rows

    @property
    def rejected_count(self) -> int:
        return len(self._rejected_rows)

    def counts_by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for error in self.errors:
            counts[error.error_type] = counts.get(error.error_type, 0) + 1
        return counts

    def sorted_errors(self) -> List[ImportErrorRecord]:
        return sorted(self.errors, key=lambda e: e.row)

    def as_dicts(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Errors ordered by row, optionally capped."""
        ordered = self.sorted_errors()
        if limit is not None:
            ordered = ordered[:limit]
        return [e.to_dict() for e in ordered]

    def __len__(self) -> int:
        return len(self.errors)
