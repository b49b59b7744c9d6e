"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Dual-file payroll import parser. Two files mapped by
             their own column profiles are joined on
             (employee_id, salary_month).
-------------------------------------------------------------------------
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from apps.core.exceptions import UnreadableWorkbook
from apps.imports.errors import ErrorType, ImportErrorRecord
from apps.imports.mapping import apply_configuration
from apps.imports.models import DataType
from apps.imports.parsers import cell_text, month_text, open_worksheet, parse_number, read_rows
from apps.payroll.fields import NUMERIC_FIELDS

MergeKey = Tuple[str, str]


@dataclass(frozen=True)
class ColumnSpec:
    """Plain copy of an ImportColumnMapping row."""
    excel_column_name: str
    database_field: str
    data_type: str = DataType.TEXT
    is_required: bool = False
    default_value: str = ''
    display_order: int = 0

    @classmethod
    def from_model(cls, mapping) -> 'ColumnSpec':
        return cls(
            excel_column_name=mapping.excel_column_name,
            database_field=mapping.database_field,
            data_type=mapping.data_type,
            is_required=mapping.is_required,
            default_value=mapping.default_value,
            display_order=mapping.display_order,
        )


@dataclass
class FileRows:
    """
    Rows of one file keyed by (employee_id, salary_month).

    Rows that cannot be keyed, or repeat a key already seen, land in
    errors instead of rows.
    """
    filename: str
    rows: Dict[MergeKey, Dict[str, Any]] = field(default_factory=dict)
    row_numbers: Dict[MergeKey, int] = field(default_factory=dict)
    originals: Dict[MergeKey, Dict[str, Any]] = field(default_factory=dict)
    headers: List[str] = field(default_factory=list)
    errors: List[ImportErrorRecord] = field(default_factory=list)
    rows_read: int = 0

    @property
    def skipped_rows(self) -> int:
        return len(self.errors)


@dataclass
class DualFileResult:
    file1_processed: int = 0
    file2_processed: int = 0
    matched_records: int = 0
    unmatched_records: int = 0
    skipped_rows: int = 0
    merged: Dict[MergeKey, Dict[str, Any]] = field(default_factory=dict)
    headers: List[str] = field(default_factory=list)
    row_errors: List[ImportErrorRecord] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    summary: Dict[str, int] = field(default_factory=lambda: {
        'file1_only': 0, 'file2_only': 0, 'both_files': 0, 'validation_errors': 0,
    })

    @property
    def total_employees(self) -> int:
        return len(self.merged)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_employees': self.total_employees,
            'file1_processed': self.file1_processed,
            'file2_processed': self.file2_processed,
            'matched_records': self.matched_records,
            'unmatched_records': self.unmatched_records,
            'skipped_rows': self.skipped_rows,
            'errors': self.errors,
            'warnings': self.warnings,
            'summary': self.summary,
        }


def process_value(value: Any, spec: ColumnSpec, numeric_default: bool = True) -> Any:
    """
    Coerce a cell according to the column's data type.

    Payroll amount fields are numeric whatever type the column profile
    declares.
    """
    is_number = spec.data_type == DataType.NUMBER or spec.database_field in NUMERIC_FIELDS
    if value is None or (isinstance(value, str) and not value.strip()):
        if spec.default_value:
            return parse_number(spec.default_value) if is_number else spec.default_value
        return 0 if is_number and numeric_default else ''

    if is_number:
        return parse_number(value)
    if spec.data_type == DataType.DATE:
        if isinstance(value, (datetime, date)):
            return value.strftime('%Y-%m-%d')
        try:
            return datetime.fromisoformat(cell_text(value)).strftime('%Y-%m-%d')
        except ValueError:
            return None
    if spec.database_field == 'salary_month':
        return month_text(value)
    return cell_text(value)


def parse_mapped_file(
    buffer: bytes,
    filename: str,
    specs: List[ColumnSpec],
    default_salary_month: Optional[str] = None
) -> FileRows:
    """
    Read a file through its column profile.

    Rows without an employee code, or without a salary month when no
    default_salary_month is given, are reported as validation errors.
    A row repeating an earlier (employee_id, salary_month) is reported
    as a duplicate; the first row is kept.

    Raises:
        UnreadableWorkbook: Unreadable file or no data rows.
    """
    rows = read_rows(open_worksheet(buffer))
    if len(rows) < 2:
        raise UnreadableWorkbook(f"File {filename} không có dữ liệu hoặc thiếu header")

    ordered = sorted(specs, key=lambda s: s.display_order)
    headers = [cell_text(h) for h in rows[0]]
    columns = apply_configuration(headers, [(s.excel_column_name, s.database_field) for s in ordered])
    spec_by_field = {s.database_field: s for s in ordered}

    result = FileRows(filename=filename, headers=[h for h in headers if h])
    for offset, row in enumerate(rows[1:]):
        if all(cell_text(v) == '' for v in row):
            continue
        result.rows_read += 1
        row_number = offset + 2
        original = {h: (row[i] if i < len(row) else None) for i, h in enumerate(headers) if h}
        data: Dict[str, Any] = {}
        for idx, field_name in columns.items():
            spec = spec_by_field[field_name]
            value = row[idx] if idx < len(row) else None
            data[field_name] = process_value(value, spec)
        for spec in ordered:
            if spec.database_field not in data:
                data[spec.database_field] = process_value(None, spec)

        employee_id = str(data.get('employee_id') or '').strip()
        salary_month = str(data.get('salary_month') or default_salary_month or '').strip()
        data['salary_month'] = salary_month
        if not employee_id or not salary_month:
            missing = 'employee_id' if not employee_id else 'salary_month'
            result.errors.append(ImportErrorRecord(
                row=row_number,
                error=f"{filename}: thiếu Mã NV" if missing == 'employee_id' else f"{filename}: thiếu Tháng Lương",
                error_type=ErrorType.VALIDATION,
                employee_id=employee_id or None,
                salary_month=salary_month or None,
                field=missing,
                original_data=original
            ))
            continue
        key = (employee_id, salary_month)
        if key in result.rows:
            result.errors.append(ImportErrorRecord(
                row=row_number,
                error=f"{filename}: trùng dữ liệu với dòng {result.row_numbers[key]}",
                error_type=ErrorType.DUPLICATE,
                employee_id=employee_id,
                salary_month=salary_month,
                original_data=original
            ))
            continue
        result.rows[key] = data
        result.row_numbers[key] = row_number
        result.originals[key] = original
    return result


class DualFileImportParser:
    """
    Join two independently mapped payroll files.

    Every key seen in either file is reported: keys in both files are
    matched, keys in only one file are unmatched and produce a warning.
    With a single file there is nothing to match against, so its keys
    count as neither.
    """

    def __init__(self, file1_specs: List[ColumnSpec], file2_specs: List[ColumnSpec]) -> None:
        self.file1_specs = sorted(file1_specs, key=lambda s: s.display_order)
        self.file2_specs = sorted(file2_specs, key=lambda s: s.display_order)

    def parse(
        self,
        file1: Optional[bytes],
        file1_name: Optional[str],
        file2: Optional[bytes],
        file2_name: Optional[str],
        salary_month: Optional[str] = None
    ) -> DualFileResult:
        rows1 = (parse_mapped_file(file1, file1_name or 'file1.xlsx', self.file1_specs, salary_month)
                 if file1 else None)
        rows2 = (parse_mapped_file(file2, file2_name or 'file2.xlsx', self.file2_specs, salary_month)
                 if file2 else None)
        return self.merge(rows1, rows2)

    def merge(self, rows1: Optional[FileRows], rows2: Optional[FileRows]) -> DualFileResult:
        result = DualFileResult()
        data1 = rows1.rows if rows1 else {}
        data2 = rows2.rows if rows2 else {}
        both = rows1 is not None and rows2 is not None
        for rows in (rows1, rows2):
            if rows is None:
                continue
            result.row_errors.extend(rows.errors)
            result.skipped_rows += rows.skipped_rows
            result.headers.extend(h for h in rows.headers if h not in result.headers)
        result.file1_processed = rows1.rows_read if rows1 else 0
        result.file2_processed = rows2.rows_read if rows2 else 0

        keys = list(data1.keys()) + [k for k in data2.keys() if k not in data1]
        for key in keys:
            employee_id, salary_month = key
            in1 = key in data1
            in2 = key in data2
            record: Dict[str, Any] = {
                'employee_id': employee_id,
                'salary_month': salary_month,
                'file1_data': data1.get(key),
                'file2_data': data2.get(key),
                'source_files': {},
                'row': (rows1.row_numbers.get(key) if in1 else rows2.row_numbers.get(key)),
                'original': {
                    **(rows1.originals.get(key, {}) if in1 else {}),
                    **(rows2.originals.get(key, {}) if in2 else {}),
                },
            }
            if in1:
                record['source_files']['file1'] = rows1.filename
            if in2:
                record['source_files']['file2'] = rows2.filename
            result.merged[key] = record

            if in1 and in2:
                result.matched_records += 1
                result.summary['both_files'] += 1
            elif both:
                result.unmatched_records += 1
                if in1:
                    result.summary['file1_only'] += 1
                    message = "Chỉ có dữ liệu từ File 1, thiếu dữ liệu File 2"
                else:
                    result.summary['file2_only'] += 1
                    message = "Chỉ có dữ liệu từ File 2, thiếu dữ liệu File 1"
                result.warnings.append({
                    'employee_id': employee_id,
                    'salary_month': salary_month,
                    'message': message,
                })

            for file_type, specs, data in (('file1', self.file1_specs, data1.get(key)),
                                           ('file2', self.file2_specs, data2.get(key))):
                if data is None:
                    continue
                for spec in specs:
                    if not spec.is_required:
                        continue
                    value = data.get(spec.database_field)
                    if value is None or str(value).strip() == '':
                        result.errors.append({
                            'employee_id': employee_id,
                            'salary_month': salary_month,
                            'file_type': file_type,
                            'error': f"Thiếu trường bắt buộc: {spec.excel_column_name}",
                        })
                        result.summary['validation_errors'] += 1
        return result


def convert_to_payroll_records(result: DualFileResult, matched_only: bool) -> List[Dict[str, Any]]:
    """
    Flatten merged rows into payroll dicts.

    File 2 values override File 1 values for the same field, and
    source_file lists both filenames joined by ' + '.

    Args:
        result: Output of DualFileImportParser.
        matched_only: Keep only keys present in both files.
    """
    records = []
    for (employee_id, salary_month), merged in result.merged.items():
        file1_data = merged['file1_data']
        file2_data = merged['file2_data']
        if matched_only and (file1_data is None or file2_data is None):
            continue
        record: Dict[str, Any] = {}
        if file1_data:
            record.update(file1_data)
        if file2_data:
            record.update(file2_data)
        record['employee_id'] = employee_id
        record['salary_month'] = salary_month
        record['source_file'] = ' + '.join(
            name for name in (merged['source_files'].get('file1'), merged['source_files'].get('file2')) if name
        )
        record['_row'] = merged['row']
        record['_original'] = merged['original']
        records.append(record)
    return records
