"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Import pipelines for payroll, attendance, employee and
             dual-file uploads. Valid rows are written in chunks, each
             chunk committed on its own so a failing chunk leaves the
             earlier ones in place.
-------------------------------------------------------------------------
"""
import os
import time
import uuid
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError as FieldValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.core.exceptions import InvalidUploadFile, NotFoundError, ValidationError
from apps.attendance.models import AttendanceDaily, AttendanceMonthly
from apps.employees.models import Employee
from apps.imports.dual_file import ColumnSpec, DualFileImportParser, convert_to_payroll_records
from apps.imports.errors import (
    ErrorType, ImportErrorCollector, ImportErrorRecord,
    validate_employee_exists, validate_employee_id, validate_salary_month,
)
from apps.imports.logging import ImportLogger
from apps.imports.models import BatchStatus, FileType, ImportBatch, ImportFileConfig, ImportType
from apps.imports.parsers import (
    parse_attendance_workbook, parse_employee_workbook, parse_number, parse_payroll_workbook,
)
from apps.payroll.fields import NUMERIC_FIELDS
from apps.payroll.models import PayrollRecord, payroll_type_for_month

ALLOWED_EXTENSIONS = ('.xlsx', '.xls')


def validate_upload(uploaded_file) -> bytes:
    """
    Check an uploaded Excel file and return its content.

    Raises:
        InvalidUploadFile: Missing file, wrong extension or too large.
    """
    if uploaded_file is None:
        raise InvalidUploadFile("Không có file được tải lên")
    name = uploaded_file.name or ''
    if os.path.splitext(name.lower())[1] not in ALLOWED_EXTENSIONS:
        ImportLogger.log_rejected_upload(name, 'extension')
        raise InvalidUploadFile("Chỉ chấp nhận file Excel (.xlsx, .xls)")
    max_size = settings.IMPORT_MAX_FILE_SIZE
    if uploaded_file.size > max_size:
        ImportLogger.log_rejected_upload(name, 'size')
        raise InvalidUploadFile(f"File quá lớn. Kích thước tối đa {max_size // (1024 * 1024)}MB")
    return uploaded_file.read()


def new_batch_id(prefix: str) -> str:
    return f"{prefix}_{timezone.now().strftime('%Y%m%d%H%M%S')}_{uuid.uuid4().hex[:8]}"


def _chunks(items: List[Any], size: int) -> Iterable[Tuple[int, List[Any]]]:
    for index, start in enumerate(range(0, len(items), size)):
        yield index, items[start:start + size]


def _decimal(value: Any) -> Decimal:
    """Cell value as a Decimal; text goes through parse_number."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(parse_number(value)))


def _failure_type(error: Exception) -> str:
    return ErrorType.DATABASE if isinstance(error, DatabaseError) else ErrorType.FORMAT


class ImportService:
    """
    Service running an upload through parse, validate and persist.

    Attributes:
        imported_by: Employee code of the admin running the import.
        batch_size: Rows written per transaction.
        max_reported_errors: Cap on errors returned to the client.
    """

    def __init__(
        self,
        imported_by: str = '',
        batch_size: Optional[int] = None,
        max_reported_errors: Optional[int] = None
    ) -> None:
        self.imported_by = imported_by
        self.batch_size = batch_size or settings.IMPORT_BATCH_SIZE
        self.max_reported_errors = max_reported_errors or settings.IMPORT_MAX_REPORTED_ERRORS

    # =================================================================
    # PAYROLL
    # =================================================================

    def import_payroll(self, buffer: bytes, filename: str, is_t13: bool = False) -> Dict[str, Any]:
        """
        Import a standard payroll sheet.

        Returns:
            Response dict with totalRecords, insertedMonthly,
            skippedRecords, overwriteCount, errors and importBatchId.
        """
        started = time.monotonic()
        batch_id = new_batch_id('PAYROLL')
        ImportLogger.log_import_started(ImportType.PAYROLL, batch_id, filename, self.imported_by)

        parsed = parse_payroll_workbook(buffer, filename, is_t13=is_t13)
        result = self._import_payroll_records(
            parsed.records, parsed.errors, parsed.total_rows,
            filename, ImportType.PAYROLL, batch_id, started
        )
        result['headers'] = parsed.headers
        return result

    def _import_payroll_records(
        self,
        records: List[Dict[str, Any]],
        collector: ImportErrorCollector,
        total_rows: int,
        source: str,
        import_type: str,
        batch_id: str,
        started: float
    ) -> Dict[str, Any]:
        known_ids = self._known_employee_ids(r['employee_id'] for r in records)
        valid = []
        for record in records:
            if collector.add(validate_employee_exists(
                record['employee_id'], known_ids, record['_row'],
                record['salary_month'], record.get('_original')
            )):
                continue
            try:
                record['_values'] = {f: _decimal(record[f]) for f in NUMERIC_FIELDS if f in record}
            except (ArithmeticError, ValueError):
                collector.add(ImportErrorRecord(
                    row=record['_row'],
                    error="Giá trị số tiền không hợp lệ",
                    error_type=ErrorType.FORMAT,
                    employee_id=record['employee_id'],
                    salary_month=record['salary_month'],
                    original_data=record.get('_original')
                ))
                continue
            valid.append(record)

        created, overwritten = self._persist_payroll(valid, collector, batch_id)
        written = created + overwritten
        elapsed_ms = int((time.monotonic() - started) * 1000)

        self._record_batch(
            batch_id, import_type, source, total_rows, written, overwritten, collector, elapsed_ms
        )
        return {
            'success': written > 0,
            'totalRecords': total_rows,
            'insertedMonthly': written,
            'insertedDaily': 0,
            'overwriteCount': overwritten,
            'skippedRecords': collector.rejected_count,
            'errors': collector.as_dicts(self.max_reported_errors),
            'totalErrors': len(collector),
            'errorSummary': collector.counts_by_type(),
            'importBatchId': batch_id,
            'processingTime': elapsed_ms,
        }

    def _persist_payroll(
        self,
        records: List[Dict[str, Any]],
        collector: ImportErrorCollector,
        batch_id: str
    ) -> Tuple[int, int]:
        created = overwritten = 0
        for index, chunk in _chunks(records, self.batch_size):
            try:
                with transaction.atomic():
                    chunk_created, chunk_overwritten, signed = self._write_payroll_chunk(chunk, batch_id)
            except (DatabaseError, FieldValidationError) as e:
                ImportLogger.log_batch_failed(batch_id, index, len(chunk), e)
                for record in chunk:
                    collector.add(ImportErrorRecord(
                        row=record['_row'],
                        error="Lỗi lưu dữ liệu vào database",
                        error_type=_failure_type(e),
                        employee_id=record['employee_id'],
                        salary_month=record['salary_month'],
                        original_data=record.get('_original')
                    ))
                continue

            created += chunk_created
            overwritten += chunk_overwritten
            for record in signed:
                ImportLogger.log_signed_record_skipped(batch_id, record['employee_id'], record['salary_month'])
                collector.add(ImportErrorRecord(
                    row=record['_row'],
                    error="Bảng lương đã được ký, không thể ghi đè",
                    error_type=ErrorType.DUPLICATE,
                    employee_id=record['employee_id'],
                    salary_month=record['salary_month'],
                    original_data=record.get('_original')
                ))
        return created, overwritten

    def _write_payroll_chunk(self, chunk: List[Dict[str, Any]], batch_id: str):
        """
        Upsert one chunk. Signed rows are never modified.

        Returns:
            (created, overwritten, signed_records)
        """
        created = overwritten = 0
        signed = []
        now = timezone.now()
        for record in chunk:
            employee_id = record['employee_id']
            salary_month = record['salary_month']
            payroll_type = payroll_type_for_month(salary_month)
            values = dict(record['_values'])
            values['source_file'] = record.get('source_file', '')[:500]
            values['import_batch_id'] = batch_id

            existing = PayrollRecord.objects.filter(
                employee_id=employee_id,
                salary_month=salary_month,
                payroll_type=payroll_type
            )
            if existing.filter(is_signed=False).update(updated_at=now, **values):
                overwritten += 1
            elif existing.exists():
                signed.append(record)
            else:
                PayrollRecord.objects.create(
                    employee_id=employee_id,
                    salary_month=salary_month,
                    payroll_type=payroll_type,
                    **values
                )
                created += 1
        return created, overwritten, signed

    # =================================================================
    # DUAL FILE
    # =================================================================

    def import_dual_files(
        self,
        file1: Optional[bytes],
        file1_name: Optional[str],
        file2: Optional[bytes],
        file2_name: Optional[str],
        file1_config_id: Optional[int] = None,
        file2_config_id: Optional[int] = None,
        salary_month: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Import payroll split across two files.

        With both files only keys present in both are imported; keys in
        one file are reported as warnings. With one file its rows are
        imported directly. salary_month fills rows whose month cell is
        blank.
        """
        if not file1 and not file2:
            raise ValidationError("Cần tải lên ít nhất một file")

        started = time.monotonic()
        batch_id = new_batch_id('DUAL')
        source = ' + '.join(n for n in (file1_name, file2_name) if n)
        ImportLogger.log_import_started(ImportType.DUAL_FILE, batch_id, source, self.imported_by)

        specs1 = self._column_specs(file1_config_id, FileType.FILE1) if file1 else []
        specs2 = self._column_specs(file2_config_id, FileType.FILE2) if file2 else []
        parser = DualFileImportParser(specs1, specs2)
        merged = parser.parse(file1, file1_name, file2, file2_name, salary_month=salary_month or None)

        records = convert_to_payroll_records(merged, matched_only=bool(file1 and file2))
        collector = ImportErrorCollector()
        for error in merged.row_errors:
            collector.add(error)
        structurally_valid = []
        for record in records:
            row = record['_row']
            original = record.get('_original')
            if collector.add(validate_employee_id(record['employee_id'], row, original)):
                continue
            month = record['salary_month']
            if collector.add(validate_salary_month(
                month, row, record['employee_id'], original, is_t13=month.endswith('-13')
            )):
                continue
            structurally_valid.append(record)

        result = self._import_payroll_records(
            structurally_valid, collector, len(records) + len(merged.row_errors),
            source, ImportType.DUAL_FILE, batch_id, started
        )
        dual = merged.to_dict()
        dual['fieldErrors'] = dual.pop('errors')
        return {
            **dual,
            **result,
            'headers': merged.headers,
            'success': result['success'] and not merged.errors,
        }

    def _column_specs(self, config_id: Optional[int], file_type: str) -> List[ColumnSpec]:
        qs = ImportFileConfig.objects.filter(file_type=file_type, is_active=True)
        config = qs.filter(pk=config_id).first() if config_id else qs.order_by('config_name').first()
        if config is None:
            raise NotFoundError(f"Không tìm thấy cấu hình import cho {file_type}")
        specs = [ColumnSpec.from_model(m) for m in config.mappings.all()]
        if not specs:
            raise ValidationError(f"Cấu hình {config.config_name} chưa có ánh xạ cột")
        return specs

    # =================================================================
    # ATTENDANCE
    # =================================================================

    def import_attendance(self, buffer: bytes, filename: str) -> Dict[str, Any]:
        """
        Import a monthly attendance sheet.

        Daily rows are replaced on (employee, work_date) and monthly
        totals on (employee, period_year, period_month).
        """
        started = time.monotonic()
        batch_id = new_batch_id('ATTENDANCE')
        ImportLogger.log_import_started(ImportType.ATTENDANCE, batch_id, filename, self.imported_by)

        parsed = parse_attendance_workbook(buffer, filename)
        collector = parsed.errors
        known_ids = self._known_employee_ids(r['employee_id'] for r in parsed.records)
        invalid_employees: List[str] = []
        valid = []
        for record in parsed.records:
            if collector.add(validate_employee_exists(record['employee_id'], known_ids, record['_row'])):
                if record['employee_id'] not in invalid_employees:
                    invalid_employees.append(record['employee_id'])
                continue
            valid.append(record)

        inserted_daily = inserted_monthly = 0
        for index, chunk in _chunks(valid, self.batch_size):
            try:
                with transaction.atomic():
                    daily, monthly = self._write_attendance_chunk(chunk, batch_id)
            except (DatabaseError, FieldValidationError) as e:
                ImportLogger.log_batch_failed(batch_id, index, len(chunk), e)
                for record in chunk:
                    collector.add(ImportErrorRecord(
                        row=record['_row'],
                        error="Lỗi lưu dữ liệu chấm công vào database",
                        error_type=_failure_type(e),
                        employee_id=record['employee_id']
                    ))
                continue
            inserted_daily += daily
            inserted_monthly += monthly

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self._record_batch(
            batch_id, ImportType.ATTENDANCE, filename, parsed.total_rows,
            inserted_monthly, 0, collector, elapsed_ms
        )
        return {
            'success': inserted_monthly > 0,
            'totalRecords': parsed.total_rows,
            'insertedDaily': inserted_daily,
            'insertedMonthly': inserted_monthly,
            'skippedRecords': collector.rejected_count,
            'errors': collector.as_dicts(self.max_reported_errors),
            'invalidEmployees': invalid_employees,
            'headers': parsed.headers,
            'importBatchId': batch_id,
            'processingTime': elapsed_ms,
        }

    def _write_attendance_chunk(self, chunk: List[Dict[str, Any]], batch_id: str) -> Tuple[int, int]:
        daily_count = monthly_count = 0
        for record in chunk:
            employee_id = record['employee_id']
            for day in record['daily']:
                AttendanceDaily.objects.update_or_create(
                    employee_id=employee_id,
                    work_date=day['work_date'],
                    defaults={
                        'period_year': record['period_year'],
                        'period_month': record['period_month'],
                        'check_in_time': day['check_in_time'],
                        'check_out_time': day['check_out_time'],
                        'working_units': _decimal(day['working_units']),
                        'overtime_units': _decimal(day['overtime_units']),
                        'source_file': record['source_file'],
                        'import_batch_id': batch_id,
                    }
                )
                daily_count += 1

            summary = record['summary']
            AttendanceMonthly.objects.update_or_create(
                employee_id=employee_id,
                period_year=record['period_year'],
                period_month=record['period_month'],
                defaults={
                    'total_hours': _decimal(summary['total_hours']),
                    'total_days': _decimal(summary['total_days']),
                    'total_meal_ot_hours': _decimal(summary['total_meal_ot_hours']),
                    'total_ot_hours': _decimal(summary['total_ot_hours']),
                    'sick_days': _decimal(summary['sick_days']),
                    'source_file': record['source_file'],
                    'import_batch_id': batch_id,
                }
            )
            monthly_count += 1
        return daily_count, monthly_count

    # =================================================================
    # EMPLOYEES
    # =================================================================

    def import_employees(self, buffer: bytes, filename: str) -> Dict[str, Any]:
        """
        Create employees from a master sheet.

        Existing employee codes are reported as duplicates and left
        untouched. New employees log in with their CCCD.
        """
        started = time.monotonic()
        batch_id = new_batch_id('EMPLOYEE')
        ImportLogger.log_import_started(ImportType.EMPLOYEE, batch_id, filename, self.imported_by)

        parsed = parse_employee_workbook(buffer, filename)
        collector = parsed.errors
        existing = self._known_employee_ids(r['employee_id'] for r in parsed.records)
        valid = []
        for record in parsed.records:
            if record['employee_id'] in existing:
                collector.add(ImportErrorRecord(
                    row=record['_row'],
                    error=f'Mã nhân viên đã tồn tại: "{record["employee_id"]}"',
                    error_type=ErrorType.DUPLICATE,
                    employee_id=record['employee_id'],
                    field='employee_id',
                    original_data=record.get('_original')
                ))
                continue
            valid.append(record)

        inserted = 0
        for index, chunk in _chunks(valid, self.batch_size):
            try:
                with transaction.atomic():
                    inserted += self._write_employee_chunk(chunk)
            except (DatabaseError, FieldValidationError) as e:
                ImportLogger.log_batch_failed(batch_id, index, len(chunk), e)
                for record in chunk:
                    collector.add(ImportErrorRecord(
                        row=record['_row'],
                        error="Lỗi lưu nhân viên vào database",
                        error_type=_failure_type(e),
                        employee_id=record['employee_id']
                    ))

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self._record_batch(
            batch_id, ImportType.EMPLOYEE, filename, parsed.total_rows, inserted, 0, collector, elapsed_ms
        )
        return {
            'success': inserted > 0,
            'totalRecords': parsed.total_rows,
            'successCount': inserted,
            'skippedRecords': collector.rejected_count,
            'errors': collector.as_dicts(self.max_reported_errors),
            'headers': parsed.headers,
            'importBatchId': batch_id,
            'processingTime': elapsed_ms,
        }

    def _write_employee_chunk(self, chunk: List[Dict[str, Any]]) -> int:
        employees = []
        for record in chunk:
            employee = Employee(
                employee_id=record['employee_id'],
                full_name=record['full_name'],
                department=record['department'],
                chuc_vu=record['chuc_vu'],
                phone_number=record['phone_number'],
                is_active=record['is_active'],
            )
            employee.set_cccd(record['cccd'])
            employees.append(employee)
        Employee.objects.bulk_create(employees)
        return len(employees)

    # =================================================================
    # HELPERS
    # =================================================================

    @staticmethod
    def _known_employee_ids(employee_ids: Iterable[str]) -> Set[str]:
        ids = {e for e in employee_ids if e}
        if not ids:
            return set()
        return set(Employee.objects.filter(employee_id__in=ids).values_list('employee_id', flat=True))

    def _record_batch(
        self,
        batch_id: str,
        import_type: str,
        source: str,
        total: int,
        written: int,
        overwritten: int,
        collector: ImportErrorCollector,
        elapsed_ms: int
    ) -> ImportBatch:
        if written == 0 and len(collector):
            status = BatchStatus.FAILED
        elif len(collector):
            status = BatchStatus.PARTIAL
        else:
            status = BatchStatus.COMPLETED

        summary = {
            'total_records': total,
            'inserted_count': written,
            'overwrite_count': overwritten,
            'skipped_count': collector.rejected_count,
            'error_count': len(collector),
        }
        ImportLogger.log_import_completed(import_type, batch_id, summary)
        return ImportBatch.objects.create(
            batch_id=batch_id,
            import_type=import_type,
            status=status,
            source_file=source[:500],
            processing_time_ms=elapsed_ms,
            imported_by=self.imported_by,
            **summary
        )
