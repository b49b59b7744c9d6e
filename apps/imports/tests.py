"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Unit tests for the import error collector.
-------------------------------------------------------------------------
"""
from django.test import SimpleTestCase

from apps.imports.errors import (
    ErrorType, ImportErrorCollector, ImportErrorRecord, create_error_report_data,
    validate_employee_exists, validate_employee_id, validate_salary_month,
)


class ValidateSalaryMonthTests(SimpleTestCase):
    """Tests for salary month validation in both payroll modes."""

    def test_valid_monthly_month(self):
        self.assertIsNone(validate_salary_month('2024-01', 2, current_year=2025))
        self.assertIsNone(validate_salary_month('2026-12', 2, current_year=2025))

    def test_month_thirteen_is_invalid_for_monthly_payroll(self):
        error = validate_salary_month('2024-13', 2, current_year=2025)
        self.assertEqual(error.error_type, ErrorType.VALIDATION)
        self.assertIn('Tháng phải từ 01 đến 12', error.error)

    def test_month_thirteen_is_valid_for_t13(self):
        self.assertIsNone(validate_salary_month('2024-13', 2, is_t13=True, current_year=2025))
        self.assertIsNotNone(validate_salary_month('2024-12', 2, is_t13=True, current_year=2025))

    def test_malformed_months(self):
        for value in ('24-01', '2024-1', 'abcd-ef', '2024/01'):
            error = validate_salary_month(value, 5, employee_id='NV001', current_year=2025)
            self.assertIsNotNone(error, value)
            self.assertEqual(error.row, 5)
            self.assertEqual(error.employee_id, 'NV001')
            self.assertEqual(error.field, 'salary_month')

    def test_missing_month(self):
        self.assertEqual(validate_salary_month(None, 2).error, "Thiếu Tháng")
        self.assertEqual(validate_salary_month('  ', 2).error, "Thiếu Tháng")

    def test_year_range(self):
        self.assertIsNotNone(validate_salary_month('2019-12', 2, current_year=2025))
        self.assertIsNotNone(validate_salary_month('2027-01', 2, current_year=2025))
        self.assertIsNone(validate_salary_month('2020-01', 2, current_year=2025))


class ValidateEmployeeTests(SimpleTestCase):

    def test_employee_id(self):
        self.assertEqual(validate_employee_id(None, 3).error, "Thiếu Mã NV")
        self.assertEqual(validate_employee_id('   ', 3).error, "Mã NV rỗng")
        self.assertIsNone(validate_employee_id('NV001', 3))

    def test_employee_exists(self):
        self.assertIsNone(validate_employee_exists('NV001', {'NV001'}, 2))
        error = validate_employee_exists('NV404', {'NV001'}, 2, salary_month='2025-05')
        self.assertEqual(error.error_type, ErrorType.EMPLOYEE_NOT_FOUND)
        self.assertEqual(error.error, 'Mã NV không tồn tại: "NV404"')


class ImportErrorCollectorTests(SimpleTestCase):
    """Tests for error accumulation across validation passes."""

    def test_first_error_per_row_wins(self):
        collector = ImportErrorCollector()
        known = {'NV001'}
        rows = [
            {'row': 2, 'employee_id': 'NV404', 'salary_month': '2024-13'},
            {'row': 3, 'employee_id': 'NV404', 'salary_month': '2024-05'},
            {'row': 4, 'employee_id': 'NV001', 'salary_month': '2024-05'},
        ]
        structurally_valid = [
            r for r in rows
            if not collector.add(validate_salary_month(r['salary_month'], r['row'], r['employee_id'], current_year=2025))
        ]
        for r in structurally_valid:
            collector.add(validate_employee_exists(r['employee_id'], known, r['row']))

        by_row = {e.row: e for e in collector.errors}
        self.assertEqual(by_row[2].error_type, ErrorType.VALIDATION)
        self.assertEqual(by_row[3].error_type, ErrorType.EMPLOYEE_NOT_FOUND)
        self.assertNotIn(4, by_row)
        self.assertEqual(collector.rejected_count, 2)
        self.assertEqual(collector.counts_by_type(), {'validation': 1, 'employee_not_found': 1})

    def test_add_none_is_noop(self):
        collector = ImportErrorCollector()
        self.assertFalse(collector.add(None))
        self.assertEqual(len(collector), 0)

    def test_as_dicts_is_sorted_and_capped(self):
        collector = ImportErrorCollector()
        for row in (9, 3, 5):
            collector.add(ImportErrorRecord(row=row, error='x', error_type=ErrorType.VALIDATION))
        self.assertEqual([e['row'] for e in collector.as_dicts()], [3, 5, 9])
        self.assertEqual(len(collector.as_dicts(limit=2)), 2)
        self.assertEqual(collector.as_dicts()[0]['errorType'], 'validation')


class ErrorReportTests(SimpleTestCase):

    def test_report_keeps_original_columns(self):
        error = ImportErrorRecord(
            row=4, error='Mã NV không tồn tại: "NV404"', error_type=ErrorType.EMPLOYEE_NOT_FOUND,
            employee_id='NV404', salary_month='2025-05',
            original_data={'Mã Nhân Viên': 'NV404', 'Tháng Lương': '2025-05', 'Bổ Sung Lương': 150000},
        )
        rows = create_error_report_data([error], ['Mã Nhân Viên', 'Tháng Lương', 'Bổ Sung Lương'])
        self.assertEqual(rows[0]['Dòng'], 4)
        self.assertEqual(rows[0]['Loại Lỗi'], 'Không tìm thấy NV')
        self.assertEqual(rows[0]['Bổ Sung Lương'], 150000)

    def test_missing_values_render_as_na(self):
        error = ImportErrorRecord(row=2, error='Thiếu Mã NV', error_type=ErrorType.VALIDATION)
        row = create_error_report_data([error], [])[0]
        self.assertEqual(row['Mã NV'], 'N/A')
        self.assertEqual(row['Tháng'], 'N/A')

    def test_round_trip_from_client_payload(self):
        record = ImportErrorRecord.from_dict({'row': '7', 'error': 'x', 'errorType': 'duplicate'})
        self.assertEqual(record.row, 7)
        self.assertEqual(record.error_type, ErrorType.DUPLICATE)
