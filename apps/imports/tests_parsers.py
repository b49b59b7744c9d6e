"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Tests for the payroll, employee and attendance sheet parsers.
-------------------------------------------------------------------------
"""
from datetime import date, time
from io import BytesIO

from django.test import SimpleTestCase
from openpyxl import Workbook

from apps.core.exceptions import UnreadableWorkbook
from apps.imports.errors import ErrorType
from apps.imports.parsers import (
    parse_attendance_workbook, parse_employee_workbook, parse_number,
    parse_payroll_workbook, parse_period, parse_time_value,
)


def build_workbook(rows):
    """Serialize rows into an in-memory xlsx."""
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


PAYROLL_HEADER = ['Mã Nhân Viên', 'Tháng Lương', 'Tổng Cộng Tiền Lương', 'Tiền Lương Thực Nhận Cuối Kỳ']


class CellParsingTests(SimpleTestCase):

    def test_parse_number_separators(self):
        self.assertEqual(parse_number('1.234,5'), 1234.5)
        self.assertEqual(parse_number('1,234.5'), 1234.5)
        self.assertEqual(parse_number('2,5'), 2.5)
        self.assertEqual(parse_number(''), 0.0)
        self.assertEqual(parse_number('abc'), 0.0)
        self.assertEqual(parse_number(7), 7.0)

    def test_parse_number_thousands_grouping(self):
        self.assertEqual(parse_number('8.200.000'), 8200000.0)
        self.assertEqual(parse_number('5,000,000'), 5000000.0)
        self.assertEqual(parse_number('1.234.567,5'), 1234567.5)
        self.assertEqual(parse_number('1,234,567.5'), 1234567.5)

    def test_parse_number_overflow_is_zero(self):
        self.assertEqual(parse_number('1e999'), 0.0)
        self.assertEqual(parse_number(float('inf')), 0.0)
        self.assertEqual(parse_number(float('nan')), 0.0)
        self.assertEqual(parse_number('1e3'), 1000.0)

    def test_parse_time_value(self):
        self.assertEqual(parse_time_value('7:30'), time(7, 30))
        self.assertEqual(parse_time_value(0.5), time(12, 0))
        self.assertIsNone(parse_time_value('-'))
        self.assertIsNone(parse_time_value('25:00'))

    def test_parse_period(self):
        self.assertEqual(parse_period('05-2025'), (2025, 5))
        self.assertEqual(parse_period('2025/05'), (2025, 5))
        self.assertEqual(parse_period(date(2025, 5, 1)), (2025, 5))
        self.assertIsNone(parse_period('May'))


class PayrollParserTests(SimpleTestCase):
    """Tests for parse_payroll_workbook"""

    def test_valid_rows(self):
        buffer = build_workbook([
            PAYROLL_HEADER,
            ['NV001', '2025-05', 8200000, '7.179.200'],
            ['NV002', '2025-05', 9000000, 8000000],
        ])
        result = parse_payroll_workbook(buffer, 'luong.xlsx')

        self.assertEqual(result.total_rows, 2)
        self.assertEqual(len(result.records), 2)
        self.assertEqual(len(result.errors), 0)
        first = result.records[0]
        self.assertEqual(first['_row'], 2)
        self.assertEqual(first['employee_id'], 'NV001')
        self.assertEqual(first['tien_luong_thuc_nhan_cuoi_ky'], 7179200.0)
        self.assertEqual(first['source_file'], 'luong.xlsx')

    def test_invalid_month_and_duplicates_are_rejected(self):
        buffer = build_workbook([
            PAYROLL_HEADER,
            ['NV001', '2025-05', 1, 1],
            ['NV002', '2025-5', 1, 1],
            ['NV001', '2025-05', 2, 2],
            [None, '2025-05', 1, 1],
        ])
        result = parse_payroll_workbook(buffer)

        self.assertEqual(len(result.records), 1)
        by_row = {e.row: e for e in result.errors.errors}
        self.assertEqual(by_row[3].error_type, ErrorType.VALIDATION)
        self.assertEqual(by_row[4].error_type, ErrorType.DUPLICATE)
        self.assertIn('dòng 2', by_row[4].error)
        self.assertEqual(by_row[5].error, "Thiếu Mã NV")
        self.assertEqual(by_row[3].original_data['Mã Nhân Viên'], 'NV002')

    def test_t13_mode(self):
        buffer = build_workbook([PAYROLL_HEADER, ['NV001', '2025-13', 1, 1], ['NV002', '2025-05', 1, 1]])
        result = parse_payroll_workbook(buffer, is_t13=True)
        self.assertEqual([r['employee_id'] for r in result.records], ['NV001'])
        self.assertIn('YYYY-13', result.errors.errors[0].error)

    def test_blank_rows_are_ignored(self):
        buffer = build_workbook([PAYROLL_HEADER, [None, None, None, None], ['NV001', '2025-05', 1, 1]])
        result = parse_payroll_workbook(buffer)
        self.assertEqual(result.total_rows, 1)
        self.assertEqual(result.records[0]['_row'], 3)

    def test_missing_key_columns(self):
        buffer = build_workbook([['Tổng Cộng Tiền Lương'], [1]])
        with self.assertRaises(UnreadableWorkbook):
            parse_payroll_workbook(buffer)

    def test_not_a_workbook(self):
        with self.assertRaises(UnreadableWorkbook):
            parse_payroll_workbook(b'not an excel file')


class EmployeeParserTests(SimpleTestCase):
    """Tests for parse_employee_workbook"""

    header = ['Mã nhân viên', 'Họ tên', 'CCCD', 'Phòng ban', 'Chức vụ', 'Số điện thoại']

    def test_valid_rows_and_role_aliases(self):
        buffer = build_workbook([
            self.header,
            ['NV001', 'Nguyễn Văn A', '001234567890', 'May 1', 'Tổ trưởng', '0901234567'],
            ['NV002', 'Trần Thị B', '001234567891', 'May 1', None, None],
            ['=== Hướng dẫn ===', None, None, None, None, None],
        ])
        result = parse_employee_workbook(buffer)

        self.assertEqual(len(result.records), 2)
        self.assertEqual(result.records[0]['chuc_vu'], 'to_truong')
        self.assertEqual(result.records[1]['chuc_vu'], 'nhan_vien')
        self.assertTrue(result.records[1]['is_active'])

    def test_row_errors(self):
        buffer = build_workbook([
            self.header,
            ['NV001', 'A', '1', 'May 1', 'nhan_vien', None],
            ['NV001', 'B', '2', 'May 1', 'nhan_vien', None],
            ['NV003', None, '3', 'May 1', 'nhan_vien', None],
            ['NV004', 'D', '4', 'May 1', 'admin', None],
            ['NV005', 'E', '5', 'May 1', 'nhan_vien', 'abc'],
        ])
        result = parse_employee_workbook(buffer)

        self.assertEqual(len(result.records), 1)
        by_row = {e.row: e for e in result.errors.errors}
        self.assertEqual(by_row[3].error_type, ErrorType.DUPLICATE)
        self.assertEqual(by_row[4].error, "Thiếu họ tên")
        self.assertIn('Chức vụ không hợp lệ', by_row[5].error)
        self.assertEqual(by_row[6].error_type, ErrorType.FORMAT)

    def test_missing_required_columns(self):
        buffer = build_workbook([['Mã nhân viên', 'Họ tên'], ['NV001', 'A']])
        with self.assertRaises(UnreadableWorkbook):
            parse_employee_workbook(buffer)


class AttendanceParserTests(SimpleTestCase):
    """Tests for parse_attendance_workbook"""

    header = ['Mã NV', 'Họ tên', 'Tháng', '1', None, '2', None, 'Tổng giờ công', 'Tổng ngày công']

    def test_row_pairs(self):
        buffer = build_workbook([
            self.header,
            ['NV001', 'Nguyễn Văn A', '05-2025', '07:30', '17:00', None, None, 176, 22],
            [None, None, None, 1, 2, 0, 0, None, None],
        ])
        result = parse_attendance_workbook(buffer, 'chamcong.xlsx')

        self.assertEqual(len(result.records), 1)
        record = result.records[0]
        self.assertEqual(record['employee_id'], 'NV001')
        self.assertEqual((record['period_year'], record['period_month']), (2025, 5))
        self.assertEqual(len(record['daily']), 1)
        day = record['daily'][0]
        self.assertEqual(day['work_date'], date(2025, 5, 1))
        self.assertEqual(day['check_in_time'], time(7, 30))
        self.assertEqual(day['check_out_time'], time(17, 0))
        self.assertEqual(day['working_units'], 1.0)
        self.assertEqual(day['overtime_units'], 2.0)
        self.assertEqual(record['summary']['total_hours'], 176.0)
        self.assertEqual(record['summary']['total_days'], 22.0)

    def test_invalid_month(self):
        buffer = build_workbook([
            self.header,
            ['NV001', 'A', '13-2025', '07:30', '17:00', None, None, 0, 0],
            [None, None, None, 1, 0, 0, 0, None, None],
        ])
        result = parse_attendance_workbook(buffer)
        self.assertEqual(len(result.records), 0)
        self.assertEqual(result.errors.errors[0].error, "Tháng phải từ 1-12: 13")

    def test_unrecognized_header(self):
        buffer = build_workbook([['A', 'B'], [1, 2]])
        with self.assertRaises(UnreadableWorkbook):
            parse_attendance_workbook(buffer)
