"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Tests for the import pipelines, mapping configuration
             service and import endpoints.
-------------------------------------------------------------------------
"""
import json
from decimal import Decimal
from io import BytesIO

from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import Client, TestCase
from openpyxl import load_workbook

from apps.attendance.models import AttendanceDaily, AttendanceMonthly
from apps.core.exceptions import NotFoundError, ValidationError
from apps.employees.auth import issue_token, principal_for_employee
from apps.employees.models import Employee, Role
from apps.imports.models import (
    BatchStatus, DataType, FileType, ImportBatch, ImportColumnMapping, ImportFileConfig, MappingConfiguration,
)
from apps.imports.services import ImportService
from apps.imports.services_mapping import MappingConfigService
from apps.imports.tests_parsers import PAYROLL_HEADER, build_workbook
from apps.payroll.models import PayrollRecord, PayrollType

XLSX = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def make_employee(employee_id, department='May 1', chuc_vu=Role.NHAN_VIEN, cccd='001200000001', **kwargs):
    employee = Employee(
        employee_id=employee_id,
        full_name=f'Nhân viên {employee_id}',
        department=department,
        chuc_vu=chuc_vu,
        **kwargs
    )
    employee.set_cccd(cccd)
    employee.save()
    return employee


def auth_header(employee):
    return {'HTTP_AUTHORIZATION': f'Bearer {issue_token(principal_for_employee(employee))}'}


class FlakyImportService(ImportService):
    """Fails the write of one chunk."""

    fail_on_call = 2

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    def _write_payroll_chunk(self, chunk, batch_id):
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise DatabaseError("connection reset")
        return super()._write_payroll_chunk(chunk, batch_id)


class PayrollImportServiceTests(TestCase):
    """Tests for ImportService.import_payroll"""

    def setUp(self):
        for employee_id in ('NV001', 'NV002', 'NV003'):
            make_employee(employee_id)
        self.service = ImportService(imported_by='AD01')

    def test_invalid_month_row_is_skipped(self):
        buffer = build_workbook([
            PAYROLL_HEADER,
            ['NV001', '2025-05', 8200000, 7179200],
            ['NV002', '2025-5', 8200000, 7179200],
            ['NV003', '2025-05', 9000000, 8000000],
        ])
        result = self.service.import_payroll(buffer, 'luong.xlsx')

        self.assertTrue(result['success'])
        self.assertEqual(result['totalRecords'], 3)
        self.assertEqual(result['insertedMonthly'], 2)
        self.assertEqual(result['skippedRecords'], 1)
        self.assertEqual(result['errors'][0]['row'], 3)
        self.assertEqual(result['errors'][0]['errorType'], 'validation')
        record = PayrollRecord.objects.get(employee_id='NV003', salary_month='2025-05')
        self.assertEqual(record.tien_luong_thuc_nhan_cuoi_ky, Decimal('8000000'))
        self.assertEqual(record.import_batch_id, result['importBatchId'])
        self.assertEqual(record.source_file, 'luong.xlsx')

        batch = ImportBatch.objects.get(batch_id=result['importBatchId'])
        self.assertEqual(batch.status, BatchStatus.PARTIAL)
        self.assertEqual(batch.inserted_count, 2)

    def test_invalid_month_reported_before_unknown_employee(self):
        buffer = build_workbook([PAYROLL_HEADER, ['NV404', '2025-13', 1, 1], ['NV404', '2025-06', 1, 1]])
        result = self.service.import_payroll(buffer, 'luong.xlsx')

        self.assertFalse(result['success'])
        by_row = {e['row']: e for e in result['errors']}
        self.assertEqual(by_row[2]['errorType'], 'validation')
        self.assertEqual(by_row[3]['errorType'], 'employee_not_found')
        self.assertEqual(ImportBatch.objects.get(batch_id=result['importBatchId']).status, BatchStatus.FAILED)

    def test_unsigned_row_is_overwritten_and_signed_row_kept(self):
        PayrollRecord.objects.create(employee_id='NV001', salary_month='2025-05', tong_cong_tien_luong=Decimal('1'))
        PayrollRecord.objects.create(
            employee_id='NV002', salary_month='2025-05', tong_cong_tien_luong=Decimal('1'),
            is_signed=True, signed_by_name='Nhân viên NV002'
        )
        buffer = build_workbook([
            PAYROLL_HEADER,
            ['NV001', '2025-05', 999, 999],
            ['NV002', '2025-05', 999, 999],
        ])
        result = self.service.import_payroll(buffer, 'luong.xlsx')

        self.assertEqual(result['overwriteCount'], 1)
        self.assertEqual(result['insertedMonthly'], 1)
        self.assertEqual(result['errors'][0]['errorType'], 'duplicate')
        self.assertEqual(result['errors'][0]['error'], "Bảng lương đã được ký, không thể ghi đè")
        self.assertEqual(
            PayrollRecord.objects.get(employee_id='NV001').tong_cong_tien_luong, Decimal('999')
        )
        signed = PayrollRecord.objects.get(employee_id='NV002')
        self.assertEqual(signed.tong_cong_tien_luong, Decimal('1'))
        self.assertTrue(signed.is_signed)

    def test_t13_import(self):
        buffer = build_workbook([PAYROLL_HEADER, ['NV001', '2025-13', 5000000, 5000000]])
        result = self.service.import_payroll(buffer, 't13.xlsx', is_t13=True)
        self.assertEqual(result['insertedMonthly'], 1)
        self.assertEqual(PayrollRecord.objects.get(employee_id='NV001').payroll_type, PayrollType.T13)

    def test_failed_chunk_keeps_other_chunks(self):
        buffer = build_workbook([
            PAYROLL_HEADER,
            ['NV001', '2025-05', 1, 1],
            ['NV002', '2025-05', 2, 2],
            ['NV003', '2025-05', 3, 3],
        ])
        service = FlakyImportService(imported_by='AD01', batch_size=1)
        with self.assertLogs('imports', level='ERROR'):
            result = service.import_payroll(buffer, 'luong.xlsx')

        self.assertEqual(result['insertedMonthly'], 2)
        self.assertEqual(result['errorSummary'], {'database': 1})
        self.assertEqual(result['errors'][0]['row'], 3)
        self.assertEqual(
            set(PayrollRecord.objects.values_list('employee_id', flat=True)), {'NV001', 'NV003'}
        )

    def test_overflowing_amount_is_stored_as_zero(self):
        buffer = build_workbook([
            PAYROLL_HEADER,
            ['NV001', '2025-05', '1e999', 1],
            ['NV002', '2025-05', 1, 1],
        ])
        result = self.service.import_payroll(buffer, 'luong.xlsx')

        self.assertEqual(result['insertedMonthly'], 2)
        self.assertEqual(
            PayrollRecord.objects.get(employee_id='NV001').tong_cong_tien_luong, Decimal('0')
        )
        self.assertTrue(ImportBatch.objects.filter(batch_id=result['importBatchId']).exists())

    def test_errors_carry_original_row(self):
        buffer = build_workbook([PAYROLL_HEADER, ['NV404', '2025-05', 5, 6]])
        result = self.service.import_payroll(buffer, 'luong.xlsx')

        self.assertEqual(result['headers'], PAYROLL_HEADER)
        self.assertEqual(result['errors'][0]['originalData']['Tổng Cộng Tiền Lương'], 5)

    def test_reported_errors_are_capped(self):
        rows = [PAYROLL_HEADER] + [[f'X{i}', '2025-05', 1, 1] for i in range(5)]
        result = ImportService(max_reported_errors=2).import_payroll(build_workbook(rows), 'luong.xlsx')
        self.assertEqual(len(result['errors']), 2)
        self.assertEqual(result['totalErrors'], 5)


class EmployeeImportServiceTests(TestCase):

    def test_existing_codes_are_duplicates(self):
        make_employee('NV001')
        buffer = build_workbook([
            ['Mã nhân viên', 'Họ tên', 'CCCD', 'Phòng ban', 'Chức vụ'],
            ['NV001', 'Nguyễn Văn A', '001200000001', 'May 1', 'Nhân viên'],
            ['NV010', 'Lê Văn C', '001200000010', 'May 2', 'Kế toán'],
        ])
        result = ImportService(imported_by='AD01').import_employees(buffer, 'nhanvien.xlsx')

        self.assertEqual(result['successCount'], 1)
        self.assertEqual(result['errors'][0]['error'], 'Mã nhân viên đã tồn tại: "NV001"')
        created = Employee.objects.get(employee_id='NV010')
        self.assertEqual(created.chuc_vu, Role.KE_TOAN)
        self.assertTrue(created.check_credential('001200000010'))


class AttendanceImportServiceTests(TestCase):

    def test_unknown_employees_are_listed(self):
        make_employee('NV001')
        header = ['Mã NV', 'Họ tên', 'Tháng', '1', None, '2', None, 'Tổng giờ công', 'Tổng ngày công']
        buffer = build_workbook([
            header,
            ['NV001', 'A', '05-2025', '07:30', '17:00', '07:30', '16:30', 16, 2],
            [None, None, None, 1, 0, 1, 0.5, None, None],
            ['NV404', 'B', '05-2025', '07:30', '17:00', None, None, 8, 1],
            [None, None, None, 1, 0, 0, 0, None, None],
        ])
        result = ImportService().import_attendance(buffer, 'chamcong.xlsx')

        self.assertEqual(result['insertedMonthly'], 1)
        self.assertEqual(result['insertedDaily'], 2)
        self.assertEqual(result['invalidEmployees'], ['NV404'])
        self.assertEqual(AttendanceDaily.objects.filter(employee_id='NV001').count(), 2)
        monthly = AttendanceMonthly.objects.get(employee_id='NV001')
        self.assertEqual(monthly.total_hours, Decimal('16'))

        # Re-import replaces rather than duplicates
        ImportService().import_attendance(buffer, 'chamcong.xlsx')
        self.assertEqual(AttendanceDaily.objects.count(), 2)
        self.assertEqual(AttendanceMonthly.objects.count(), 1)


class DualFileImportServiceTests(TestCase):
    """Tests for ImportService.import_dual_files"""

    def setUp(self):
        make_employee('NV001')
        make_employee('NV002')
        self.config1 = self._config('Lương cơ bản', FileType.FILE1, ('Tổng lương', 'tong_cong_tien_luong'))
        self.config2 = self._config('Khấu trừ', FileType.FILE2, ('Thực nhận', 'tien_luong_thuc_nhan_cuoi_ky'))

    def _config(self, name, file_type, value_column, value_type=DataType.NUMBER):
        config = ImportFileConfig.objects.create(config_name=name, file_type=file_type)
        columns = [('Mã NV', 'employee_id', DataType.TEXT), ('Tháng', 'salary_month', DataType.TEXT),
                   (value_column[0], value_column[1], value_type)]
        for order, (column, field_name, data_type) in enumerate(columns):
            ImportColumnMapping.objects.create(
                config=config, excel_column_name=column, database_field=field_name,
                data_type=data_type, is_required=order < 2, display_order=order
            )
        return config

    def test_only_matched_rows_are_imported(self):
        file1 = build_workbook([
            ['Mã NV', 'Tháng', 'Tổng lương'],
            ['NV001', '2025-05', 8200000],
            ['NV002', '2025-05', 9000000],
        ])
        file2 = build_workbook([['Mã NV', 'Tháng', 'Thực nhận'], ['NV001', '2025-05', 7179200]])
        result = ImportService().import_dual_files(file1, 'a.xlsx', file2, 'b.xlsx')

        self.assertTrue(result['success'])
        self.assertEqual(result['matched_records'], 1)
        self.assertEqual(result['summary']['file1_only'], 1)
        self.assertEqual(result['insertedMonthly'], 1)
        record = PayrollRecord.objects.get(employee_id='NV001')
        self.assertEqual(record.tong_cong_tien_luong, Decimal('8200000'))
        self.assertEqual(record.tien_luong_thuc_nhan_cuoi_ky, Decimal('7179200'))
        self.assertEqual(record.source_file, 'a.xlsx + b.xlsx')
        self.assertFalse(PayrollRecord.objects.filter(employee_id='NV002').exists())

    def test_single_file(self):
        file1 = build_workbook([['Mã NV', 'Tháng', 'Tổng lương'], ['NV002', '2025-05', 100]])
        result = ImportService().import_dual_files(file1, 'a.xlsx', None, None, file1_config_id=self.config1.pk)
        self.assertEqual(result['insertedMonthly'], 1)
        self.assertEqual(result['unmatched_records'], 0)
        self.assertEqual(result['warnings'], [])

    def test_text_typed_amount_column_is_parsed(self):
        config = self._config(
            'Lương dạng chữ', FileType.FILE1, ('Tổng lương', 'tong_cong_tien_luong'), DataType.TEXT
        )
        file1 = build_workbook([
            ['Mã NV', 'Tháng', 'Tổng lương'],
            ['NV001', '2025-05', '8.200.000'],
            ['NV002', '2025-05', None],
        ])
        result = ImportService().import_dual_files(file1, 'a.xlsx', None, None, file1_config_id=config.pk)

        self.assertEqual(result['insertedMonthly'], 2)
        self.assertEqual(
            PayrollRecord.objects.get(employee_id='NV001').tong_cong_tien_luong, Decimal('8200000')
        )
        self.assertEqual(PayrollRecord.objects.get(employee_id='NV002').tong_cong_tien_luong, Decimal('0'))

    def test_repeated_and_unkeyed_rows_are_reported(self):
        file1 = build_workbook([
            ['Mã NV', 'Tháng', 'Tổng lương'],
            ['NV001', '2025-05', 1],
            ['NV001', '2025-05', 2],
            [None, '2025-05', 3],
        ])
        result = ImportService().import_dual_files(file1, 'a.xlsx', None, None, file1_config_id=self.config1.pk)

        self.assertEqual(result['totalRecords'], 3)
        self.assertEqual(result['file1_processed'], 3)
        self.assertEqual(result['insertedMonthly'], 1)
        self.assertEqual(result['skippedRecords'], 2)
        by_row = {e['row']: e for e in result['errors']}
        self.assertEqual(by_row[3]['errorType'], 'duplicate')
        self.assertEqual(by_row[4]['errorType'], 'validation')
        self.assertEqual(by_row[4]['originalData']['Tổng lương'], 3)
        self.assertEqual(
            PayrollRecord.objects.get(employee_id='NV001').tong_cong_tien_luong, Decimal('1')
        )

    def test_default_salary_month_fills_blank_cells(self):
        file1 = build_workbook([['Mã NV', 'Tháng', 'Tổng lương'], ['NV001', None, 100]])
        result = ImportService().import_dual_files(file1, 'a.xlsx', None, None, salary_month='2025-06')
        self.assertEqual(result['insertedMonthly'], 1)
        self.assertTrue(PayrollRecord.objects.filter(employee_id='NV001', salary_month='2025-06').exists())

    def test_missing_configuration(self):
        self.config2.is_active = False
        self.config2.save()
        file2 = build_workbook([['Mã NV', 'Tháng', 'Thực nhận'], ['NV001', '2025-05', 1]])
        with self.assertRaises(NotFoundError):
            ImportService().import_dual_files(None, None, file2, 'b.xlsx')

    def test_no_files(self):
        with self.assertRaises(ValidationError):
            ImportService().import_dual_files(None, None, None, None)


class MappingConfigServiceTests(TestCase):
    """Tests for MappingConfigService"""

    def _payload(self, name='Mẫu chuẩn', **kwargs):
        return {
            'config_name': name,
            'field_mappings': [
                {'excel_column_name': 'Mã NV', 'database_field': 'employee_id'},
                {'excel_column_name': 'Tháng', 'database_field': 'salary_month'},
            ],
            **kwargs
        }

    def test_save_and_default(self):
        first = MappingConfigService.save_configuration(self._payload('A', is_default=True), 'AD01')
        second = MappingConfigService.save_configuration(self._payload('B', is_default=True), 'AD01')

        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertEqual(MappingConfigService.get_default_configuration(), second)
        self.assertEqual(second.field_mappings.count(), 2)

    def test_duplicate_name(self):
        MappingConfigService.save_configuration(self._payload(), 'AD01')
        with self.assertRaises(ValidationError):
            MappingConfigService.save_configuration(self._payload(), 'AD01')

    def test_conflicts_are_rejected(self):
        payload = self._payload()
        payload['field_mappings'].append({'excel_column_name': 'Mã nhân viên', 'database_field': 'employee_id'})
        with self.assertRaises(ValidationError) as ctx:
            MappingConfigService.save_configuration(payload, 'AD01')
        self.assertEqual(ctx.exception.details['conflicts'][0]['type'], 'duplicate_mapping')
        self.assertFalse(MappingConfiguration.objects.exists())

    def test_deactivated_configuration_is_not_found(self):
        configuration = MappingConfigService.save_configuration(self._payload(), 'AD01')
        MappingConfigService.deactivate(configuration)
        with self.assertRaises(NotFoundError):
            MappingConfigService.get_configuration(configuration.pk)


class ImportViewTests(TestCase):
    """Tests for the import endpoints"""

    def setUp(self):
        self.client = Client()
        self.admin = make_employee('AD01', department='Văn phòng', chuc_vu=Role.ADMIN)
        self.office = make_employee('VP01', department='Văn phòng', chuc_vu=Role.VAN_PHONG)
        self.worker = make_employee('NV001')

    def _upload(self, name, content):
        return SimpleUploadedFile(name, content, content_type=XLSX)

    def test_payroll_import(self):
        buffer = build_workbook([PAYROLL_HEADER, ['NV001', '2025-05', 1, 1]])
        response = self.client.post(
            '/api/imports/payroll/', {'file': self._upload('luong.xlsx', buffer)}, **auth_header(self.office)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['insertedMonthly'], 1)

    def test_wrong_extension(self):
        response = self.client.post(
            '/api/imports/payroll/', {'file': self._upload('luong.csv', b'a,b')}, **auth_header(self.admin)
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "Chỉ chấp nhận file Excel (.xlsx, .xls)")

    def test_unreadable_workbook(self):
        response = self.client.post(
            '/api/imports/payroll/', {'file': self._upload('luong.xlsx', b'garbage')}, **auth_header(self.admin)
        )
        self.assertEqual(response.status_code, 400)

    def test_employee_cannot_import(self):
        buffer = build_workbook([PAYROLL_HEADER, ['NV001', '2025-05', 1, 1]])
        response = self.client.post(
            '/api/imports/payroll/', {'file': self._upload('luong.xlsx', buffer)}, **auth_header(self.worker)
        )
        self.assertEqual(response.status_code, 403)

    def test_employee_import_requires_admin(self):
        response = self.client.post('/api/imports/employees/', {}, **auth_header(self.office))
        self.assertEqual(response.status_code, 403)

    def test_mapping_configuration_endpoints(self):
        payload = {
            'config_name': 'Mẫu chuẩn',
            'field_mappings': [
                {'excel_column_name': 'Mã NV', 'database_field': 'employee_id'},
                {'excel_column_name': 'Tháng', 'database_field': 'salary_month'},
            ],
        }
        response = self.client.post(
            '/api/imports/mapping-configs/', json.dumps(payload),
            content_type='application/json', **auth_header(self.admin)
        )
        self.assertEqual(response.status_code, 201)
        config_id = response.json()['configuration']['id']

        response = self.client.get('/api/imports/mapping-configs/', **auth_header(self.admin))
        self.assertEqual(len(response.json()['configurations']), 1)

        response = self.client.delete(f'/api/imports/mapping-configs/{config_id}/', **auth_header(self.admin))
        self.assertEqual(response.status_code, 200)
        response = self.client.get(f'/api/imports/mapping-configs/{config_id}/', **auth_header(self.admin))
        self.assertEqual(response.status_code, 404)

    def test_detect_columns(self):
        buffer = build_workbook([['Mã Nhân Viên', 'Tháng Lương', 'Ghi chú xyz']])
        response = self.client.post(
            '/api/imports/detect-columns/', {'file': self._upload('luong.xlsx', buffer)}, **auth_header(self.admin)
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['mapping']['Mã Nhân Viên']['database_field'], 'employee_id')
        self.assertEqual(data['total_columns'], 3)

    def test_template_download(self):
        response = self.client.get('/api/imports/template/', **auth_header(self.office))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], XLSX)
        self.assertIn('mau_import_luong_', response['Content-Disposition'])

    def test_error_report_export(self):
        payload = {
            'errors': [{'row': 3, 'error': 'Thiếu Mã NV', 'errorType': 'validation'}],
            'headers': ['Mã Nhân Viên', 'Tháng Lương'],
        }
        response = self.client.post(
            '/api/imports/errors/export/', json.dumps(payload),
            content_type='application/json', **auth_header(self.office)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], XLSX)

        response = self.client.post(
            '/api/imports/errors/export/', json.dumps({'errors': []}),
            content_type='application/json', **auth_header(self.office)
        )
        self.assertEqual(response.status_code, 400)

    def test_import_response_exports_original_columns(self):
        buffer = build_workbook([PAYROLL_HEADER, ['NV404', '2025-05', 8200000, 7179200]])
        imported = self.client.post(
            '/api/imports/payroll/', {'file': self._upload('luong.xlsx', buffer)}, **auth_header(self.office)
        ).json()

        response = self.client.post(
            '/api/imports/errors/export/',
            json.dumps({'errors': imported['errors'], 'headers': imported['headers']}),
            content_type='application/json', **auth_header(self.office)
        )
        self.assertEqual(response.status_code, 200)
        ws = load_workbook(BytesIO(response.content)).active
        header = [c.value for c in ws[1]]
        row = dict(zip(header, [c.value for c in ws[2]]))
        self.assertEqual(row['Mã NV'], 'NV404')
        self.assertEqual(row['Tổng Cộng Tiền Lương'], 8200000)
        self.assertEqual(row['Tiền Lương Thực Nhận Cuối Kỳ'], 7179200)

    def test_history(self):
        buffer = build_workbook([PAYROLL_HEADER, ['NV001', '2025-05', 1, 1]])
        ImportService(imported_by='AD01').import_payroll(buffer, 'luong.xlsx')
        response = self.client.get('/api/imports/history/?import_type=payroll', **auth_header(self.admin))
        batches = response.json()['batches']
        self.assertEqual(len(batches), 1)
        self.assertEqual(batches[0]['status'], BatchStatus.COMPLETED)
