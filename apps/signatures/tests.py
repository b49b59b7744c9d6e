"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Unit tests for the signatures module - employee signing,
             management sign-off gating, status and progress.
-------------------------------------------------------------------------
"""
import json
from unittest import mock

from django.db import DatabaseError
from django.test import Client, SimpleTestCase, TestCase

from apps.core.exceptions import (
    AlreadySigned, AuthorizationError, IncompleteEmployeeSignatures, InvalidCredential,
    InvalidSignatureType, PayrollRecordNotFound, SignatureAlreadyExists, SignatureRoleMismatch,
    ValidationError,
)
from apps.employees.auth import issue_token, principal_for_employee
from apps.employees.models import Employee, Role
from apps.payroll.models import PayrollRecord, PayrollType
from apps.signatures.models import ManagementSignature, SignatureLog
from apps.signatures.progress import signature_progress, signature_status
from apps.signatures.services import SignatureService
from apps.signatures.workflows import EmployeeCompletion, require_complete, validate_salary_month


def make_employee(employee_id, department='May 1', chuc_vu=Role.NHAN_VIEN, cccd='001200000001', **kwargs):
    employee = Employee(
        employee_id=employee_id,
        full_name=kwargs.pop('full_name', f'Nhân viên {employee_id}'),
        department=department,
        chuc_vu=chuc_vu,
        **kwargs
    )
    employee.set_cccd(cccd)
    employee.save()
    return employee


def auth_header(employee):
    return {'HTTP_AUTHORIZATION': f'Bearer {issue_token(principal_for_employee(employee))}'}


def sign_all(salary_month, payroll_type=PayrollType.MONTHLY):
    PayrollRecord.objects.filter(salary_month=salary_month, payroll_type=payroll_type).update(is_signed=True)


class EmployeeCompletionTests(SimpleTestCase):

    def test_percentage(self):
        self.assertEqual(EmployeeCompletion(total=3, signed=1).percentage, 33.33)
        self.assertEqual(EmployeeCompletion(total=0, signed=0).percentage, 0.0)
        self.assertFalse(EmployeeCompletion(total=0, signed=0).is_complete)
        self.assertTrue(EmployeeCompletion(total=2, signed=2).is_complete)

    def test_require_complete_messages(self):
        with self.assertRaises(IncompleteEmployeeSignatures) as ctx:
            require_complete(EmployeeCompletion(total=10, signed=9))
        self.assertEqual(ctx.exception.details['message'], "Cần 1 nhân viên ký thêm để đạt 100%")
        self.assertEqual(ctx.exception.details['completion_percentage'], 90.0)

        with self.assertRaises(IncompleteEmployeeSignatures) as ctx:
            require_complete(EmployeeCompletion(total=0, signed=0))
        self.assertEqual(ctx.exception.details['message'], "Chưa có bảng lương cho tháng này")

    def test_month_formats(self):
        self.assertEqual(validate_salary_month(' 2025-05 '), '2025-05')
        self.assertEqual(validate_salary_month('2025-13', is_t13=True), '2025-13')
        for value, is_t13 in (('2025-13', False), ('2025-12', True), ('25-05', False), ('', False)):
            with self.assertRaises(ValidationError, msg=value):
                validate_salary_month(value, is_t13)


class EmployeeSignTests(TestCase):
    """Tests for SignatureService.sign_employee_payroll"""

    def setUp(self):
        self.employee = make_employee('NV001', cccd='001200000001', full_name='Nguyễn Văn A')
        self.record = PayrollRecord.objects.create(employee=self.employee, salary_month='2025-05')

    def test_sign(self):
        result = SignatureService.sign_employee_payroll(
            'NV001', '001200000001', '2025-05', ip_address='10.0.0.5', device_info='Mozilla'
        )

        self.assertEqual(result['employee_name'], 'Nguyễn Văn A')
        self.assertEqual(result['salary_month_display'], 'Tháng 5 - 2025')
        self.record.refresh_from_db()
        self.assertTrue(self.record.is_signed)
        self.assertEqual(self.record.signed_by_name, 'Nguyễn Văn A')
        log = SignatureLog.objects.get(employee=self.employee)
        self.assertEqual(log.ip_address, '10.0.0.5')
        self.assertEqual(log.payroll_type, PayrollType.MONTHLY)

    def test_second_sign_is_rejected(self):
        SignatureService.sign_employee_payroll('NV001', '001200000001', '2025-05')
        with self.assertRaises(AlreadySigned) as ctx:
            SignatureService.sign_employee_payroll('NV001', '001200000001', '2025-05')

        self.assertTrue(ctx.exception.details['signed_at_display'])
        self.assertEqual(SignatureLog.objects.count(), 1)

    def test_concurrent_sign_has_one_winner(self):
        # The losing call read the row before the winning call committed.
        stale = PayrollRecord.objects.get(pk=self.record.pk)
        SignatureService.sign_employee_payroll('NV001', '001200000001', '2025-05')

        locked = mock.MagicMock()
        locked.filter.return_value.first.return_value = stale
        with mock.patch.object(PayrollRecord.objects, 'select_for_update', return_value=locked):
            with self.assertRaises(AlreadySigned) as ctx:
                SignatureService.sign_employee_payroll('NV001', '001200000001', '2025-05')

        self.assertFalse(stale.is_signed)
        self.assertIsNotNone(ctx.exception.details['signed_at'])
        self.assertEqual(SignatureLog.objects.count(), 1)
        self.record.refresh_from_db()
        self.assertTrue(self.record.is_signed)

    def test_wrong_credential(self):
        with self.assertRaises(InvalidCredential):
            SignatureService.sign_employee_payroll('NV001', '999', '2025-05')
        self.record.refresh_from_db()
        self.assertFalse(self.record.is_signed)

    def test_no_payroll_for_month(self):
        with self.assertRaises(PayrollRecordNotFound):
            SignatureService.sign_employee_payroll('NV001', '001200000001', '2025-06')

    def test_t13(self):
        PayrollRecord.objects.create(employee=self.employee, salary_month='2025-13')
        with self.assertRaises(ValidationError):
            SignatureService.sign_employee_payroll('NV001', '001200000001', '2025-13')

        SignatureService.sign_employee_payroll('NV001', '001200000001', '2025-13', is_t13=True)
        t13 = PayrollRecord.objects.get(salary_month='2025-13')
        self.assertEqual(t13.payroll_type, PayrollType.T13)
        self.assertTrue(t13.is_signed)
        self.record.refresh_from_db()
        self.assertFalse(self.record.is_signed)


class ManagementSignTests(TestCase):
    """Tests for SignatureService.sign_management"""

    def setUp(self):
        self.employees = [make_employee(f'NV{i:03d}', cccd=f'0012000000{i:02d}') for i in range(1, 11)]
        for employee in self.employees:
            PayrollRecord.objects.create(employee=employee, salary_month='2025-05')
        self.director = make_employee('GD01', department='Ban Giám Đốc', chuc_vu=Role.GIAM_DOC)
        self.accountant = make_employee('KT01', department='Kế toán', chuc_vu=Role.KE_TOAN)
        self.admin = make_employee('AD01', department='Văn phòng', chuc_vu=Role.ADMIN)

    def _principal(self, employee):
        return principal_for_employee(employee)

    def test_gated_on_full_employee_completion(self):
        PayrollRecord.objects.exclude(employee_id='NV010').update(is_signed=True)

        with self.assertRaises(IncompleteEmployeeSignatures) as ctx:
            SignatureService.sign_management(self._principal(self.director), '2025-05', 'giam_doc')
        self.assertEqual(ctx.exception.details['signed_employees'], 9)
        self.assertFalse(ManagementSignature.objects.exists())

        SignatureService.sign_employee_payroll('NV010', '001200000010', '2025-05')
        signature = SignatureService.sign_management(
            self._principal(self.director), '2025-05', 'giam_doc', notes='Đã duyệt'
        )
        self.assertEqual(signature.signed_by_id, 'GD01')
        self.assertEqual(signature.department, 'Ban Giám Đốc')
        self.assertEqual(signature.payroll_type, PayrollType.MONTHLY)

        with self.assertRaises(SignatureAlreadyExists) as ctx:
            SignatureService.sign_management(self._principal(self.director), '2025-05', 'giam_doc')
        self.assertEqual(ctx.exception.details['existing_signature']['signed_by_id'], 'GD01')

    def test_no_payroll_blocks_sign_off(self):
        with self.assertRaises(IncompleteEmployeeSignatures):
            SignatureService.sign_management(self._principal(self.director), '2025-07', 'giam_doc')

    def test_role_must_match_type(self):
        sign_all('2025-05')
        with self.assertRaises(SignatureRoleMismatch):
            SignatureService.sign_management(self._principal(self.director), '2025-05', 'ke_toan')

    def test_stored_role_overrides_token_role(self):
        sign_all('2025-05')
        principal = self._principal(self.director)
        self.director.chuc_vu = Role.NHAN_VIEN
        self.director.save()

        with self.assertRaises(SignatureRoleMismatch):
            SignatureService.sign_management(principal, '2025-05', 'giam_doc')
        self.assertFalse(ManagementSignature.objects.exists())

    def test_admin_signs_any_type(self):
        sign_all('2025-05')
        signature = SignatureService.sign_management(self._principal(self.admin), '2025-05', 'nguoi_lap_bieu')
        self.assertEqual(signature.signed_by_id, 'AD01')

    def test_other_roles_are_refused(self):
        with self.assertRaises(AuthorizationError):
            SignatureService.sign_management(self._principal(self.employees[0]), '2025-05', 'giam_doc')

    def test_unknown_type(self):
        with self.assertRaises(InvalidSignatureType) as ctx:
            SignatureService.sign_management(self._principal(self.admin), '2025-05', 'thu_quy')
        self.assertEqual(ctx.exception.details['valid_types'], ['giam_doc', 'ke_toan', 'nguoi_lap_bieu'])

    def test_deactivated_signature_can_be_replaced(self):
        sign_all('2025-05')
        first = SignatureService.sign_management(self._principal(self.accountant), '2025-05', 'ke_toan')
        SignatureService.deactivate_management_signature(first, 'Ký nhầm')

        second = SignatureService.sign_management(self._principal(self.accountant), '2025-05', 'ke_toan')
        self.assertNotEqual(first.pk, second.pk)
        self.assertEqual(ManagementSignature.objects.filter(is_active=True).count(), 1)

    def test_t13_is_separate_period(self):
        sign_all('2025-05')
        PayrollRecord.objects.create(employee=self.employees[0], salary_month='2025-13')
        with self.assertRaises(IncompleteEmployeeSignatures):
            SignatureService.sign_management(self._principal(self.director), '2025-13', 'giam_doc', is_t13=True)


class ProgressTests(TestCase):
    """Tests for signature_status and signature_progress"""

    def setUp(self):
        self.employees = [make_employee(f'NV{i:03d}') for i in range(1, 5)]
        for employee in self.employees:
            PayrollRecord.objects.create(employee=employee, salary_month='2025-05')
        self.accountant = make_employee('KT01', department='Kế toán', chuc_vu=Role.KE_TOAN)

    def test_status_before_any_signature(self):
        status = signature_status('2025-05')
        self.assertEqual(status['employee_completion']['total_employees'], 4)
        self.assertEqual(len(status['employee_completion']['unsigned_employees_sample']), 4)
        self.assertEqual(status['management_signatures'], {'giam_doc': None, 'ke_toan': None, 'nguoi_lap_bieu': None})
        self.assertEqual(status['summary']['remaining_signatures'], 3)
        self.assertTrue(status['summary']['employee_completion_required'])

    def test_progress_after_sign_off(self):
        sign_all('2025-05')
        SignatureService.sign_management(principal_for_employee(self.accountant), '2025-05', 'ke_toan')

        progress = signature_progress('2025-05')
        self.assertEqual(progress['employee_progress']['completion_percentage'], 100.0)
        self.assertEqual(progress['management_progress']['completed_types'], ['ke_toan'])
        self.assertEqual(progress['management_progress']['remaining_types'], ['giam_doc', 'nguoi_lap_bieu'])
        self.assertTrue(progress['management_progress']['can_sign'])
        self.assertEqual(progress['statistics']['total_signatures_needed'], 7)
        self.assertEqual(progress['statistics']['total_signatures_completed'], 5)
        self.assertEqual(progress['statistics']['overall_completion_percentage'], 71.43)
        self.assertEqual(progress['recent_activity'][0]['type'], 'management_signature')
        self.assertEqual(progress['real_time_data']['refresh_interval_seconds'], 30)

    def test_progress_without_payroll(self):
        progress = signature_progress('2025-09')
        self.assertEqual(progress['statistics']['overall_completion_percentage'], 0)
        self.assertFalse(progress['management_progress']['can_sign'])

    def test_management_table_failure_degrades(self):
        with mock.patch.object(ManagementSignature.objects, 'filter', side_effect=DatabaseError('no such table')):
            with self.assertLogs('signatures', level='WARNING'):
                status = signature_status('2025-05')
                progress = signature_progress('2025-05')

        self.assertEqual(status['summary']['completed_signatures'], 0)
        self.assertEqual(status['employee_completion']['total_employees'], 4)
        self.assertEqual(progress['management_progress']['completed_types'], [])
        self.assertEqual(progress['recent_activity'], [])


class SignatureViewTests(TestCase):
    """Tests for the signature endpoints"""

    def setUp(self):
        self.client = Client()
        self.worker = make_employee('NV001', cccd='001200000001')
        PayrollRecord.objects.create(employee=self.worker, salary_month='2025-05')
        self.director = make_employee('GD01', department='Ban Giám Đốc', chuc_vu=Role.GIAM_DOC)

    def _post(self, url, payload, **extra):
        return self.client.post(url, json.dumps(payload), content_type='application/json', **extra)

    def test_employee_sign_flow(self):
        payload = {'employee_id': 'NV001', 'cccd': '001200000001', 'salary_month': '2025-05'}
        response = self._post('/api/signatures/employee/', payload)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], "Ký nhận lương thành công!")

        response = self._post('/api/signatures/employee/', payload)
        self.assertEqual(response.status_code, 409)
        self.assertFalse(response.json()['success'])

    def test_employee_sign_missing_fields(self):
        response = self._post('/api/signatures/employee/', {'employee_id': 'NV001'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "Thiếu thông tin bắt buộc")

    def test_management_sign_statuses(self):
        payload = {'salary_month': '2025-05', 'signature_type': 'giam_doc'}
        response = self._post('/api/signatures/management/', payload, **auth_header(self.worker))
        self.assertEqual(response.status_code, 403)

        response = self._post('/api/signatures/management/', payload, **auth_header(self.director))
        self.assertEqual(response.status_code, 422)

        sign_all('2025-05')
        response = self._post('/api/signatures/management/', payload, **auth_header(self.director))
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['signature']['signature_type'], 'giam_doc')
        self.assertEqual(data['status']['summary']['completed_signatures'], 1)

        response = self._post('/api/signatures/management/', payload, **auth_header(self.director))
        self.assertEqual(response.status_code, 409)

    def test_status_and_progress_endpoints(self):
        response = self.client.get('/api/signatures/status/2025-05/', **auth_header(self.director))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['employee_completion']['total_employees'], 1)

        response = self.client.get('/api/signatures/progress/2025-13/?is_t13=true', **auth_header(self.director))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['payroll_type'], PayrollType.T13)

        response = self.client.get('/api/signatures/progress/2025-13/', **auth_header(self.director))
        self.assertEqual(response.status_code, 400)

        response = self.client.get('/api/signatures/status/2025-05/', **auth_header(self.worker))
        self.assertEqual(response.status_code, 403)

    def test_history_is_scoped(self):
        other = make_employee('NV002', cccd='001200000002')
        PayrollRecord.objects.create(employee=other, salary_month='2025-05')
        SignatureService.sign_employee_payroll('NV001', '001200000001', '2025-05')
        SignatureService.sign_employee_payroll('NV002', '001200000002', '2025-05')

        response = self.client.get('/api/signatures/history/', **auth_header(self.worker))
        history = response.json()['history']
        self.assertEqual([h['employee_id'] for h in history], ['NV001'])

        response = self.client.get('/api/signatures/history/?salary_month=2025-05', **auth_header(self.director))
        self.assertEqual(response.json()['pagination']['total'], 2)
