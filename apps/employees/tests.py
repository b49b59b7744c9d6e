"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Unit tests for the employees module - capability table,
             tokens, credential handling, scoping and auth endpoints.
-------------------------------------------------------------------------
"""
import json
from datetime import timedelta

from django.test import Client, RequestFactory, SimpleTestCase, TestCase

from apps.core.exceptions import AuthenticationError, InvalidCredential, ValidationError
from apps.employees.auth import Principal, decode_token, get_principal, issue_token, principal_for_employee
from apps.employees.capabilities import (
    ViewScope, can_sign_management, get_capability, role_display_name, signable_types,
)
from apps.employees.models import CredentialKind, Employee, Role
from apps.employees.permissions import scope_payroll_queryset
from apps.employees.services import EmployeeService
from apps.payroll.models import PayrollRecord


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


class CapabilityTableTests(SimpleTestCase):
    """Tests for the role capability table."""

    def test_signers_sign_only_their_own_type(self):
        self.assertTrue(can_sign_management(Role.GIAM_DOC, 'giam_doc'))
        self.assertFalse(can_sign_management(Role.GIAM_DOC, 'ke_toan'))
        self.assertTrue(can_sign_management(Role.KE_TOAN, 'ke_toan'))
        self.assertTrue(can_sign_management(Role.NGUOI_LAP_BIEU, 'nguoi_lap_bieu'))

    def test_admin_signs_any_type(self):
        types = ['giam_doc', 'ke_toan', 'nguoi_lap_bieu']
        self.assertEqual(signable_types(Role.ADMIN, types), types)

    def test_other_roles_cannot_sign(self):
        for role in (Role.VAN_PHONG, Role.TRUONG_PHONG, Role.TO_TRUONG, Role.NHAN_VIEN, 'unknown'):
            self.assertFalse(can_sign_management(role, 'giam_doc'), role)

    def test_view_scopes(self):
        self.assertEqual(get_capability(Role.GIAM_DOC).view_scope, ViewScope.ALL)
        self.assertEqual(get_capability(Role.VAN_PHONG).view_scope, ViewScope.ALL)
        self.assertEqual(get_capability(Role.TRUONG_PHONG).view_scope, ViewScope.ALLOWED_DEPARTMENTS)
        self.assertEqual(get_capability(Role.TO_TRUONG).view_scope, ViewScope.OWN_DEPARTMENT)
        self.assertEqual(get_capability(Role.NHAN_VIEN).view_scope, ViewScope.OWN)
        self.assertEqual(get_capability('unknown').view_scope, ViewScope.OWN)

    def test_display_names(self):
        self.assertEqual(role_display_name(Role.GIAM_DOC), 'Giám Đốc')
        self.assertEqual(role_display_name('unknown'), 'unknown')


class TokenTests(SimpleTestCase):
    """Tests for token issue and decode."""

    def setUp(self):
        self.principal = Principal(
            employee_id='NV001', username='Nguyễn Văn A', role=Role.TRUONG_PHONG,
            department='May 1', allowed_departments=['May 2'], permissions=['VIEW_PAYROLL'],
        )

    def test_round_trip(self):
        decoded = decode_token(issue_token(self.principal))
        self.assertEqual(decoded, self.principal)
        self.assertTrue(decoded.is_role(Role.TRUONG_PHONG))
        self.assertTrue(decoded.can_access_department('May 2'))
        self.assertFalse(decoded.can_access_department('May 3'))

    def test_expired_token_is_rejected(self):
        token = issue_token(self.principal, expires_in=timedelta(seconds=-1))
        with self.assertRaises(AuthenticationError):
            decode_token(token)

    def test_tampered_token_is_rejected(self):
        with self.assertRaises(AuthenticationError):
            decode_token(issue_token(self.principal) + 'x')

    def test_principal_from_bearer_header(self):
        request = RequestFactory().get('/', HTTP_AUTHORIZATION=f'Bearer {issue_token(self.principal)}')
        self.assertEqual(get_principal(request).employee_id, 'NV001')

    def test_missing_token(self):
        with self.assertRaisesMessage(AuthenticationError, "Chưa đăng nhập"):
            get_principal(RequestFactory().get('/'))


class EmployeeCredentialTests(TestCase):
    """Tests for CCCD and password credentials."""

    def setUp(self):
        self.employee = make_employee('NV001', cccd='001200000001')

    def test_initial_credential_is_cccd(self):
        self.assertEqual(self.employee.credential_kind, CredentialKind.INITIAL_CCCD)
        self.assertTrue(self.employee.check_credential('001200000001'))
        self.assertTrue(self.employee.check_credential(' 001200000001 '))
        self.assertFalse(self.employee.check_credential('wrong'))

    def test_wrong_cccd_message(self):
        with self.assertRaisesMessage(InvalidCredential, "Số CCCD không đúng"):
            EmployeeService.authenticate('NV001', 'wrong')

    def test_change_password_switches_credential(self):
        EmployeeService.change_password(self.employee, '001200000001', 'matkhau123')
        self.employee.refresh_from_db()
        self.assertEqual(self.employee.credential_kind, CredentialKind.CHANGED_PASSWORD)
        self.assertIsNotNone(self.employee.last_password_change_at)
        self.assertTrue(self.employee.check_credential('matkhau123'))
        self.assertFalse(self.employee.check_credential('001200000001'))
        with self.assertRaisesMessage(InvalidCredential, "Mật khẩu không đúng"):
            EmployeeService.authenticate('NV001', '001200000001')

    def test_change_password_rules(self):
        with self.assertRaises(ValidationError):
            EmployeeService.change_password(self.employee, '001200000001', '123')
        with self.assertRaises(ValidationError):
            EmployeeService.change_password(self.employee, '001200000001', '001200000001')
        with self.assertRaises(InvalidCredential):
            EmployeeService.change_password(self.employee, 'wrong', 'matkhau123')

    def test_employee_id_is_immutable(self):
        self.employee.employee_id = 'NV999'
        with self.assertRaises(ValidationError):
            self.employee.save()


class ScopingTests(TestCase):
    """Role scoping is applied as a query predicate."""

    def setUp(self):
        for code, dept in (('NV001', 'May 1'), ('NV002', 'May 1'), ('NV003', 'May 2'), ('NV004', 'May 3')):
            employee = make_employee(code, department=dept)
            PayrollRecord.objects.create(employee=employee, salary_month='2025-05')

    def _visible(self, role, employee_id='NV001', department='May 1', allowed=None):
        principal = Principal(
            employee_id=employee_id, username='x', role=role,
            department=department, allowed_departments=allowed or [],
        )
        qs = scope_payroll_queryset(principal, PayrollRecord.objects.all())
        return sorted(qs.values_list('employee_id', flat=True))

    def test_management_sees_all(self):
        self.assertEqual(self._visible(Role.GIAM_DOC), ['NV001', 'NV002', 'NV003', 'NV004'])

    def test_truong_phong_sees_allowed_departments(self):
        self.assertEqual(self._visible(Role.TRUONG_PHONG, allowed=['May 2']), ['NV001', 'NV002', 'NV003'])

    def test_to_truong_sees_own_department(self):
        self.assertEqual(self._visible(Role.TO_TRUONG), ['NV001', 'NV002'])

    def test_nhan_vien_sees_own_rows(self):
        self.assertEqual(self._visible(Role.NHAN_VIEN, employee_id='NV002'), ['NV002'])


class AuthViewTests(TestCase):
    """Tests for login, me and change-password endpoints."""

    def setUp(self):
        self.client = Client()
        self.employee = make_employee('NV001', chuc_vu=Role.TO_TRUONG, cccd='001200000001')

    def _login(self, password='001200000001'):
        return self.client.post(
            '/api/employees/login/',
            data=json.dumps({'employee_id': 'NV001', 'password': password}),
            content_type='application/json'
        )

    def test_login_returns_token_and_cookie(self):
        response = self._login()
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['user']['role'], Role.TO_TRUONG)
        self.assertEqual(body['user']['role_display'], 'Tổ Trưởng')
        self.assertTrue(body['user']['must_change_password'])
        self.assertIn('auth_token', response.cookies)

    def test_login_with_wrong_credential(self):
        response = self._login('wrong')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], "Số CCCD không đúng")

    def test_login_unknown_employee(self):
        response = self.client.post(
            '/api/employees/login/',
            data=json.dumps({'employee_id': 'NV999', 'password': 'x'}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 404)

    def test_me_requires_token(self):
        self.assertEqual(self.client.get('/api/employees/me/').status_code, 401)

    def test_me_with_cookie(self):
        self._login()
        response = self.client.get('/api/employees/me/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['user']['employee_id'], 'NV001')

    def test_change_password(self):
        token = self._login().json()['token']
        response = self.client.post(
            '/api/employees/change-password/',
            data=json.dumps({'current_password': '001200000001', 'new_password': 'matkhau123'}),
            content_type='application/json',
            HTTP_AUTHORIZATION=f'Bearer {token}'
        )
        self.assertEqual(response.status_code, 200)
        self.employee.refresh_from_db()
        self.assertTrue(self.employee.uses_changed_password)
        self.assertEqual(principal_for_employee(self.employee).role, Role.TO_TRUONG)
