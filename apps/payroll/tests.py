"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Unit tests for the payroll module - lookup, scoped listing,
             department summary and data validation caching.
-------------------------------------------------------------------------
"""
import json
from decimal import Decimal

from django.test import Client, RequestFactory, TestCase

from apps.core.cache import TTLCache
from apps.core.exceptions import InvalidCredential, PayrollRecordNotFound, ValidationError
from apps.employees.auth import issue_token, principal_for_employee
from apps.employees.models import Employee, Role
from apps.payroll.models import PayrollRecord, PayrollType
from apps.payroll.services import DataValidationService, PayrollService
from apps.payroll.views import DataValidationView


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


class PayrollModelTests(TestCase):

    def test_payroll_type_follows_month(self):
        employee = make_employee('NV001')
        monthly = PayrollRecord.objects.create(employee=employee, salary_month='2025-05')
        bonus = PayrollRecord.objects.create(employee=employee, salary_month='2025-13')
        self.assertEqual(monthly.payroll_type, PayrollType.MONTHLY)
        self.assertEqual(bonus.payroll_type, PayrollType.T13)
        self.assertFalse(monthly.is_signed)


class PayrollLookupTests(TestCase):
    """Tests for employee self-service lookup."""

    def setUp(self):
        self.employee = make_employee('NV001', cccd='001200000001')
        PayrollRecord.objects.create(
            employee=self.employee, salary_month='2025-04',
            tien_luong_thuc_nhan_cuoi_ky=Decimal('6500000')
        )
        PayrollRecord.objects.create(
            employee=self.employee, salary_month='2025-05',
            tien_luong_thuc_nhan_cuoi_ky=Decimal('7000000')
        )
        self.client = Client()

    def test_latest_month_when_omitted(self):
        record = PayrollService.lookup_for_employee('NV001', '001200000001')
        self.assertEqual(record.salary_month, '2025-05')

    def test_specific_month(self):
        record = PayrollService.lookup_for_employee('NV001', '001200000001', salary_month='2025-04')
        self.assertEqual(record.tien_luong_thuc_nhan_cuoi_ky, Decimal('6500000'))

    def test_errors(self):
        with self.assertRaises(InvalidCredential):
            PayrollService.lookup_for_employee('NV001', 'wrong')
        with self.assertRaises(ValidationError):
            PayrollService.lookup_for_employee('NV001', '001200000001', salary_month='2025-5')
        with self.assertRaises(PayrollRecordNotFound):
            PayrollService.lookup_for_employee('NV001', '001200000001', salary_month='2025-06')
        with self.assertRaises(PayrollRecordNotFound):
            PayrollService.lookup_for_employee('NV001', '001200000001', is_t13=True)

    def test_lookup_view(self):
        response = self.client.post(
            '/api/payroll/lookup/',
            data=json.dumps({'employee_id': 'NV001', 'cccd': '001200000001', 'salary_month': '2025-05'}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 200)
        payroll = response.json()['payroll']
        self.assertEqual(payroll['salary_month_display'], 'Tháng 5 - 2025')
        self.assertEqual(payroll['tien_luong_thuc_nhan_cuoi_ky'], 7000000.0)
        self.assertFalse(payroll['is_signed'])

    def test_lookup_view_missing_fields(self):
        response = self.client.post(
            '/api/payroll/lookup/',
            data=json.dumps({'employee_id': 'NV001'}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)


class PayrollListTests(TestCase):
    """Listing totals only count rows visible to the caller."""

    def setUp(self):
        self.client = Client()
        for index in range(5):
            employee = make_employee(f'A{index:02d}', department='May 1')
            PayrollRecord.objects.create(employee=employee, salary_month='2025-05', is_signed=index < 2)
        for index in range(3):
            employee = make_employee(f'B{index:02d}', department='May 2')
            PayrollRecord.objects.create(employee=employee, salary_month='2025-05')
        self.leader = make_employee('T001', department='May 2', chuc_vu=Role.TO_TRUONG)
        self.director = make_employee('GD01', department='Ban Giám Đốc', chuc_vu=Role.GIAM_DOC)

    def test_to_truong_pagination_total_is_scoped(self):
        response = self.client.get('/api/payroll/?salary_month=2025-05&page_size=2', **auth_header(self.leader))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['pagination']['total'], 3)
        self.assertEqual(body['pagination']['total_pages'], 2)
        self.assertTrue(all(r['department'] == 'May 2' for r in body['results']))

    def test_director_sees_all(self):
        response = self.client.get('/api/payroll/?salary_month=2025-05', **auth_header(self.director))
        self.assertEqual(response.json()['pagination']['total'], 8)

    def test_list_requires_token(self):
        self.assertEqual(self.client.get('/api/payroll/').status_code, 401)

    def test_department_summary(self):
        response = self.client.get('/api/payroll/departments/?salary_month=2025-05', **auth_header(self.director))
        departments = {d['department']: d for d in response.json()['departments']}
        self.assertEqual(departments['May 1']['signed_count'], 2)
        self.assertEqual(departments['May 1']['unsigned_count'], 3)
        self.assertEqual(departments['May 1']['completion_percentage'], 40.0)

        response = self.client.get('/api/payroll/departments/?salary_month=2025-05', **auth_header(self.leader))
        self.assertEqual([d['department'] for d in response.json()['departments']], ['May 2'])


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class DataValidationTests(TestCase):
    """Tests for the cached missing-payroll check."""

    def setUp(self):
        self.clock = FakeClock()
        self.cache = TTLCache(ttl_seconds=86400, clock=self.clock)
        self.service = DataValidationService(self.cache)
        with_payroll = make_employee('NV001')
        make_employee('NV002')
        make_employee('NV003', is_active=False)
        PayrollRecord.objects.create(employee=with_payroll, salary_month='2025-05')

    def test_lists_active_employees_without_payroll(self):
        result = self.service.check_month('2025-05')
        self.assertEqual(result['total_active_employees'], 2)
        self.assertEqual(result['missing_count'], 1)
        self.assertEqual(result['missing_employees'][0]['employee_id'], 'NV002')
        self.assertFalse(result['from_cache'])

    def test_result_is_cached_until_expiry(self):
        self.service.check_month('2025-05')
        make_employee('NV004')
        self.assertTrue(self.service.check_month('2025-05')['from_cache'])
        self.assertEqual(self.service.check_month('2025-05')['missing_count'], 1)

        self.assertEqual(self.service.check_month('2025-05', force_refresh=True)['missing_count'], 2)

        make_employee('NV005')
        self.clock.now += 86400
        result = self.service.check_month('2025-05')
        self.assertFalse(result['from_cache'])
        self.assertEqual(result['missing_count'], 3)

    def test_invalid_month(self):
        with self.assertRaises(ValidationError):
            self.service.check_month('2025-5')

    def test_view_uses_injected_cache(self):
        admin = make_employee('AD01', chuc_vu=Role.ADMIN)
        client = Client()
        self.cache.set('validation_2025-05', {'missing_count': 42})
        view = DataValidationView.as_view(cache=self.cache)
        request = RequestFactory().get('/?month=2025-05', **auth_header(admin))
        body = json.loads(view(request).content)
        self.assertEqual(body['missing_count'], 42)
        self.assertTrue(body['from_cache'])

        response = client.get('/api/payroll/data-validation/?month=2025-05', **auth_header(make_employee('NV009')))
        self.assertEqual(response.status_code, 403)
