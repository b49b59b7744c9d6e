"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Unit tests for the core module - TTL cache, month helpers,
             request helpers and the base API view.
-------------------------------------------------------------------------
"""
import json
from datetime import datetime, timezone as dt_timezone

from django.http import JsonResponse
from django.test import RequestFactory, SimpleTestCase

from apps.core.cache import TTLCache
from apps.core.exceptions import (
    AlreadySigned, IncompleteEmployeeSignatures, PayrollException, ValidationError,
)
from apps.core.utils import (
    format_salary_month, format_signed_at, get_client_ip, is_valid_salary_month, parse_bool,
)
from apps.core.views import ApiView, error_response


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TTLCacheTests(SimpleTestCase):
    """Tests for TTLCache with an injected clock."""

    def setUp(self):
        self.clock = FakeClock()
        self.cache = TTLCache(ttl_seconds=60, max_entries=2, clock=self.clock)

    def test_entry_expires_after_ttl(self):
        self.cache.set('a', 1)
        self.clock.advance(59)
        self.assertEqual(self.cache.get('a'), 1)
        self.clock.advance(1)
        self.assertIsNone(self.cache.get('a'))

    def test_least_recently_used_entry_is_evicted(self):
        self.cache.set('a', 1)
        self.cache.set('b', 2)
        self.cache.get('a')
        self.cache.set('c', 3)
        self.assertEqual(self.cache.get('a'), 1)
        self.assertIsNone(self.cache.get('b'))
        self.assertEqual(self.cache.get('c'), 3)

    def test_get_or_set_reports_cache_hits(self):
        calls = []

        def factory():
            calls.append(1)
            return 'value'

        self.assertEqual(self.cache.get_or_set('k', factory), ('value', False))
        self.assertEqual(self.cache.get_or_set('k', factory), ('value', True))
        self.assertEqual(self.cache.get_or_set('k', factory, force_refresh=True), ('value', False))
        self.assertEqual(len(calls), 2)

    def test_cached_none_is_a_hit(self):
        self.cache.set('k', None)
        self.assertEqual(self.cache.get_or_set('k', lambda: 'other'), (None, True))

    def test_len_ignores_expired_entries(self):
        self.cache.set('a', 1)
        self.clock.advance(61)
        self.assertEqual(len(self.cache), 0)

    def test_instances_do_not_share_state(self):
        other = TTLCache(ttl_seconds=60, clock=self.clock)
        self.cache.set('a', 1)
        self.assertIsNone(other.get('a'))

    def test_rejects_invalid_configuration(self):
        with self.assertRaises(ValueError):
            TTLCache(ttl_seconds=0)
        with self.assertRaises(ValueError):
            TTLCache(ttl_seconds=10, max_entries=0)


class SalaryMonthTests(SimpleTestCase):

    def test_monthly_format(self):
        self.assertTrue(is_valid_salary_month('2024-01'))
        self.assertTrue(is_valid_salary_month('2024-12'))
        for value in ('2024-13', '2024-00', '24-01', '2024-1', 'abcd-ef', '', None):
            self.assertFalse(is_valid_salary_month(value), value)

    def test_t13_format(self):
        self.assertTrue(is_valid_salary_month('2024-13', is_t13=True))
        self.assertFalse(is_valid_salary_month('2024-12', is_t13=True))

    def test_display(self):
        self.assertEqual(format_salary_month('2025-05'), 'Tháng 5 - 2025')
        self.assertEqual(format_salary_month('2025-13'), 'Lương Tháng 13 - 2025')

    def test_signed_at_uses_vietnam_time(self):
        value = datetime(2025, 5, 1, 3, 15, tzinfo=dt_timezone.utc)
        self.assertEqual(format_signed_at(value), '10:15 01/05/2025')
        self.assertEqual(format_signed_at(None), '')


class RequestHelperTests(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()

    def test_client_ip_prefers_forwarded_header(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2', HTTP_X_REAL_IP='10.0.0.9')
        self.assertEqual(get_client_ip(request), '10.0.0.1')

    def test_client_ip_falls_back_to_real_ip_then_remote_addr(self):
        self.assertEqual(get_client_ip(self.factory.get('/', HTTP_X_REAL_IP='10.0.0.9')), '10.0.0.9')
        self.assertEqual(get_client_ip(self.factory.get('/', REMOTE_ADDR='10.0.0.5')), '10.0.0.5')

    def test_parse_bool(self):
        self.assertTrue(parse_bool('true'))
        self.assertTrue(parse_bool('1'))
        self.assertTrue(parse_bool(True))
        self.assertFalse(parse_bool('false'))
        self.assertFalse(parse_bool(None))


class BrokenView(ApiView):
    def get(self, request):
        raise RuntimeError("boom")


class ConflictView(ApiView):
    def get(self, request):
        raise AlreadySigned()


class ApiViewTests(SimpleTestCase):
    """Tests for error rendering in the base API view."""

    def setUp(self):
        self.factory = RequestFactory()

    def test_payroll_exception_becomes_structured_response(self):
        response = ConflictView.as_view()(self.factory.get('/'))
        self.assertEqual(response.status_code, 409)
        body = json.loads(response.content)
        self.assertFalse(body['success'])
        self.assertEqual(body['error'], "Bạn đã ký nhận lương tháng này rồi")

    def test_unexpected_error_is_hidden(self):
        with self.assertLogs('apps.core.views', level='ERROR'):
            response = BrokenView.as_view()(self.factory.get('/'))
        self.assertEqual(response.status_code, 500)
        self.assertEqual(json.loads(response.content)['error'], "Lỗi hệ thống")

    def test_details_are_merged_into_error_body(self):
        exc = IncompleteEmployeeSignatures(details={'signed_employees': 9})
        response = error_response(exc)
        self.assertIsInstance(response, JsonResponse)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(json.loads(response.content)['signed_employees'], 9)

    def test_invalid_json_body(self):
        request = self.factory.post('/', data='not json', content_type='application/json')
        with self.assertRaises(ValidationError):
            ApiView().parse_json(request)

    def test_exception_defaults(self):
        exc = PayrollException()
        self.assertEqual(exc.status_code, 500)
        self.assertEqual(exc.to_dict()['message'], "Lỗi hệ thống")
