"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Payroll lookup, role-scoped listing, department summary
             and data validation endpoints.
-------------------------------------------------------------------------
"""
from django.http import JsonResponse

from apps.core.cache import TTLCache
from apps.core.exceptions import ValidationError
from apps.core.utils import parse_bool
from apps.core.views import ApiView
from apps.employees.permissions import AdminRequiredMixin, TokenRequiredMixin
from apps.payroll.services import DataValidationService, PayrollService, payroll_to_dict


def _int_param(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class PayrollLookupView(ApiView):
    """
    Employee payroll lookup with employee_id + CCCD (or password).

    No token is required; the credential is verified on every call.
    """

    server_error_message = "Lỗi hệ thống khi tra cứu lương"

    def post(self, request):
        data = self.parse_json(request)
        employee_id = (data.get('employee_id') or '').strip()
        credential = (data.get('cccd') or data.get('password') or '').strip()
        if not employee_id or not credential:
            raise ValidationError("Vui lòng nhập đầy đủ mã nhân viên và số CCCD")

        record = PayrollService.lookup_for_employee(
            employee_id,
            credential,
            salary_month=(data.get('salary_month') or '').strip() or None,
            is_t13=parse_bool(data.get('is_t13'))
        )
        return JsonResponse({
            'success': True,
            'payroll': payroll_to_dict(record)
        })


class PayrollListView(TokenRequiredMixin, ApiView):
    """Paginated payroll list filtered by the caller's role scope."""

    def get(self, request):
        params = request.GET
        signed_param = params.get('is_signed')
        result = PayrollService.list_for_principal(
            self.principal,
            salary_month=params.get('salary_month') or None,
            department=params.get('department') or None,
            search=(params.get('search') or '').strip() or None,
            is_signed=None if signed_param in (None, '') else parse_bool(signed_param),
            page=_int_param(params.get('page'), 1),
            page_size=_int_param(params.get('page_size'), 20),
        )
        return JsonResponse({'success': True, **result})


class DepartmentSummaryView(TokenRequiredMixin, ApiView):
    """Signed/unsigned counts per visible department for a month."""

    def get(self, request):
        salary_month = request.GET.get('salary_month')
        if not salary_month:
            raise ValidationError("Thiếu tháng lương")
        departments = PayrollService.department_summary(self.principal, salary_month)
        return JsonResponse({
            'success': True,
            'salary_month': salary_month,
            'departments': departments,
            'total_departments': len(departments),
        })


class DataValidationView(AdminRequiredMixin, ApiView):
    """
    Active employees missing payroll for a month.

    Attributes:
        cache: TTLCache passed in from the URLconf via as_view().
    """

    cache: TTLCache = None

    def get(self, request):
        month = request.GET.get('month') or request.GET.get('salary_month')
        if not month:
            raise ValidationError("Thiếu tháng cần kiểm tra")
        service = DataValidationService(self.cache)
        result = service.check_month(month, force_refresh=parse_bool(request.GET.get('force_refresh')))
        return JsonResponse({'success': True, **result})
