"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Signature endpoints: employee sign, management sign,
             status, progress and signing history.
-------------------------------------------------------------------------
"""
from django.core.paginator import Paginator
from django.http import JsonResponse

from apps.core.exceptions import ValidationError
from apps.core.utils import format_salary_month, format_signed_at, get_client_ip, get_user_agent, parse_bool
from apps.core.views import ApiView
from apps.employees.permissions import ManagementRequiredMixin, TokenRequiredMixin, scope_payroll_queryset
from apps.signatures.models import SignatureLog
from apps.signatures.progress import signature_progress, signature_status
from apps.signatures.services import SignatureService, signature_to_dict
from apps.signatures.workflows import validate_salary_month


class EmployeeSignView(ApiView):
    """
    Employee signs their payroll with employee_id + CCCD (or password).

    No token is required; the credential is verified on every call.
    """

    server_error_message = "Lỗi hệ thống khi ký tên"

    def post(self, request):
        data = self.parse_json(request)
        employee_id = str(data.get('employee_id') or '').strip()
        credential = str(data.get('cccd') or data.get('password') or '').strip()
        salary_month = str(data.get('salary_month') or '').strip()
        if not employee_id or not credential or not salary_month:
            raise ValidationError("Thiếu thông tin bắt buộc")

        result = SignatureService.sign_employee_payroll(
            employee_id,
            credential,
            salary_month,
            is_t13=parse_bool(data.get('is_t13')),
            ip_address=get_client_ip(request),
            device_info=get_user_agent(request)
        )
        return JsonResponse({
            'success': True,
            'message': "Ký nhận lương thành công!",
            'data': result
        })


class ManagementSignView(ManagementRequiredMixin, ApiView):
    """Director, accountant or report preparer signs off a payroll period."""

    forbidden_message = "Không có quyền ký xác nhận"
    server_error_message = "Lỗi hệ thống khi ký xác nhận"

    def post(self, request):
        data = self.parse_json(request)
        salary_month = str(data.get('salary_month') or '').strip()
        signature_type = str(data.get('signature_type') or '').strip()
        if not salary_month or not signature_type:
            raise ValidationError("Thiếu tháng lương hoặc loại chữ ký")
        is_t13 = parse_bool(data.get('is_t13'))

        signature = SignatureService.sign_management(
            self.principal,
            salary_month,
            signature_type,
            is_t13=is_t13,
            notes=str(data.get('notes') or ''),
            ip_address=get_client_ip(request),
            device_info=get_user_agent(request)
        )
        return JsonResponse({
            'success': True,
            'message': "Ký xác nhận thành công",
            'signature': signature_to_dict(signature),
            'status': signature_status(signature.salary_month, is_t13)
        }, status=201)


class SignatureStatusView(ManagementRequiredMixin, ApiView):
    def get(self, request, salary_month):
        is_t13 = parse_bool(request.GET.get('is_t13'))
        month = validate_salary_month(salary_month, is_t13)
        return JsonResponse({'success': True, **signature_status(month, is_t13)})


class SignatureProgressView(ManagementRequiredMixin, ApiView):
    """Polling endpoint for the signing dashboard."""

    def get(self, request, salary_month):
        is_t13 = parse_bool(request.GET.get('is_t13'))
        month = validate_salary_month(salary_month, is_t13)
        return JsonResponse({'success': True, **signature_progress(month, is_t13)})


class SignatureHistoryView(TokenRequiredMixin, ApiView):
    """Employee signing audit log, limited to the caller's view scope."""

    def get(self, request):
        params = request.GET
        logs = scope_payroll_queryset(
            self.principal,
            SignatureLog.objects.select_related('employee')
        )
        if params.get('salary_month'):
            logs = logs.filter(salary_month=params['salary_month'])
        if params.get('employee_id'):
            logs = logs.filter(employee_id=params['employee_id'].strip())

        try:
            page_size = min(max(int(params.get('page_size', 50)), 1), 200)
        except ValueError:
            page_size = 50
        paginator = Paginator(logs.order_by('-signed_at'), page_size)
        page = paginator.get_page(params.get('page'))
        return JsonResponse({
            'success': True,
            'history': [
                {
                    'employee_id': log.employee_id,
                    'full_name': log.employee.full_name,
                    'department': log.employee.department,
                    'salary_month': log.salary_month,
                    'salary_month_display': format_salary_month(log.salary_month),
                    'payroll_type': log.payroll_type,
                    'signed_at': log.signed_at.isoformat(),
                    'signed_at_display': format_signed_at(log.signed_at),
                    'ip_address': log.ip_address,
                }
                for log in page.object_list
            ],
            'pagination': {
                'page': page.number,
                'page_size': page_size,
                'total': paginator.count,
                'total_pages': paginator.num_pages,
            }
        })
