"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Employee login, profile and password change endpoints.
-------------------------------------------------------------------------
"""
import logging

from django.conf import settings
from django.http import JsonResponse

from apps.core.exceptions import ValidationError
from apps.core.views import ApiView
from apps.employees.auth import issue_token, principal_for_employee
from apps.employees.capabilities import role_display_name
from apps.employees.permissions import TokenRequiredMixin
from apps.employees.services import EmployeeService

logger = logging.getLogger(__name__)


class LoginView(ApiView):
    """
    Exchange employee_id + CCCD/password for a signed token.

    The token is returned in the body and set as an HTTP-only cookie.
    """

    server_error_message = "Lỗi hệ thống khi đăng nhập"

    def post(self, request):
        data = self.parse_json(request)
        employee_id = (data.get('employee_id') or data.get('username') or '').strip()
        password = data.get('password') or data.get('cccd') or ''
        if not employee_id or not password:
            raise ValidationError("Thiếu mã nhân viên hoặc mật khẩu")

        employee = EmployeeService.authenticate(employee_id, password)
        principal = principal_for_employee(employee)
        token = issue_token(principal)

        logger.info(
            f"Employee logged in: {employee.employee_id}",
            extra={'employee_id': employee.employee_id, 'role': employee.chuc_vu}
        )

        response = JsonResponse({
            'success': True,
            'token': token,
            'user': {
                **principal.to_claims(),
                'role_display': role_display_name(principal.role),
                'must_change_password': not employee.uses_changed_password,
            }
        })
        response.set_cookie(
            settings.AUTH_COOKIE_NAME,
            token,
            max_age=settings.JWT_EXPIRE_HOURS * 3600,
            httponly=True,
            samesite='Lax',
            secure=not settings.DEBUG,
        )
        return response


class MeView(TokenRequiredMixin, ApiView):
    """Return the principal decoded from the caller's token."""

    def get(self, request):
        return JsonResponse({
            'success': True,
            'user': {
                **self.principal.to_claims(),
                'role_display': role_display_name(self.principal.role),
            }
        })


class ChangePasswordView(TokenRequiredMixin, ApiView):
    """Change the caller's password (replaces the CCCD credential)."""

    server_error_message = "Lỗi hệ thống khi đổi mật khẩu"

    def post(self, request):
        data = self.parse_json(request)
        current = data.get('current_password') or ''
        new_password = data.get('new_password') or ''
        if not current or not new_password:
            raise ValidationError("Thiếu mật khẩu hiện tại hoặc mật khẩu mới")

        employee = EmployeeService.get_employee(self.principal.employee_id)
        EmployeeService.change_password(employee, current, new_password)
        return JsonResponse({
            'success': True,
            'message': "Đổi mật khẩu thành công"
        })
