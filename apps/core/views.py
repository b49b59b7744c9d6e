"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Base JSON API view. Converts payroll exceptions into
             structured error responses and hides unexpected errors
             behind a generic message.
-------------------------------------------------------------------------
"""
import json
import logging
from typing import Any, Dict

from django.http import HttpRequest, JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.core.exceptions import PayrollException, ValidationError

logger = logging.getLogger(__name__)


def error_response(exc: PayrollException) -> JsonResponse:
    """Render a payroll exception as {'success': False, 'error': ...}."""
    payload: Dict[str, Any] = {
        'success': False,
        'error': exc.message,
        'error_code': exc.error_code,
    }
    payload.update(exc.details)
    return JsonResponse(payload, status=exc.status_code)


@method_decorator(csrf_exempt, name='dispatch')
class ApiView(View):
    """
    Base class for token-authenticated JSON endpoints.

    Subclasses (and access mixins) override check_access() to reject
    the request by raising a PayrollException before the handler runs.

    Attributes:
        server_error_message: Message returned for unexpected errors.
    """

    server_error_message = "Lỗi hệ thống"

    def dispatch(self, request: HttpRequest, *args, **kwargs):
        try:
            self.check_access(request)
            return super().dispatch(request, *args, **kwargs)
        except PayrollException as e:
            return error_response(e)
        except Exception as e:
            logger.error(
                f"Unhandled error in {self.__class__.__name__}: {e}",
                exc_info=True,
                extra={'path': request.path, 'method': request.method}
            )
            return JsonResponse({
                'success': False,
                'error': self.server_error_message
            }, status=500)

    def check_access(self, request: HttpRequest) -> None:
        """Hook for access checks. The base view allows everyone."""

    def parse_json(self, request: HttpRequest) -> Dict[str, Any]:
        """
        Decode a JSON request body.

        Raises:
            ValidationError: If the body is not a JSON object.
        """
        if not request.body:
            return {}
        try:
            data = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("Dữ liệu JSON không hợp lệ")
        if not isinstance(data, dict):
            raise ValidationError("Dữ liệu JSON không hợp lệ")
        return data
