"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Payroll read services: employee lookup, role-scoped
             listing, department summaries and data validation.
-------------------------------------------------------------------------
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.core.paginator import Paginator
from django.db.models import Count, Q
from django.utils import timezone

from apps.core.cache import TTLCache
from apps.core.exceptions import PayrollRecordNotFound, ValidationError
from apps.core.utils import format_salary_month, format_signed_at, is_valid_salary_month
from apps.employees.auth import Principal
from apps.employees.models import Employee
from apps.employees.permissions import scope_payroll_queryset
from apps.employees.services import EmployeeService
from apps.payroll.fields import NUMERIC_FIELDS
from apps.payroll.models import PayrollRecord, PayrollType

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


def payroll_to_dict(record: PayrollRecord, include_amounts: bool = True) -> Dict[str, Any]:
    """Serialize a payroll record for JSON responses."""
    data: Dict[str, Any] = {
        'id': record.pk,
        'employee_id': record.employee_id,
        'full_name': record.employee.full_name,
        'department': record.employee.department,
        'chuc_vu': record.employee.chuc_vu,
        'salary_month': record.salary_month,
        'salary_month_display': format_salary_month(record.salary_month),
        'payroll_type': record.payroll_type,
        'is_signed': record.is_signed,
        'signed_at': record.signed_at.isoformat() if record.signed_at else None,
        'signed_at_display': format_signed_at(record.signed_at),
        'signed_by_name': record.signed_by_name,
        'source_file': record.source_file,
        'import_batch_id': record.import_batch_id,
    }
    if include_amounts:
        for field in NUMERIC_FIELDS:
            value = getattr(record, field)
            data[field] = float(value) if isinstance(value, Decimal) else value
    return data


class PayrollService:
    """Service for payroll lookup and listing."""

    @staticmethod
    def lookup_for_employee(
        employee_id: str,
        credential: str,
        salary_month: Optional[str] = None,
        is_t13: bool = False
    ) -> PayrollRecord:
        """
        Return an employee's payroll after verifying their credential.

        Args:
            employee_id: Employee code.
            credential: CCCD or password.
            salary_month: Requested month; the latest one when omitted.
            is_t13: Look up the 13th-month payroll.

        Raises:
            EmployeeNotFound, InvalidCredential, ValidationError,
            PayrollRecordNotFound
        """
        employee = EmployeeService.authenticate(employee_id, credential)
        payroll_type = PayrollType.T13 if is_t13 else PayrollType.MONTHLY

        qs = PayrollRecord.objects.select_related('employee').filter(
            employee=employee,
            payroll_type=payroll_type
        )
        if salary_month:
            if not is_valid_salary_month(salary_month, is_t13):
                raise ValidationError(
                    "Tháng lương 13 phải có dạng YYYY-13" if is_t13
                    else "Định dạng tháng không hợp lệ (YYYY-MM)"
                )
            qs = qs.filter(salary_month=salary_month)

        record = qs.order_by('-salary_month').first()
        if record is None:
            raise PayrollRecordNotFound()
        return record

    @staticmethod
    def list_for_principal(
        principal: Principal,
        salary_month: Optional[str] = None,
        department: Optional[str] = None,
        search: Optional[str] = None,
        is_signed: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Dict[str, Any]:
        """
        Paginated payroll list restricted to the caller's view scope.

        Returns:
            Dict with 'results' and 'pagination'.
        """
        qs = scope_payroll_queryset(
            principal,
            PayrollRecord.objects.select_related('employee')
        )
        if salary_month:
            qs = qs.filter(salary_month=salary_month)
        if department:
            qs = qs.filter(employee__department=department)
        if search:
            qs = qs.filter(
                Q(employee__employee_id__icontains=search) |
                Q(employee__full_name__icontains=search)
            )
        if is_signed is not None:
            qs = qs.filter(is_signed=is_signed)

        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        paginator = Paginator(qs.order_by('employee__department', 'employee_id', 'salary_month'), page_size)
        page_obj = paginator.get_page(page)

        return {
            'results': [payroll_to_dict(r) for r in page_obj.object_list],
            'pagination': {
                'page': page_obj.number,
                'page_size': page_size,
                'total': paginator.count,
                'total_pages': paginator.num_pages,
            }
        }

    @staticmethod
    def department_summary(principal: Principal, salary_month: str) -> List[Dict[str, Any]]:
        """
        Per-department signed/unsigned counts for a month.

        Only departments within the caller's view scope are returned.
        """
        qs = scope_payroll_queryset(
            principal,
            PayrollRecord.objects.filter(salary_month=salary_month)
        )
        rows = (
            qs.values('employee__department')
            .annotate(
                total=Count('id'),
                signed=Count('id', filter=Q(is_signed=True))
            )
            .order_by('employee__department')
        )
        summary = []
        for row in rows:
            total = row['total']
            signed = row['signed']
            summary.append({
                'department': row['employee__department'],
                'total_employees': total,
                'signed_count': signed,
                'unsigned_count': total - signed,
                'completion_percentage': round(signed / total * 100, 2) if total else 0,
            })
        return summary


class DataValidationService:
    """
    Lists active employees with no payroll for a month.

    Results are cached per month in a TTLCache owned by the caller.
    """

    def __init__(self, cache: TTLCache) -> None:
        self.cache = cache

    @staticmethod
    def cache_key(salary_month: str) -> str:
        return f"validation_{salary_month}"

    def check_month(self, salary_month: str, force_refresh: bool = False) -> Dict[str, Any]:
        """
        Compare active employees against payroll rows for a month.

        Args:
            salary_month: YYYY-MM or YYYY-13.
            force_refresh: Ignore any cached result.

        Returns:
            Dict with counts, the missing employees and a from_cache flag.
        """
        is_t13 = salary_month.endswith('-13') if salary_month else False
        if not is_valid_salary_month(salary_month, is_t13):
            raise ValidationError("Định dạng tháng không hợp lệ (YYYY-MM)")

        result, from_cache = self.cache.get_or_set(
            self.cache_key(salary_month),
            lambda: self._compute(salary_month),
            force_refresh=force_refresh
        )
        return {**result, 'from_cache': from_cache}

    def _compute(self, salary_month: str) -> Dict[str, Any]:
        active = Employee.objects.filter(is_active=True)
        with_payroll = PayrollRecord.objects.filter(salary_month=salary_month).values('employee_id')
        missing = active.exclude(employee_id__in=with_payroll).order_by('department', 'employee_id')

        missing_list = [
            {
                'employee_id': e.employee_id,
                'full_name': e.full_name,
                'department': e.department,
                'chuc_vu': e.chuc_vu,
            }
            for e in missing
        ]
        total_active = active.count()
        logger.info(
            f"Data validation computed for {salary_month}: {len(missing_list)} missing",
            extra={'salary_month': salary_month, 'missing': len(missing_list)}
        )
        return {
            'salary_month': salary_month,
            'total_active_employees': total_active,
            'employees_with_payroll': total_active - len(missing_list),
            'missing_count': len(missing_list),
            'missing_employees': missing_list,
            'generated_at': timezone.now().isoformat(),
        }
