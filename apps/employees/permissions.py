"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Access mixins for role-based view access control and
             role-scoped payroll query predicates.
-------------------------------------------------------------------------
"""
from typing import List

from django.db.models import QuerySet
from django.http import HttpRequest

from apps.core.exceptions import AuthorizationError
from apps.employees.auth import Principal, get_principal
from apps.employees.capabilities import ViewScope, MANAGEMENT_SIGNER_ROLES
from apps.employees.models import Role


class TokenRequiredMixin:
    """
    Mixin that requires a valid bearer token or auth cookie.

    Sets `self.principal` for the handler.
    """

    principal: Principal = None

    def check_access(self, request: HttpRequest) -> None:
        self.principal = get_principal(request)
        super().check_access(request)


class RoleRequiredMixin(TokenRequiredMixin):
    """
    Base mixin for role-based view access control.

    Subclasses should define the `required_roles` attribute as a list
    of role codes that are allowed to access the view.

    Attributes:
        required_roles: List of role codes that can access this view.
        forbidden_message: Message returned to other roles.
    """

    required_roles: List[str] = []
    forbidden_message = "Không có quyền truy cập"

    def check_access(self, request: HttpRequest) -> None:
        super().check_access(request)
        if not self.principal.is_any_role(*self.required_roles):
            raise AuthorizationError(self.forbidden_message)


class AdminRequiredMixin(RoleRequiredMixin):
    """
    Mixin that restricts access to admin.

    Used for imports and mapping configuration.
    """

    required_roles = [Role.ADMIN]


class ImportRequiredMixin(RoleRequiredMixin):
    """Mixin for data import views (admin and office staff)."""

    required_roles = [Role.ADMIN, Role.VAN_PHONG]


class ManagementRequiredMixin(RoleRequiredMixin):
    """Mixin for the management signers and admin."""

    required_roles = [Role.ADMIN, *MANAGEMENT_SIGNER_ROLES]


def scope_payroll_queryset(principal: Principal, queryset: QuerySet, employee_field: str = 'employee') -> QuerySet:
    """
    Restrict a payroll (or signature log) queryset to the caller's view.

    The restriction is applied as a query predicate so counts and
    pagination totals never include rows the caller cannot see.

    Args:
        principal: Authenticated caller.
        queryset: Queryset with a foreign key to Employee.
        employee_field: Name of that foreign key.

    Returns:
        Filtered queryset.
    """
    scope = principal.view_scope
    if scope == ViewScope.ALL:
        return queryset
    if scope == ViewScope.ALLOWED_DEPARTMENTS:
        departments = set(principal.allowed_departments)
        if principal.department:
            departments.add(principal.department)
        return queryset.filter(**{f'{employee_field}__department__in': sorted(departments)})
    if scope == ViewScope.OWN_DEPARTMENT:
        return queryset.filter(**{f'{employee_field}__department': principal.department})
    return queryset.filter(**{f'{employee_field}__employee_id': principal.employee_id})
