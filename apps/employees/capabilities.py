"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Role capability table. Each role maps to the management
             signature it may create and the payroll rows it may view.
-------------------------------------------------------------------------
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from django.db import models

from apps.employees.models import Role


class ViewScope(models.TextChoices):
    """Breadth of payroll data visible to a role."""
    ALL = 'all'
    ALLOWED_DEPARTMENTS = 'allowed_departments'
    OWN_DEPARTMENT = 'own_department'
    OWN = 'own'


# Roles whose position doubles as a management signature type
MANAGEMENT_SIGNER_ROLES: Tuple[str, ...] = (
    Role.GIAM_DOC,
    Role.KE_TOAN,
    Role.NGUOI_LAP_BIEU,
)


@dataclass(frozen=True)
class RoleCapability:
    """
    What a role is allowed to do.

    Attributes:
        sign_type: Management signature type the role creates, if any.
        can_sign_any: True for roles acting on behalf of any signer.
        view_scope: Breadth of payroll data visible to the role.
        permissions: Permission codes carried in the auth token.
    """
    sign_type: Optional[str]
    can_sign_any: bool
    view_scope: str
    permissions: Tuple[str, ...]


ROLE_CAPABILITIES: Dict[str, RoleCapability] = {
    Role.ADMIN: RoleCapability(
        sign_type=None, can_sign_any=True, view_scope=ViewScope.ALL,
        permissions=('ALL',),
    ),
    Role.GIAM_DOC: RoleCapability(
        sign_type=Role.GIAM_DOC, can_sign_any=False, view_scope=ViewScope.ALL,
        permissions=('VIEW_PAYROLL', 'VIEW_EMPLOYEES', 'VIEW_REPORTS', 'EXPORT_DATA',
                     'VIEW_FINANCIAL', 'APPROVE_PAYROLL', 'MANAGE_DEPARTMENTS'),
    ),
    Role.KE_TOAN: RoleCapability(
        sign_type=Role.KE_TOAN, can_sign_any=False, view_scope=ViewScope.ALL,
        permissions=('VIEW_PAYROLL', 'VIEW_FINANCIAL', 'EXPORT_DATA', 'MANAGE_PAYROLL', 'VIEW_REPORTS'),
    ),
    Role.NGUOI_LAP_BIEU: RoleCapability(
        sign_type=Role.NGUOI_LAP_BIEU, can_sign_any=False, view_scope=ViewScope.ALL,
        permissions=('VIEW_PAYROLL', 'VIEW_EMPLOYEES', 'VIEW_REPORTS', 'EXPORT_DATA', 'CREATE_REPORTS'),
    ),
    Role.VAN_PHONG: RoleCapability(
        sign_type=None, can_sign_any=False, view_scope=ViewScope.ALL,
        permissions=('VIEW_PAYROLL', 'VIEW_EMPLOYEES', 'IMPORT_DATA'),
    ),
    Role.TRUONG_PHONG: RoleCapability(
        sign_type=None, can_sign_any=False, view_scope=ViewScope.ALLOWED_DEPARTMENTS,
        permissions=('VIEW_PAYROLL', 'VIEW_EMPLOYEES', 'VIEW_REPORTS', 'EXPORT_DATA'),
    ),
    Role.TO_TRUONG: RoleCapability(
        sign_type=None, can_sign_any=False, view_scope=ViewScope.OWN_DEPARTMENT,
        permissions=('VIEW_PAYROLL', 'VIEW_EMPLOYEES', 'VIEW_REPORTS'),
    ),
    Role.NHAN_VIEN: RoleCapability(
        sign_type=None, can_sign_any=False, view_scope=ViewScope.OWN,
        permissions=('VIEW_OWN_PAYROLL',),
    ),
}

NO_CAPABILITY = RoleCapability(sign_type=None, can_sign_any=False, view_scope=ViewScope.OWN, permissions=())


def get_capability(role: Optional[str]) -> RoleCapability:
    """Capability for a role code; unknown roles get the narrowest one."""
    return ROLE_CAPABILITIES.get(role, NO_CAPABILITY)


def can_sign_management(role: Optional[str], signature_type: str) -> bool:
    """
    Check whether a role may create a management signature of a type.

    Args:
        role: Caller's role code.
        signature_type: Requested management signature type.

    Returns:
        True if the role's own type matches, or the role signs any type.
    """
    capability = get_capability(role)
    if capability.can_sign_any:
        return True
    return capability.sign_type is not None and capability.sign_type == signature_type


def signable_types(role: Optional[str], all_types: List[str]) -> List[str]:
    """Management signature types the role may create."""
    return [t for t in all_types if can_sign_management(role, t)]


def get_permissions(role: Optional[str]) -> List[str]:
    return list(get_capability(role).permissions)


def role_display_name(role: Optional[str]) -> str:
    """Vietnamese label for a role code, or the code itself."""
    try:
        return str(Role(role).label)
    except ValueError:
        return role or ''
