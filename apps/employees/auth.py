"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Token principal. Issues and decodes signed bearer tokens
             and exposes the authenticated principal to views.
-------------------------------------------------------------------------
"""
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from django.conf import settings
from django.http import HttpRequest
from django.utils import timezone
from jose import jwt, JWTError

from apps.core.exceptions import AuthenticationError
from apps.employees.capabilities import ViewScope, get_capability, get_permissions


@dataclass
class Principal:
    """
    Authenticated caller decoded from a bearer token or cookie.

    Attributes:
        employee_id: Caller's employee code.
        username: Display name.
        role: Role code (chuc_vu).
        department: Caller's own department.
        allowed_departments: Extra departments visible to truong_phong.
        permissions: Permission codes; 'ALL' grants everything.
    """
    employee_id: str
    username: str
    role: str
    department: str = ''
    allowed_departments: List[str] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)

    def is_role(self, name: str) -> bool:
        return self.role == name

    def is_any_role(self, *names: str) -> bool:
        return self.role in names

    def has_permission(self, permission: str) -> bool:
        return 'ALL' in self.permissions or permission in self.permissions

    @property
    def view_scope(self) -> str:
        return get_capability(self.role).view_scope

    def can_access_department(self, department: str) -> bool:
        """
        Check whether the caller may view a department's payroll.

        Args:
            department: Department name.

        Returns:
            True if the department is within the caller's view scope.
        """
        scope = self.view_scope
        if scope == ViewScope.ALL:
            return True
        if scope == ViewScope.ALLOWED_DEPARTMENTS:
            return department in self.allowed_departments or department == self.department
        if scope == ViewScope.OWN_DEPARTMENT:
            return department == self.department
        return False

    def to_claims(self) -> dict:
        return {
            'employee_id': self.employee_id,
            'username': self.username,
            'role': self.role,
            'department': self.department,
            'allowed_departments': list(self.allowed_departments),
            'permissions': list(self.permissions),
        }


def principal_for_employee(employee) -> Principal:
    """Build the principal for an Employee row."""
    return Principal(
        employee_id=employee.employee_id,
        username=employee.full_name,
        role=employee.chuc_vu,
        department=employee.department,
        allowed_departments=list(employee.allowed_departments or []),
        permissions=get_permissions(employee.chuc_vu),
    )


def issue_token(principal: Principal, expires_in: Optional[timedelta] = None) -> str:
    """
    Sign a token carrying the principal's claims.

    Args:
        principal: Principal to encode.
        expires_in: Token lifetime; defaults to JWT_EXPIRE_HOURS.

    Returns:
        Encoded token string.
    """
    lifetime = expires_in or timedelta(hours=settings.JWT_EXPIRE_HOURS)
    claims = principal.to_claims()
    claims['sub'] = principal.employee_id
    claims['exp'] = timezone.now() + lifetime
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Principal:
    """
    Decode and verify a token.

    Raises:
        AuthenticationError: If the token is malformed, forged or expired.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError("Token không hợp lệ")

    employee_id = payload.get('employee_id')
    role = payload.get('role')
    if not employee_id or not role:
        raise AuthenticationError("Token không hợp lệ")

    return Principal(
        employee_id=employee_id,
        username=payload.get('username', ''),
        role=role,
        department=payload.get('department') or '',
        allowed_departments=payload.get('allowed_departments') or [],
        permissions=payload.get('permissions') or [],
    )


def get_token_from_request(request: HttpRequest) -> Optional[str]:
    """Bearer token from the Authorization header, else the auth cookie."""
    header = request.META.get('HTTP_AUTHORIZATION', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip() or None
    return request.COOKIES.get(settings.AUTH_COOKIE_NAME) or None


def get_principal(request: HttpRequest) -> Principal:
    """
    Resolve the authenticated principal for a request.

    Raises:
        AuthenticationError: If no token is present or it is invalid.
    """
    token = get_token_from_request(request)
    if not token:
        raise AuthenticationError("Chưa đăng nhập")
    return decode_token(token)
