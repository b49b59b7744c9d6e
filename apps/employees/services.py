"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Employee credential services: login verification and
             password change.
-------------------------------------------------------------------------
"""
import logging
from typing import Optional

from django.db import transaction

from apps.core.exceptions import (
    EmployeeNotFound, InactiveEmployee, InvalidCredential, ValidationError
)
from apps.employees.models import Employee

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class EmployeeService:
    """Service for employee lookup and credential handling."""

    @staticmethod
    def get_employee(employee_id: Optional[str], active_only: bool = True) -> Employee:
        """
        Fetch an employee by external code.

        Args:
            employee_id: Employee code as typed; surrounding spaces are ignored.
            active_only: Treat locked employees as missing.

        Raises:
            EmployeeNotFound: If no matching employee exists.
        """
        code = (employee_id or '').strip()
        if not code:
            raise EmployeeNotFound()
        qs = Employee.objects.filter(employee_id=code)
        if active_only:
            qs = qs.filter(is_active=True)
        employee = qs.first()
        if employee is None:
            raise EmployeeNotFound()
        return employee

    @staticmethod
    def verify_credential(employee: Employee, raw_credential: Optional[str]) -> None:
        """
        Check a CCCD or password against the employee's authoritative hash.

        Raises:
            InvalidCredential: With a message naming the expected field.
        """
        if not employee.check_credential(raw_credential):
            logger.warning(
                f"Invalid credential for employee {employee.employee_id}",
                extra={'employee_id': employee.employee_id, 'credential_kind': employee.credential_kind}
            )
            raise InvalidCredential(employee.invalid_credential_message)

    @staticmethod
    def authenticate(employee_id: Optional[str], raw_credential: Optional[str]) -> Employee:
        """
        Look up an active employee and verify the credential.

        Returns:
            The authenticated Employee.

        Raises:
            EmployeeNotFound: Unknown or locked employee.
            InvalidCredential: Credential mismatch.
        """
        employee = EmployeeService.get_employee(employee_id)
        EmployeeService.verify_credential(employee, raw_credential)
        return employee

    @staticmethod
    @transaction.atomic
    def change_password(employee: Employee, current: str, new_password: str) -> Employee:
        """
        Replace the authoritative credential with a new password.

        Args:
            employee: Employee changing password.
            current: Current CCCD or password.
            new_password: New password.

        Raises:
            InvalidCredential: If current does not verify.
            ValidationError: If the new password is too short or unchanged.
        """
        if not employee.is_active:
            raise InactiveEmployee()
        EmployeeService.verify_credential(employee, current)
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Mật khẩu mới phải có ít nhất {MIN_PASSWORD_LENGTH} ký tự")
        if new_password == current:
            raise ValidationError("Mật khẩu mới phải khác mật khẩu hiện tại")

        employee.set_password(new_password)
        employee.save(update_fields=[
            'password_hash', 'credential_kind', 'last_password_change_at', 'updated_at'
        ])
        logger.info(
            f"Password changed for employee {employee.employee_id}",
            extra={'employee_id': employee.employee_id}
        )
        return employee
