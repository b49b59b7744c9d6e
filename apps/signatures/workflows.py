"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Signing rules. Employee completion gating and the
             role to signature type check used before a management
             signature is created.
-------------------------------------------------------------------------
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from apps.core.exceptions import (
    IncompleteEmployeeSignatures, InvalidSignatureType, SignatureRoleMismatch, ValidationError,
)
from apps.core.utils import is_valid_salary_month
from apps.employees.capabilities import can_sign_management
from apps.signatures.models import SignatureType


def signature_types() -> List[str]:
    """Management signature types required per period."""
    return list(SignatureType.values)


@dataclass(frozen=True)
class EmployeeCompletion:
    """
    Employee signing progress for one period.

    Attributes:
        total: Employees with a payroll record in the period.
        signed: How many of those records are signed.
    """
    total: int
    signed: int

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return round(self.signed / self.total * 100, 2)

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.signed == self.total

    @property
    def remaining(self) -> int:
        return self.total - self.signed

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_employees_with_payroll': self.total,
            'signed_employees': self.signed,
            'completion_percentage': self.percentage,
        }


def validate_salary_month(salary_month: Optional[str], is_t13: bool = False) -> str:
    """
    Check the month format for the payroll mode.

    Raises:
        ValidationError: YYYY-MM expected for monthly payroll, YYYY-13
            for the 13th month.
    """
    month = (salary_month or '').strip()
    if not is_valid_salary_month(month, is_t13=is_t13):
        if is_t13:
            raise ValidationError("Định dạng tháng không hợp lệ (YYYY-13)")
        raise ValidationError("Định dạng tháng không hợp lệ (YYYY-MM)")
    return month


def validate_signature_type(signature_type: Optional[str]) -> str:
    if signature_type not in signature_types():
        raise InvalidSignatureType(details={'valid_types': signature_types()})
    return signature_type


def validate_signer_role(role: Optional[str], signature_type: str) -> None:
    """
    Raises:
        SignatureRoleMismatch: Role is not admin and differs from the type.
    """
    if not can_sign_management(role, signature_type):
        raise SignatureRoleMismatch(details={
            'user_role': role,
            'requested_signature_type': signature_type,
        })


def require_complete(completion: EmployeeCompletion) -> None:
    """
    Raises:
        IncompleteEmployeeSignatures: Unless every employee with payroll
            in the period has signed (and at least one has payroll).
    """
    if completion.is_complete:
        return
    details = completion.to_dict()
    if completion.total == 0:
        details['message'] = "Chưa có bảng lương cho tháng này"
    else:
        details['message'] = f"Cần {completion.remaining} nhân viên ký thêm để đạt 100%"
    raise IncompleteEmployeeSignatures(details=details)
