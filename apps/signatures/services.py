"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Signature services. Employee signing is a transactional
             compare-and-swap on the payroll row; management signing
             re-derives employee completion from locked rows before
             inserting the sign-off.
-------------------------------------------------------------------------
"""
from typing import Any, Dict, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.core.exceptions import (
    AlreadySigned, AuthorizationError, EmployeeNotFound, InactiveEmployee,
    IncompleteEmployeeSignatures, PayrollRecordNotFound, SignatureAlreadyExists,
    SignatureRoleMismatch,
)
from apps.core.utils import format_salary_month, format_signed_at, vietnam_now
from apps.employees.auth import Principal
from apps.employees.capabilities import MANAGEMENT_SIGNER_ROLES
from apps.employees.models import Role
from apps.employees.services import EmployeeService
from apps.payroll.models import PayrollRecord, PayrollType
from apps.signatures.logging import SignatureLogger
from apps.signatures.models import ManagementSignature, SignatureLog
from apps.signatures.workflows import (
    EmployeeCompletion, require_complete, validate_salary_month,
    validate_signature_type, validate_signer_role,
)


def payroll_type_for(is_t13: bool) -> str:
    return PayrollType.T13 if is_t13 else PayrollType.MONTHLY


def signature_to_dict(signature: ManagementSignature) -> Dict[str, Any]:
    return {
        'id': signature.pk,
        'salary_month': signature.salary_month,
        'payroll_type': signature.payroll_type,
        'signature_type': signature.signature_type,
        'signature_type_display': signature.get_signature_type_display(),
        'signed_by_id': signature.signed_by_id,
        'signed_by_name': signature.signed_by_name,
        'department': signature.department,
        'signed_at': signature.signed_at.isoformat(),
        'signed_at_display': format_signed_at(signature.signed_at),
        'notes': signature.notes,
    }


class SignatureService:
    """Service for employee and management signing."""

    @staticmethod
    def sign_employee_payroll(
        employee_id: str,
        credential: str,
        salary_month: str,
        is_t13: bool = False,
        ip_address: str = '',
        device_info: str = ''
    ) -> Dict[str, Any]:
        """
        Sign an employee's payroll for a month.

        The unsigned to signed transition and the SignatureLog insert
        commit together. Of two concurrent calls for the same record
        exactly one succeeds; the other raises AlreadySigned.

        Args:
            employee_id: Employee code.
            credential: CCCD, or password once it has been changed.
            salary_month: YYYY-MM, or YYYY-13 with is_t13.
            is_t13: Sign the 13th-month payroll.
            ip_address: Client address for the audit log.
            device_info: Client user-agent for the audit log.

        Returns:
            Signer name, signed time (raw and display) and month.

        Raises:
            ValidationError: Malformed month.
            EmployeeNotFound: Unknown or locked employee.
            InvalidCredential: Credential mismatch.
            PayrollRecordNotFound: No payroll for the month.
            AlreadySigned: Record was already signed.
        """
        month = validate_salary_month(salary_month, is_t13)
        employee = EmployeeService.authenticate(employee_id, credential)
        payroll_type = payroll_type_for(is_t13)

        with transaction.atomic():
            record = PayrollRecord.objects.select_for_update().filter(
                employee_id=employee.employee_id,
                salary_month=month,
                payroll_type=payroll_type
            ).first()
            if record is None:
                raise PayrollRecordNotFound()

            signed_at = vietnam_now()
            updated = PayrollRecord.objects.filter(pk=record.pk, is_signed=False).update(
                is_signed=True,
                signed_at=signed_at,
                signed_by_name=employee.full_name,
                updated_at=timezone.now()
            )
            if not updated:
                SignatureLogger.log_duplicate_sign(employee.employee_id, month)
                # The locked read may predate a concurrent sign; report the stored time.
                existing_at = record.signed_at or PayrollRecord.objects.filter(
                    pk=record.pk
                ).values_list('signed_at', flat=True).first()
                raise AlreadySigned(details={
                    'signed_at': existing_at.isoformat() if existing_at else None,
                    'signed_at_display': format_signed_at(existing_at),
                })

            SignatureLog.objects.create(
                employee=employee,
                salary_month=month,
                payroll_type=payroll_type,
                signed_by_name=employee.full_name,
                signed_at=signed_at,
                ip_address=ip_address[:64],
                device_info=device_info
            )

        SignatureLogger.log_employee_signed(employee.employee_id, month, payroll_type, ip_address)
        return {
            'employee_id': employee.employee_id,
            'employee_name': employee.full_name,
            'signed_at': signed_at.isoformat(),
            'signed_at_display': format_signed_at(signed_at),
            'salary_month': month,
            'salary_month_display': format_salary_month(month),
        }

    @staticmethod
    def employee_completion(salary_month: str, payroll_type: str, lock: bool = False) -> EmployeeCompletion:
        """
        Count payroll records and signed records for a period.

        With lock=True the rows are read with SELECT ... FOR UPDATE, so
        the caller must be inside a transaction.
        """
        qs = PayrollRecord.objects.filter(salary_month=salary_month, payroll_type=payroll_type)
        if lock:
            flags = list(qs.select_for_update().values_list('is_signed', flat=True))
            return EmployeeCompletion(total=len(flags), signed=sum(1 for f in flags if f))
        return EmployeeCompletion(total=qs.count(), signed=qs.filter(is_signed=True).count())

    @staticmethod
    def sign_management(
        principal: Principal,
        salary_month: str,
        signature_type: str,
        is_t13: bool = False,
        notes: str = '',
        ip_address: str = '',
        device_info: str = ''
    ) -> ManagementSignature:
        """
        Create a management signature for a period.

        Checks, in order: signer role, month format, signature type,
        role to type match, active signer, stored role to type match,
        100% employee completion, no existing active signature of the
        type.

        Raises:
            AuthorizationError: Caller is not a management signer.
            ValidationError: Malformed month.
            InvalidSignatureType: Unknown signature type.
            SignatureRoleMismatch: Role may not sign this type.
            InactiveEmployee: Signer is unknown or locked.
            IncompleteEmployeeSignatures: Employees not 100% signed.
            SignatureAlreadyExists: Type already signed for the period.
        """
        if not principal.is_any_role(Role.ADMIN, *MANAGEMENT_SIGNER_ROLES):
            raise AuthorizationError("Không có quyền ký xác nhận")
        month = validate_salary_month(salary_month, is_t13)
        signature_type = validate_signature_type(signature_type)
        try:
            validate_signer_role(principal.role, signature_type)
        except SignatureRoleMismatch:
            SignatureLogger.log_management_rejected(signature_type, month, principal.employee_id, 'role_mismatch')
            raise

        try:
            signer = EmployeeService.get_employee(principal.employee_id)
        except EmployeeNotFound:
            raise InactiveEmployee()
        # The stored role wins over the token claim, which may predate a role change.
        try:
            validate_signer_role(signer.chuc_vu, signature_type)
        except SignatureRoleMismatch:
            SignatureLogger.log_management_rejected(
                signature_type, month, principal.employee_id, 'stored_role_mismatch'
            )
            raise

        payroll_type = payroll_type_for(is_t13)
        with transaction.atomic():
            completion = SignatureService.employee_completion(month, payroll_type, lock=True)
            try:
                require_complete(completion)
            except IncompleteEmployeeSignatures:
                SignatureLogger.log_management_rejected(
                    signature_type, month, principal.employee_id, 'incomplete_employee_signatures'
                )
                raise

            existing = ManagementSignature.objects.filter(
                salary_month=month,
                payroll_type=payroll_type,
                signature_type=signature_type,
                is_active=True
            ).first()
            if existing is not None:
                raise SignatureAlreadyExists(details={'existing_signature': signature_to_dict(existing)})

            try:
                with transaction.atomic():
                    signature = ManagementSignature.objects.create(
                        salary_month=month,
                        payroll_type=payroll_type,
                        signature_type=signature_type,
                        signed_by_id=signer.employee_id,
                        signed_by_name=signer.full_name,
                        department=signer.department,
                        signed_at=vietnam_now(),
                        ip_address=ip_address[:64],
                        device_info=device_info,
                        notes=notes or ''
                    )
            except IntegrityError:
                raise SignatureAlreadyExists()

        SignatureLogger.log_management_signed(signature_type, month, signer.employee_id)
        return signature

    @staticmethod
    def deactivate_management_signature(signature: ManagementSignature, reason: Optional[str] = None) -> None:
        """Soft-invalidate a management signature; the row is kept."""
        signature.is_active = False
        if reason:
            signature.notes = f"{signature.notes}\n{reason}".strip()
        signature.save(update_fields=['is_active', 'notes', 'updated_at'])
