"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Centralized logging for signature operations.
-------------------------------------------------------------------------
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger('signatures')


class SignatureLogger:
    """Centralized logging for signature operations"""

    @staticmethod
    def log_employee_signed(employee_id: str, salary_month: str, payroll_type: str, ip_address: str):
        logger.info(
            f"Employee signed: {employee_id} | "
            f"Month: {salary_month} | "
            f"Type: {payroll_type} | "
            f"IP: {ip_address}",
            extra={
                'employee_id': employee_id,
                'salary_month': salary_month,
                'payroll_type': payroll_type,
                'ip_address': ip_address
            }
        )

    @staticmethod
    def log_duplicate_sign(employee_id: str, salary_month: str):
        logger.warning(
            f"Duplicate sign attempt: {employee_id} | Month: {salary_month}",
            extra={'employee_id': employee_id, 'salary_month': salary_month}
        )

    @staticmethod
    def log_management_signed(signature_type: str, salary_month: str, signed_by: str):
        logger.info(
            f"Management signature: {signature_type} | "
            f"Month: {salary_month} | "
            f"By: {signed_by}",
            extra={
                'signature_type': signature_type,
                'salary_month': salary_month,
                'signed_by': signed_by
            }
        )

    @staticmethod
    def log_management_rejected(signature_type: str, salary_month: str, signed_by: str, reason: str):
        """Log a refused management signature with the rejecting rule"""
        logger.warning(
            f"Management signature rejected: {signature_type} | "
            f"Month: {salary_month} | "
            f"By: {signed_by} | "
            f"Reason: {reason}",
            extra={
                'signature_type': signature_type,
                'salary_month': salary_month,
                'signed_by': signed_by,
                'reason': reason
            }
        )

    @staticmethod
    def log_degraded(operation: str, error: Exception):
        logger.warning(
            f"Management signatures unavailable in {operation}: {error}",
            extra={'operation': operation, 'error_type': type(error).__name__}
        )

    @staticmethod
    def log_error(operation: str, error: Exception, context: Optional[Dict[str, Any]] = None):
        """Log errors with context"""
        logger.error(
            f"Error in {operation}: {str(error)}",
            exc_info=True,
            extra={
                'operation': operation,
                'error_type': type(error).__name__,
                'context': context or {}
            }
        )
