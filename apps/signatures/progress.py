"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Read-only signature status and progress for dashboards.
             Management signature reads degrade to empty results when
             that table is unavailable.
-------------------------------------------------------------------------
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction

from apps.core.utils import format_salary_month, format_signed_at, vietnam_now
from apps.payroll.models import PayrollRecord
from apps.signatures.logging import SignatureLogger
from apps.signatures.models import ManagementSignature, SignatureLog
from apps.signatures.services import SignatureService, payroll_type_for, signature_to_dict
from apps.signatures.workflows import signature_types

UNSIGNED_SAMPLE_SIZE = 10
RECENT_EMPLOYEE_SIGNS = 5
RECENT_MANAGEMENT_SIGNS = 3
RECENT_ACTIVITY_LIMIT = 10


def calculate_employee_completion(salary_month: str, payroll_type: str) -> Dict[str, Any]:
    completion = SignatureService.employee_completion(salary_month, payroll_type)
    unsigned = (
        PayrollRecord.objects
        .filter(salary_month=salary_month, payroll_type=payroll_type, is_signed=False)
        .select_related('employee')
        .order_by('employee_id')[:UNSIGNED_SAMPLE_SIZE]
    )
    return {
        'total_employees': completion.total,
        'signed_employees': completion.signed,
        'completion_percentage': completion.percentage,
        'is_100_percent_complete': completion.is_complete,
        'unsigned_employees_sample': [
            {
                'employee_id': r.employee_id,
                'full_name': r.employee.full_name,
                'department': r.employee.department,
            }
            for r in unsigned
        ],
    }


def _active_management_signatures(salary_month: str, payroll_type: str, operation: str) -> List[ManagementSignature]:
    """Active sign-offs for a period, or [] if the table cannot be read."""
    try:
        with transaction.atomic():
            return list(ManagementSignature.objects.filter(
                salary_month=salary_month, payroll_type=payroll_type, is_active=True
            ).order_by('-signed_at'))
    except DatabaseError as e:
        SignatureLogger.log_degraded(operation, e)
        return []


def management_status(salary_month: str, payroll_type: str) -> Dict[str, Optional[Dict[str, Any]]]:
    """{signature_type: signature dict or None} for every required type."""
    status: Dict[str, Optional[Dict[str, Any]]] = {t: None for t in signature_types()}
    for signature in _active_management_signatures(salary_month, payroll_type, 'management_status'):
        if signature.signature_type in status and status[signature.signature_type] is None:
            status[signature.signature_type] = signature_to_dict(signature)
    return status


def signature_status(salary_month: str, is_t13: bool = False) -> Dict[str, Any]:
    """
    Combined employee and management signature snapshot for a month.

    Args:
        salary_month: Month already validated for the mode.
        is_t13: 13th-month payroll.
    """
    payroll_type = payroll_type_for(is_t13)
    employee = calculate_employee_completion(salary_month, payroll_type)
    management = management_status(salary_month, payroll_type)
    total_types = len(management)
    completed = sum(1 for s in management.values() if s is not None)
    return {
        'salary_month': salary_month,
        'salary_month_display': format_salary_month(salary_month),
        'payroll_type': payroll_type,
        'employee_completion': employee,
        'management_signatures': management,
        'summary': {
            'total_signature_types': total_types,
            'completed_signatures': completed,
            'remaining_signatures': total_types - completed,
            'is_fully_signed': completed == total_types,
            'employee_completion_required': not employee['is_100_percent_complete'],
        },
    }


def recent_activity(salary_month: str, payroll_type: str) -> List[Dict[str, Any]]:
    """Latest employee and management signs, newest first."""
    activity: List[Dict[str, Any]] = []
    logs = (
        SignatureLog.objects
        .filter(salary_month=salary_month, payroll_type=payroll_type)
        .select_related('employee')
        .order_by('-signed_at')[:RECENT_EMPLOYEE_SIGNS]
    )
    for log in logs:
        activity.append({
            'type': 'employee_signature',
            'employee_id': log.employee_id,
            'name': log.signed_by_name,
            'department': log.employee.department,
            'signed_at': log.signed_at,
        })

    signatures = _active_management_signatures(salary_month, payroll_type, 'recent_activity')
    for signature in signatures[:RECENT_MANAGEMENT_SIGNS]:
        activity.append({
            'type': 'management_signature',
            'signature_type': signature.signature_type,
            'name': signature.signed_by_name,
            'department': signature.department,
            'signed_at': signature.signed_at,
        })

    activity.sort(key=lambda item: item['signed_at'], reverse=True)
    for item in activity:
        signed_at = item['signed_at']
        item['signed_at'] = signed_at.isoformat()
        item['signed_at_display'] = format_signed_at(signed_at)
    return activity[:RECENT_ACTIVITY_LIMIT]


def signature_progress(salary_month: str, is_t13: bool = False) -> Dict[str, Any]:
    """
    Dashboard progress for a month.

    The overall percentage weighs every employee signature and every
    required management signature equally.
    """
    payroll_type = payroll_type_for(is_t13)
    completion = SignatureService.employee_completion(salary_month, payroll_type)
    all_types = signature_types()
    signed_types = {
        s.signature_type
        for s in _active_management_signatures(salary_month, payroll_type, 'signature_progress')
    }
    completed_types = [t for t in all_types if t in signed_types]
    remaining_types = [t for t in all_types if t not in signed_types]

    needed = completion.total + len(all_types)
    done = completion.signed + len(completed_types)
    overall = round(done / needed * 100, 2) if completion.total > 0 else 0

    refresh_seconds = settings.SIGNATURE_PROGRESS_REFRESH_SECONDS
    now = vietnam_now()
    return {
        'salary_month': salary_month,
        'salary_month_display': format_salary_month(salary_month),
        'payroll_type': payroll_type,
        'employee_progress': {
            'total_count': completion.total,
            'signed_count': completion.signed,
            'unsigned_count': completion.remaining,
            'completion_percentage': completion.percentage,
            'is_complete': completion.is_complete,
        },
        'management_progress': {
            'total_types': len(all_types),
            'completed_types': completed_types,
            'remaining_types': remaining_types,
            'completion_percentage': round(len(completed_types) / len(all_types) * 100, 2),
            'can_sign': completion.is_complete,
        },
        'recent_activity': recent_activity(salary_month, payroll_type),
        'real_time_data': {
            'timestamp': now.isoformat(),
            'next_refresh': (now + timedelta(seconds=refresh_seconds)).isoformat(),
            'refresh_interval_seconds': refresh_seconds,
        },
        'statistics': {
            'total_signatures_needed': needed,
            'total_signatures_completed': done,
            'overall_completion_percentage': overall,
        },
    }
