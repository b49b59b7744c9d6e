"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Shared helpers for salary month formats, Vietnam time
             display and request metadata.
-------------------------------------------------------------------------
"""
import re
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.http import HttpRequest
from django.utils import timezone


MONTHLY_SALARY_MONTH_RE = re.compile(r'^\d{4}-\d{2}$')
T13_SALARY_MONTH_RE = re.compile(r'^\d{4}-13$')


def vietnam_zone() -> ZoneInfo:
    return ZoneInfo(getattr(settings, 'PAYROLL_TIME_ZONE', 'Asia/Ho_Chi_Minh'))


def vietnam_now() -> datetime:
    """Current server time in the payroll time zone."""
    return timezone.now().astimezone(vietnam_zone())


def is_valid_salary_month(salary_month: Optional[str], is_t13: bool = False) -> bool:
    """
    Check a salary month against the format of its payroll mode.

    Monthly payroll uses YYYY-MM with a real calendar month. The
    13th-month bonus uses the literal YYYY-13.

    Args:
        salary_month: Month string from the request.
        is_t13: True for 13th-month payroll.

    Returns:
        True if the month matches the mode's format.
    """
    if not salary_month or not isinstance(salary_month, str):
        return False
    if is_t13:
        return bool(T13_SALARY_MONTH_RE.match(salary_month))
    if not MONTHLY_SALARY_MONTH_RE.match(salary_month):
        return False
    month = int(salary_month[5:7])
    return 1 <= month <= 12


def format_salary_month(salary_month: str) -> str:
    """Render 2025-05 as 'Tháng 5 - 2025' and 2025-13 as 'Lương Tháng 13 - 2025'."""
    if not salary_month or '-' not in salary_month:
        return salary_month or ''
    year, month = salary_month.split('-', 1)
    if month == '13':
        return f"Lương Tháng 13 - {year}"
    try:
        return f"Tháng {int(month)} - {year}"
    except ValueError:
        return salary_month


def format_signed_at(value: Optional[datetime]) -> str:
    """Render a timestamp as 'HH:MM DD/MM/YYYY' in Vietnam time."""
    if value is None:
        return ''
    if timezone.is_naive(value):
        value = timezone.make_aware(value, timezone.get_default_timezone())
    local = value.astimezone(vietnam_zone())
    return local.strftime('%H:%M %d/%m/%Y')


def get_client_ip(request: HttpRequest) -> str:
    """Client address from proxy headers, falling back to REMOTE_ADDR."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    real_ip = request.META.get('HTTP_X_REAL_IP', '')
    if real_ip:
        return real_ip.strip()
    return request.META.get('REMOTE_ADDR', '') or 'unknown'


def get_user_agent(request: HttpRequest) -> str:
    return request.META.get('HTTP_USER_AGENT', '') or 'unknown'


def parse_bool(value) -> bool:
    """Interpret query/body flags such as 'true', '1', 'on'."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')
