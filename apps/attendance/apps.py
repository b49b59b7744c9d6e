"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Attendance app configuration.
-------------------------------------------------------------------------
"""
from django.apps import AppConfig


class AttendanceConfig(AppConfig):
    """Configuration for the attendance application."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.attendance'
    verbose_name = 'Attendance'
