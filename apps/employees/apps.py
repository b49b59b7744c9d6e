"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Employees app configuration.
-------------------------------------------------------------------------
"""
from django.apps import AppConfig


class EmployeesConfig(AppConfig):
    """Configuration for the employees application."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.employees'
    verbose_name = 'Employee Management'
