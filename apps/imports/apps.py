"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Imports app configuration.
-------------------------------------------------------------------------
"""
from django.apps import AppConfig


class ImportsConfig(AppConfig):
    """Configuration for the imports application."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.imports'
    verbose_name = 'Data Imports'
