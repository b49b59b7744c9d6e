"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Signatures app configuration.
-------------------------------------------------------------------------
"""
from django.apps import AppConfig


class SignaturesConfig(AppConfig):
    """Configuration for the signatures application."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.signatures'
    verbose_name = 'E-Signatures'
