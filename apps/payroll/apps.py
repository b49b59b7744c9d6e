"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Payroll app configuration. Owns the data validation cache.
-------------------------------------------------------------------------
"""
from django.apps import AppConfig
from django.conf import settings


class PayrollConfig(AppConfig):
    """Configuration for the payroll application."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.payroll'
    verbose_name = 'Payroll'

    def ready(self):
        from apps.core.cache import TTLCache

        self.validation_cache = TTLCache(
            ttl_seconds=settings.DATA_VALIDATION_CACHE_TTL,
            max_entries=settings.DATA_VALIDATION_CACHE_SIZE,
        )
