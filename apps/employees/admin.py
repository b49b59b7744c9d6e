"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Admin configuration for the Employee model.
-------------------------------------------------------------------------
"""
from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import Employee


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    """Admin configuration for Employee model."""

    list_display = ('employee_id', 'full_name', 'department', 'chuc_vu', 'credential_kind', 'is_active')
    list_filter = ('chuc_vu', 'is_active', 'credential_kind', 'department')
    search_fields = ('employee_id', 'full_name', 'department')
    readonly_fields = ('cccd_hash', 'password_hash', 'last_password_change_at', 'created_at', 'updated_at')
    ordering = ('employee_id',)

    fieldsets = (
        (None, {'fields': ('employee_id', 'full_name', 'department', 'chuc_vu', 'phone_number')}),
        (_('Access'), {'fields': ('allowed_departments', 'is_active')}),
        (_('Credentials'), {'fields': ('credential_kind', 'cccd_hash', 'password_hash', 'last_password_change_at')}),
        (_('Timestamps'), {'fields': ('created_at', 'updated_at')}),
    )

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ('employee_id',) + self.readonly_fields
        return self.readonly_fields
