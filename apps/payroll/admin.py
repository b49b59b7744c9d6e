"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Admin configuration for payroll records.
-------------------------------------------------------------------------
"""
from django.contrib import admin

from .models import PayrollRecord


@admin.register(PayrollRecord)
class PayrollRecordAdmin(admin.ModelAdmin):
    """Read-mostly admin; signature fields are never edited here."""

    list_display = ('employee', 'salary_month', 'payroll_type', 'tien_luong_thuc_nhan_cuoi_ky', 'is_signed', 'signed_at')
    list_filter = ('payroll_type', 'is_signed', 'salary_month')
    search_fields = ('employee__employee_id', 'employee__full_name')
    readonly_fields = ('is_signed', 'signed_at', 'signed_by_name', 'import_batch_id', 'source_file', 'created_at', 'updated_at')
    raw_id_fields = ('employee',)
