"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Admin configuration for signature logs and management
             signatures. Both are read-only here.
-------------------------------------------------------------------------
"""
from django.contrib import admin, messages

from .models import ManagementSignature, SignatureLog
from .services import SignatureService


@admin.register(SignatureLog)
class SignatureLogAdmin(admin.ModelAdmin):
    list_display = ('employee', 'salary_month', 'payroll_type', 'signed_at', 'ip_address')
    list_filter = ('payroll_type', 'salary_month')
    search_fields = ('employee__employee_id', 'signed_by_name')
    readonly_fields = [f.name for f in SignatureLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ManagementSignature)
class ManagementSignatureAdmin(admin.ModelAdmin):
    list_display = ('salary_month', 'payroll_type', 'signature_type', 'signed_by_name', 'signed_at', 'is_active')
    list_filter = ('signature_type', 'payroll_type', 'is_active')
    search_fields = ('salary_month', 'signed_by_id', 'signed_by_name')
    readonly_fields = [f.name for f in ManagementSignature._meta.fields]
    actions = ['deactivate_signatures']

    def has_add_permission(self, request):
        return False

    @admin.action(description='Hủy hiệu lực chữ ký đã chọn')
    def deactivate_signatures(self, request, queryset):
        count = 0
        for signature in queryset.filter(is_active=True):
            SignatureService.deactivate_management_signature(
                signature, reason=f"Hủy bởi {request.user.get_username()}"
            )
            count += 1
        self.message_user(request, f"Đã hủy {count} chữ ký.", messages.SUCCESS)
