"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Admin configuration for attendance models.
-------------------------------------------------------------------------
"""
from django.contrib import admin

from .models import AttendanceDaily, AttendanceMonthly


@admin.register(AttendanceDaily)
class AttendanceDailyAdmin(admin.ModelAdmin):
    list_display = ('employee', 'work_date', 'check_in_time', 'check_out_time', 'working_units', 'overtime_units')
    list_filter = ('period_year', 'period_month')
    search_fields = ('employee__employee_id', 'employee__full_name')
    raw_id_fields = ('employee',)


@admin.register(AttendanceMonthly)
class AttendanceMonthlyAdmin(admin.ModelAdmin):
    list_display = ('employee', 'period_year', 'period_month', 'total_days', 'total_hours', 'total_ot_hours', 'sick_days')
    list_filter = ('period_year', 'period_month')
    search_fields = ('employee__employee_id', 'employee__full_name')
    raw_id_fields = ('employee',)
