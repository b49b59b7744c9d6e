"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: URL configuration for the imports app.
-------------------------------------------------------------------------
"""
from django.urls import path

from apps.imports import views

app_name = 'imports'

urlpatterns = [
    path('payroll/', views.PayrollImportView.as_view(), name='import_payroll'),
    path('attendance/', views.AttendanceImportView.as_view(), name='import_attendance'),
    path('employees/', views.EmployeeImportView.as_view(), name='import_employees'),
    path('dual-file/', views.DualFileImportView.as_view(), name='import_dual_file'),
    path('errors/export/', views.ErrorReportExportView.as_view(), name='export_errors'),
    path('detect-columns/', views.DetectColumnsView.as_view(), name='detect_columns'),
    path('mapping-configs/', views.MappingConfigListView.as_view(), name='mapping_config_list'),
    path('mapping-configs/<int:pk>/', views.MappingConfigDetailView.as_view(), name='mapping_config_detail'),
    path('template/', views.TemplateDownloadView.as_view(), name='template'),
    path('history/', views.ImportHistoryView.as_view(), name='history'),
]
