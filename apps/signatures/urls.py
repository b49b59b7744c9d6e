"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: URL configuration for the signatures app.
-------------------------------------------------------------------------
"""
from django.urls import path

from apps.signatures import views

app_name = 'signatures'

urlpatterns = [
    path('employee/', views.EmployeeSignView.as_view(), name='employee_sign'),
    path('management/', views.ManagementSignView.as_view(), name='management_sign'),
    path('status/<str:salary_month>/', views.SignatureStatusView.as_view(), name='status'),
    path('progress/<str:salary_month>/', views.SignatureProgressView.as_view(), name='progress'),
    path('history/', views.SignatureHistoryView.as_view(), name='history'),
]
