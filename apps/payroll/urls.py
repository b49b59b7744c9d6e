"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: URL configuration for the payroll app.
-------------------------------------------------------------------------
"""
from django.apps import apps
from django.urls import path

from apps.payroll import views

app_name = 'payroll'

urlpatterns = [
    path('', views.PayrollListView.as_view(), name='payroll_list'),
    path('lookup/', views.PayrollLookupView.as_view(), name='lookup'),
    path('departments/', views.DepartmentSummaryView.as_view(), name='department_summary'),
    path(
        'data-validation/',
        views.DataValidationView.as_view(cache=apps.get_app_config('payroll').validation_cache),
        name='data_validation'
    ),
]
