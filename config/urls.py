"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Root URL configuration. JSON APIs live under /api/.
-------------------------------------------------------------------------
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/employees/', include('apps.employees.urls')),
    path('api/payroll/', include('apps.payroll.urls')),
    path('api/imports/', include('apps.imports.urls')),
    path('api/signatures/', include('apps.signatures.urls')),
]
