"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Import endpoints: payroll, attendance, employee and
             dual-file uploads, error report export, column detection,
             mapping configurations and template download.
-------------------------------------------------------------------------
"""
from django.http import JsonResponse

from apps.core.exceptions import ValidationError
from apps.core.utils import parse_bool
from apps.core.views import ApiView
from apps.employees.permissions import AdminRequiredMixin, ImportRequiredMixin
from apps.imports.errors import ImportErrorRecord, create_error_report_data
from apps.imports.exports import build_error_report_workbook, build_template_workbook, workbook_response
from apps.imports.models import ImportBatch
from apps.imports.services import ImportService, validate_upload
from apps.imports.services_mapping import (
    MappingConfigService, configuration_to_dict, detect_file_columns, template_headers,
)
from apps.payroll.fields import PAYROLL_DISPLAY_FIELDS


def _optional_int(value):
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Mã cấu hình không hợp lệ")


class PayrollImportView(ImportRequiredMixin, ApiView):
    """
    Upload a payroll sheet (multipart field `file`).

    `is_t13=true` switches month validation to the YYYY-13 format.
    """

    server_error_message = "Lỗi hệ thống khi import bảng lương"

    def post(self, request):
        uploaded = request.FILES.get('file')
        content = validate_upload(uploaded)
        service = ImportService(imported_by=self.principal.employee_id)
        result = service.import_payroll(content, uploaded.name, is_t13=parse_bool(request.POST.get('is_t13')))
        return JsonResponse(result)


class AttendanceImportView(ImportRequiredMixin, ApiView):
    server_error_message = "Lỗi hệ thống khi import chấm công"

    def post(self, request):
        uploaded = request.FILES.get('file')
        content = validate_upload(uploaded)
        service = ImportService(imported_by=self.principal.employee_id)
        return JsonResponse(service.import_attendance(content, uploaded.name))


class EmployeeImportView(AdminRequiredMixin, ApiView):
    server_error_message = "Lỗi hệ thống khi import nhân viên"

    def post(self, request):
        uploaded = request.FILES.get('file')
        content = validate_upload(uploaded)
        service = ImportService(imported_by=self.principal.employee_id)
        return JsonResponse(service.import_employees(content, uploaded.name))


class DualFileImportView(ImportRequiredMixin, ApiView):
    """Upload payroll split across two files (file1, file2)."""

    server_error_message = "Lỗi hệ thống khi import hai file"

    def post(self, request):
        file1 = request.FILES.get('file1')
        file2 = request.FILES.get('file2')
        if file1 is None and file2 is None:
            raise ValidationError("Cần tải lên ít nhất một file")

        content1 = validate_upload(file1) if file1 is not None else None
        content2 = validate_upload(file2) if file2 is not None else None
        service = ImportService(imported_by=self.principal.employee_id)
        result = service.import_dual_files(
            content1, file1.name if file1 is not None else None,
            content2, file2.name if file2 is not None else None,
            file1_config_id=_optional_int(request.POST.get('file1_config_id')),
            file2_config_id=_optional_int(request.POST.get('file2_config_id')),
            salary_month=(request.POST.get('salary_month') or '').strip() or None,
        )
        return JsonResponse(result)


class ErrorReportExportView(ImportRequiredMixin, ApiView):
    """
    Download rejected rows as an xlsx.

    Body: {errors: [...], headers: [...]} as returned by an import.
    """

    def post(self, request):
        data = self.parse_json(request)
        errors = data.get('errors')
        if not isinstance(errors, list) or not errors:
            raise ValidationError("Không có lỗi để xuất")

        records = [ImportErrorRecord.from_dict(e) for e in errors if isinstance(e, dict)]
        headers = [str(h) for h in data.get('headers') or []]
        if not headers:
            for record in records:
                for key in (record.original_data or {}):
                    if key not in headers:
                        headers.append(key)

        wb = build_error_report_workbook(create_error_report_data(records, headers))
        return workbook_response(wb, 'loi_import')


class DetectColumnsView(AdminRequiredMixin, ApiView):
    """Propose field mappings for an uploaded file's headers."""

    def post(self, request):
        uploaded = request.FILES.get('file')
        content = validate_upload(uploaded)
        min_confidence = _optional_int(request.POST.get('min_confidence'))
        return JsonResponse(detect_file_columns(content, min_confidence))


class MappingConfigListView(AdminRequiredMixin, ApiView):
    def get(self, request):
        configurations = MappingConfigService.list_configurations()
        return JsonResponse({'success': True, 'configurations': configurations})

    def post(self, request):
        configuration = MappingConfigService.save_configuration(
            self.parse_json(request), self.principal.employee_id
        )
        return JsonResponse({
            'success': True,
            'message': "Lưu cấu hình thành công",
            'configuration': configuration_to_dict(configuration)
        }, status=201)


class MappingConfigDetailView(AdminRequiredMixin, ApiView):
    def get(self, request, pk):
        configuration = MappingConfigService.get_configuration(pk)
        return JsonResponse({'success': True, 'configuration': configuration_to_dict(configuration)})

    def put(self, request, pk):
        configuration = MappingConfigService.save_configuration(
            self.parse_json(request),
            self.principal.employee_id,
            configuration=MappingConfigService.get_configuration(pk)
        )
        return JsonResponse({'success': True, 'configuration': configuration_to_dict(configuration)})

    def delete(self, request, pk):
        MappingConfigService.deactivate(MappingConfigService.get_configuration(pk))
        return JsonResponse({'success': True, 'message': "Đã xóa cấu hình"})


class TemplateDownloadView(ImportRequiredMixin, ApiView):
    """Payroll import template; ?config_id= selects the header set."""

    def get(self, request):
        header_result = template_headers(_optional_int(request.GET.get('config_id')))
        wb = build_template_workbook(header_result, PAYROLL_DISPLAY_FIELDS)
        return workbook_response(wb, 'mau_import_luong')


class ImportHistoryView(ImportRequiredMixin, ApiView):
    def get(self, request):
        batches = ImportBatch.objects.all()
        import_type = request.GET.get('import_type')
        if import_type:
            batches = batches.filter(import_type=import_type)
        return JsonResponse({
            'success': True,
            'batches': [
                {
                    'batch_id': b.batch_id,
                    'import_type': b.import_type,
                    'status': b.status,
                    'source_file': b.source_file,
                    'total_records': b.total_records,
                    'inserted_count': b.inserted_count,
                    'overwrite_count': b.overwrite_count,
                    'skipped_count': b.skipped_count,
                    'error_count': b.error_count,
                    'processing_time_ms': b.processing_time_ms,
                    'imported_by': b.imported_by,
                    'created_at': b.created_at.isoformat(),
                }
                for b in batches[:50]
            ]
        })
