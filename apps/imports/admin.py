"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Admin configuration for import profiles and batch history.
-------------------------------------------------------------------------
"""
from django.contrib import admin

from .models import (
    ColumnAlias, FieldMapping, ImportBatch, ImportColumnMapping,
    ImportFileConfig, MappingConfiguration,
)


class ImportColumnMappingInline(admin.TabularInline):
    model = ImportColumnMapping
    extra = 1
    fields = ('excel_column_name', 'database_field', 'data_type', 'is_required', 'default_value', 'display_order')


@admin.register(ImportFileConfig)
class ImportFileConfigAdmin(admin.ModelAdmin):
    list_display = ('config_name', 'file_type', 'is_active', 'updated_at')
    list_filter = ('file_type', 'is_active')
    search_fields = ('config_name',)
    inlines = [ImportColumnMappingInline]


class FieldMappingInline(admin.TabularInline):
    model = FieldMapping
    extra = 0
    fields = ('database_field', 'excel_column_name', 'mapping_type', 'confidence_score', 'display_order')


@admin.register(MappingConfiguration)
class MappingConfigurationAdmin(admin.ModelAdmin):
    list_display = ('config_name', 'is_default', 'is_active', 'created_by', 'updated_at')
    list_filter = ('is_default', 'is_active')
    search_fields = ('config_name',)
    inlines = [FieldMappingInline]


@admin.register(ColumnAlias)
class ColumnAliasAdmin(admin.ModelAdmin):
    list_display = ('alias_name', 'database_field', 'confidence_score', 'is_active')
    search_fields = ('alias_name', 'database_field')


@admin.register(ImportBatch)
class ImportBatchAdmin(admin.ModelAdmin):
    """Import history is written by the import pipeline only."""

    list_display = (
        'batch_id', 'import_type', 'status', 'total_records',
        'inserted_count', 'overwrite_count', 'skipped_count', 'imported_by', 'created_at'
    )
    list_filter = ('import_type', 'status')
    search_fields = ('batch_id', 'source_file', 'imported_by')
    readonly_fields = [f.name for f in ImportBatch._meta.fields]

    def has_add_permission(self, request):
        return False
