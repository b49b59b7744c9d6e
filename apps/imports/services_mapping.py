"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Saved mapping configurations, column detection on uploaded
             files and template generation.
-------------------------------------------------------------------------
"""
import logging
from typing import Any, Dict, List, Optional

from django.db import transaction

from apps.core.exceptions import NotFoundError, ValidationError
from apps.imports.mapping import (
    AliasEntry, DetectionResult, HeaderMappingResult,
    auto_detect_mappings, resolve_template_headers, validate_mapping,
)
from apps.imports.models import ColumnAlias, FieldMapping, MappingConfiguration, MappingType
from apps.imports.parsers import cell_text, open_worksheet, read_rows
from apps.payroll.fields import PAYROLL_DISPLAY_FIELDS

logger = logging.getLogger(__name__)


def configuration_to_dict(configuration: MappingConfiguration) -> Dict[str, Any]:
    return {
        'id': configuration.id,
        'config_name': configuration.config_name,
        'description': configuration.description,
        'is_default': configuration.is_default,
        'is_active': configuration.is_active,
        'created_by': configuration.created_by,
        'created_at': configuration.created_at.isoformat() if configuration.created_at else None,
        'field_mappings': [
            {
                'database_field': m.database_field,
                'excel_column_name': m.excel_column_name,
                'confidence_score': m.confidence_score,
                'mapping_type': m.mapping_type,
                'display_order': m.display_order,
            }
            for m in configuration.field_mappings.all()
        ],
    }


class MappingConfigService:
    """Service for CRUD over MappingConfiguration and its FieldMapping rows."""

    @staticmethod
    def list_configurations() -> List[Dict[str, Any]]:
        qs = MappingConfiguration.objects.filter(is_active=True).prefetch_related('field_mappings')
        return [configuration_to_dict(c) for c in qs]

    @staticmethod
    def get_configuration(config_id: int) -> MappingConfiguration:
        configuration = MappingConfiguration.objects.filter(pk=config_id, is_active=True).first()
        if configuration is None:
            raise NotFoundError("Không tìm thấy cấu hình ánh xạ")
        return configuration

    @staticmethod
    def get_default_configuration() -> Optional[MappingConfiguration]:
        return MappingConfiguration.objects.filter(is_active=True, is_default=True).first()

    @staticmethod
    @transaction.atomic
    def save_configuration(
        data: Dict[str, Any],
        created_by: str,
        configuration: Optional[MappingConfiguration] = None
    ) -> MappingConfiguration:
        """
        Create or replace a configuration.

        Args:
            data: {config_name, description?, is_default?,
                   field_mappings: [{database_field, excel_column_name, ...}]}
            created_by: Employee code of the admin.
            configuration: Existing configuration to replace, if any.

        Raises:
            ValidationError: Missing name, empty mapping or mapping
                conflicts (duplicate field, missing required field).
        """
        name = (data.get('config_name') or '').strip()
        if not name:
            raise ValidationError("Thiếu tên cấu hình")
        rows = data.get('field_mappings') or []
        if not isinstance(rows, list) or not rows:
            raise ValidationError("Cấu hình phải có ít nhất một ánh xạ cột")

        mapping = {}
        for row in rows:
            column = str(row.get('excel_column_name') or '').strip()
            field_name = str(row.get('database_field') or '').strip()
            if not column or not field_name:
                raise ValidationError("Ánh xạ cột thiếu tên cột Excel hoặc trường dữ liệu")
            mapping[column] = field_name

        conflicts = [c.to_dict() for c in validate_mapping(mapping)]
        if conflicts:
            raise ValidationError("Cấu hình ánh xạ có xung đột", details={'conflicts': conflicts})

        duplicate = MappingConfiguration.objects.filter(config_name=name)
        if configuration is not None:
            duplicate = duplicate.exclude(pk=configuration.pk)
        if duplicate.exists():
            raise ValidationError(f'Tên cấu hình "{name}" đã tồn tại')

        is_default = bool(data.get('is_default'))
        if is_default:
            MappingConfiguration.objects.filter(is_default=True).update(is_default=False)

        if configuration is None:
            configuration = MappingConfiguration(created_by=created_by)
        configuration.config_name = name
        configuration.description = data.get('description') or ''
        configuration.is_default = is_default
        configuration.save()

        configuration.field_mappings.all().delete()
        FieldMapping.objects.bulk_create([
            FieldMapping(
                configuration=configuration,
                database_field=str(row['database_field']).strip(),
                excel_column_name=str(row['excel_column_name']).strip(),
                confidence_score=int(row.get('confidence_score') or 100),
                mapping_type=row.get('mapping_type') or MappingType.MANUAL,
                display_order=index,
            )
            for index, row in enumerate(rows)
        ])

        logger.info(
            f"Mapping configuration saved: {name}",
            extra={'config_id': configuration.id, 'created_by': created_by}
        )
        return configuration

    @staticmethod
    def deactivate(configuration: MappingConfiguration) -> None:
        configuration.is_active = False
        configuration.is_default = False
        configuration.save(update_fields=['is_active', 'is_default', 'updated_at'])


def read_headers(buffer: bytes) -> List[str]:
    """Header row of the first sheet."""
    rows = read_rows(open_worksheet(buffer))
    if not rows:
        raise ValidationError("File không có dòng tiêu đề")
    return [cell_text(h) for h in rows[0]]


def detect_file_columns(buffer: bytes, min_confidence: Optional[int] = None) -> Dict[str, Any]:
    """Propose field mappings for the headers of an uploaded file."""
    headers = read_headers(buffer)
    aliases = [
        AliasEntry(a.database_field, a.alias_name, a.confidence_score)
        for a in ColumnAlias.objects.filter(is_active=True)
    ]
    kwargs = {} if min_confidence is None else {'min_confidence': min_confidence}
    result: DetectionResult = auto_detect_mappings(headers, aliases=aliases, **kwargs)
    return {
        **result.to_dict(),
        'headers': [h for h in headers if h],
        'total_columns': len([h for h in headers if h]),
    }


def template_headers(config_id: Optional[int] = None) -> HeaderMappingResult:
    """
    Headers for the payroll template.

    Uses the given configuration, else the default configuration, else
    the standard Vietnamese headers.
    """
    if config_id:
        configuration = MappingConfigService.get_configuration(config_id)
    else:
        configuration = MappingConfigService.get_default_configuration()

    pairs = None
    if configuration is not None:
        pairs = [(m.excel_column_name, m.database_field) for m in configuration.field_mappings.all()]
    return resolve_template_headers(PAYROLL_DISPLAY_FIELDS, pairs)
