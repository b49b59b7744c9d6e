"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Import configuration models: dual-file import profiles,
             saved column mapping configurations, column aliases and
             the import batch history.
-------------------------------------------------------------------------
"""
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.mixins import TimeStampedMixin, StatusMixin


class FileType(models.TextChoices):
    FILE1 = 'file1', _('File 1')
    FILE2 = 'file2', _('File 2')


class DataType(models.TextChoices):
    TEXT = 'text', _('Văn bản')
    NUMBER = 'number', _('Số')
    DATE = 'date', _('Ngày')


class MappingType(models.TextChoices):
    EXACT = 'exact', _('Khớp chính xác')
    FUZZY = 'fuzzy', _('Khớp gần đúng')
    MANUAL = 'manual', _('Thủ công')
    ALIAS = 'alias', _('Bí danh')


class ImportType(models.TextChoices):
    PAYROLL = 'payroll', _('Bảng lương')
    ATTENDANCE = 'attendance', _('Chấm công')
    EMPLOYEE = 'employee', _('Nhân viên')
    DUAL_FILE = 'dual_file', _('Hai file')


class BatchStatus(models.TextChoices):
    COMPLETED = 'completed', _('Hoàn tất')
    PARTIAL = 'partial', _('Một phần')
    FAILED = 'failed', _('Thất bại')


class ImportFileConfig(TimeStampedMixin, StatusMixin):
    """
    Column profile for one side of a dual-file payroll import.

    Attributes:
        config_name: Unique profile name.
        file_type: Which of the two files the profile reads.
        description: Free text shown to the admin.
    """

    config_name = models.CharField(max_length=100, unique=True, verbose_name=_('Tên Cấu Hình'))
    file_type = models.CharField(max_length=10, choices=FileType.choices, verbose_name=_('Loại File'))
    description = models.TextField(blank=True, default='', verbose_name=_('Mô Tả'))

    class Meta:
        verbose_name = _('Cấu Hình File Import')
        verbose_name_plural = _('Cấu Hình File Import')
        ordering = ['file_type', 'config_name']
        db_table = 'import_file_configs'

    def __str__(self) -> str:
        return f"{self.config_name} ({self.file_type})"


class ImportColumnMapping(models.Model):
    """One Excel column to database field rule of an ImportFileConfig."""

    config = models.ForeignKey(
        ImportFileConfig,
        on_delete=models.CASCADE,
        related_name='mappings',
        verbose_name=_('Cấu Hình')
    )
    excel_column_name = models.CharField(max_length=255, verbose_name=_('Tên Cột Excel'))
    database_field = models.CharField(max_length=100, verbose_name=_('Trường Dữ Liệu'))
    data_type = models.CharField(
        max_length=10, choices=DataType.choices, default=DataType.TEXT, verbose_name=_('Kiểu Dữ Liệu')
    )
    is_required = models.BooleanField(default=False, verbose_name=_('Bắt Buộc'))
    default_value = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Giá Trị Mặc Định'))
    display_order = models.PositiveIntegerField(default=0, verbose_name=_('Thứ Tự'))
    confidence_score = models.PositiveSmallIntegerField(default=100, verbose_name=_('Độ Tin Cậy'))

    class Meta:
        verbose_name = _('Ánh Xạ Cột')
        verbose_name_plural = _('Ánh Xạ Cột')
        ordering = ['config', 'display_order', 'id']
        db_table = 'import_column_mappings'

    def __str__(self) -> str:
        return f"{self.excel_column_name} -> {self.database_field}"


class MappingConfiguration(TimeStampedMixin, StatusMixin):
    """
    Saved mapping profile reusable across payroll imports.

    Attributes:
        config_name: Unique profile name.
        is_default: Profile used for templates when none is selected.
        created_by: Employee code of the admin who saved it.
    """

    config_name = models.CharField(max_length=100, unique=True, verbose_name=_('Tên Cấu Hình'))
    description = models.TextField(blank=True, default='', verbose_name=_('Mô Tả'))
    is_default = models.BooleanField(default=False, verbose_name=_('Mặc Định'))
    created_by = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Người Tạo'))

    class Meta:
        verbose_name = _('Cấu Hình Ánh Xạ')
        verbose_name_plural = _('Cấu Hình Ánh Xạ')
        ordering = ['-is_default', 'config_name']
        db_table = 'mapping_configurations'

    def __str__(self) -> str:
        return self.config_name


class FieldMapping(models.Model):
    """One field rule inside a MappingConfiguration."""

    configuration = models.ForeignKey(
        MappingConfiguration,
        on_delete=models.CASCADE,
        related_name='field_mappings',
        verbose_name=_('Cấu Hình')
    )
    database_field = models.CharField(max_length=100, verbose_name=_('Trường Dữ Liệu'))
    excel_column_name = models.CharField(max_length=255, verbose_name=_('Tên Cột Excel'))
    confidence_score = models.PositiveSmallIntegerField(default=100, verbose_name=_('Độ Tin Cậy'))
    mapping_type = models.CharField(
        max_length=10, choices=MappingType.choices, default=MappingType.MANUAL, verbose_name=_('Kiểu Ánh Xạ')
    )
    validation_passed = models.BooleanField(default=True, verbose_name=_('Hợp Lệ'))
    display_order = models.PositiveIntegerField(default=0, verbose_name=_('Thứ Tự'))

    class Meta:
        verbose_name = _('Ánh Xạ Trường')
        verbose_name_plural = _('Ánh Xạ Trường')
        ordering = ['configuration', 'display_order', 'id']
        db_table = 'mapping_configuration_fields'

    def __str__(self) -> str:
        return f"{self.excel_column_name} -> {self.database_field}"


class ColumnAlias(TimeStampedMixin, StatusMixin):
    """Alternative header text known to mean a database field."""

    database_field = models.CharField(max_length=100, db_index=True, verbose_name=_('Trường Dữ Liệu'))
    alias_name = models.CharField(max_length=255, verbose_name=_('Bí Danh'))
    confidence_score = models.PositiveSmallIntegerField(default=80, verbose_name=_('Độ Tin Cậy'))
    created_by = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Người Tạo'))

    class Meta:
        verbose_name = _('Bí Danh Cột')
        verbose_name_plural = _('Bí Danh Cột')
        ordering = ['database_field', 'alias_name']
        db_table = 'column_aliases'
        constraints = [
            models.UniqueConstraint(fields=['database_field', 'alias_name'], name='unique_alias_per_field'),
        ]

    def __str__(self) -> str:
        return f"{self.alias_name} -> {self.database_field}"


class ImportBatch(TimeStampedMixin):
    """
    History entry for one import run.

    Rows written by the run carry batch_id as their import_batch_id.
    """

    batch_id = models.CharField(max_length=64, unique=True, verbose_name=_('Mã Lô'))
    import_type = models.CharField(max_length=20, choices=ImportType.choices, verbose_name=_('Loại Import'))
    status = models.CharField(
        max_length=10, choices=BatchStatus.choices, default=BatchStatus.COMPLETED, verbose_name=_('Trạng Thái')
    )
    source_file = models.CharField(max_length=500, blank=True, default='', verbose_name=_('File Nguồn'))
    total_records = models.PositiveIntegerField(default=0, verbose_name=_('Tổng Dòng'))
    inserted_count = models.PositiveIntegerField(default=0, verbose_name=_('Đã Lưu'))
    overwrite_count = models.PositiveIntegerField(default=0, verbose_name=_('Ghi Đè'))
    skipped_count = models.PositiveIntegerField(default=0, verbose_name=_('Bỏ Qua'))
    error_count = models.PositiveIntegerField(default=0, verbose_name=_('Số Lỗi'))
    processing_time_ms = models.PositiveIntegerField(default=0, verbose_name=_('Thời Gian Xử Lý (ms)'))
    imported_by = models.CharField(max_length=50, blank=True, default='', verbose_name=_('Người Import'))

    class Meta:
        verbose_name = _('Lô Import')
        verbose_name_plural = _('Lô Import')
        ordering = ['-created_at']
        db_table = 'import_batches'

    def __str__(self) -> str:
        return f"{self.batch_id} ({self.import_type})"
