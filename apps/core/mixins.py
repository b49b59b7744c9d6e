"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Abstract model mixins shared by payroll, attendance,
             signature and import models.
-------------------------------------------------------------------------
"""
import uuid
from django.db import models
from django.utils.translation import gettext_lazy as _


class UUIDMixin(models.Model):
    """
    Adds public_id, the identifier exposed to API clients.

    Joins between PLES tables use the integer key or employee_id,
    never public_id.
    """

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        verbose_name=_('Mã Công Khai')
    )

    class Meta:
        abstract = True


class TimeStampedMixin(UUIDMixin):
    """
    Adds server-side creation and modification times.

    Attributes:
        created_at: Set once on insert.
        updated_at: Refreshed on every save(); queryset.update() callers
                    must set it themselves.
    """

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Ngày Tạo'))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_('Ngày Cập Nhật'))

    class Meta:
        abstract = True


class StatusMixin(models.Model):
    """Soft-invalidation flag; inactive rows are kept for audit."""

    is_active = models.BooleanField(default=True, db_index=True, verbose_name=_('Đang Hoạt Động'))

    class Meta:
        abstract = True


class ImportBatchMixin(models.Model):
    """
    Provenance of rows written by an Excel import.

    Attributes:
        source_file: Original filename(s) the row was imported from.
        import_batch_id: Identifier shared by every row of one import run.
    """

    source_file = models.CharField(max_length=500, blank=True, default='', verbose_name=_('File Nguồn'))
    import_batch_id = models.CharField(
        max_length=64, blank=True, default='', db_index=True, verbose_name=_('Mã Lô Import')
    )

    class Meta:
        abstract = True
