"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Signature models: the append-only employee signing log and
             the management sign-offs of a payroll period.
-------------------------------------------------------------------------
"""
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.mixins import UUIDMixin, TimeStampedMixin, StatusMixin
from apps.payroll.models import PayrollType


class SignatureType(models.TextChoices):
    """Management signatures required to close a payroll period."""
    GIAM_DOC = 'giam_doc', _('Giám Đốc')
    KE_TOAN = 'ke_toan', _('Kế Toán')
    NGUOI_LAP_BIEU = 'nguoi_lap_bieu', _('Người Lập Biểu')


class SignatureLog(UUIDMixin):
    """
    Audit row for one successful employee sign.

    Rows are only ever inserted, in the same transaction that marks the
    payroll record signed.
    """

    employee = models.ForeignKey(
        'employees.Employee',
        to_field='employee_id',
        db_column='employee_id',
        on_delete=models.PROTECT,
        related_name='signature_logs',
        verbose_name=_('Nhân Viên')
    )
    salary_month = models.CharField(max_length=7, db_index=True, verbose_name=_('Tháng Lương'))
    payroll_type = models.CharField(
        max_length=10, choices=PayrollType.choices, default=PayrollType.MONTHLY, verbose_name=_('Loại Bảng Lương')
    )
    signed_by_name = models.CharField(max_length=255, verbose_name=_('Người Ký'))
    signed_at = models.DateTimeField(verbose_name=_('Thời Gian Ký'))
    ip_address = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Địa Chỉ IP'))
    device_info = models.TextField(blank=True, default='', verbose_name=_('Thiết Bị'))

    class Meta:
        verbose_name = _('Nhật Ký Ký Tên')
        verbose_name_plural = _('Nhật Ký Ký Tên')
        ordering = ['-signed_at']
        db_table = 'signature_logs'
        constraints = [
            models.UniqueConstraint(
                fields=['employee', 'salary_month', 'payroll_type'],
                name='unique_signature_log_per_payroll'
            ),
        ]

    def __str__(self) -> str:
        return f"{self.employee_id} - {self.salary_month} ({self.signed_at})"


class ManagementSignature(TimeStampedMixin, StatusMixin):
    """
    Management sign-off of a payroll period.

    At most one active row exists per (salary_month, payroll_type,
    signature_type). Deactivated rows stay for the audit trail.
    """

    salary_month = models.CharField(max_length=7, db_index=True, verbose_name=_('Tháng Lương'))
    payroll_type = models.CharField(
        max_length=10, choices=PayrollType.choices, default=PayrollType.MONTHLY, verbose_name=_('Loại Bảng Lương')
    )
    signature_type = models.CharField(
        max_length=20, choices=SignatureType.choices, verbose_name=_('Loại Chữ Ký')
    )
    signed_by_id = models.CharField(max_length=50, verbose_name=_('Mã Người Ký'))
    signed_by_name = models.CharField(max_length=255, verbose_name=_('Người Ký'))
    department = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Phòng Ban'))
    signed_at = models.DateTimeField(verbose_name=_('Thời Gian Ký'))
    ip_address = models.CharField(max_length=64, blank=True, default='', verbose_name=_('Địa Chỉ IP'))
    device_info = models.TextField(blank=True, default='', verbose_name=_('Thiết Bị'))
    notes = models.TextField(blank=True, default='', verbose_name=_('Ghi Chú'))

    class Meta:
        verbose_name = _('Chữ Ký Quản Lý')
        verbose_name_plural = _('Chữ Ký Quản Lý')
        ordering = ['-signed_at']
        db_table = 'management_signatures'
        constraints = [
            models.UniqueConstraint(
                fields=['salary_month', 'payroll_type', 'signature_type'],
                condition=models.Q(is_active=True),
                name='unique_active_management_signature'
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_signature_type_display()} - {self.salary_month} ({self.signed_by_name})"
