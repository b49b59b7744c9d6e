"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Daily and monthly attendance aggregates populated by the
             attendance import. Re-import replaces existing rows.
-------------------------------------------------------------------------
"""
from decimal import Decimal
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.mixins import TimeStampedMixin, ImportBatchMixin


class AttendanceDaily(TimeStampedMixin, ImportBatchMixin):
    """
    One employee's attendance for one work date.

    Attributes:
        work_date: Calendar date.
        check_in_time: First punch (HH:MM), if any.
        check_out_time: Last punch (HH:MM), if any.
        working_units: Regular work units for the day.
        overtime_units: Overtime units for the day.
    """

    employee = models.ForeignKey(
        'employees.Employee',
        to_field='employee_id',
        db_column='employee_id',
        on_delete=models.PROTECT,
        related_name='attendance_days',
        verbose_name=_('Nhân Viên')
    )
    work_date = models.DateField(verbose_name=_('Ngày Làm Việc'))
    period_year = models.PositiveSmallIntegerField(verbose_name=_('Năm'))
    period_month = models.PositiveSmallIntegerField(verbose_name=_('Tháng'))
    check_in_time = models.TimeField(null=True, blank=True, verbose_name=_('Giờ Vào'))
    check_out_time = models.TimeField(null=True, blank=True, verbose_name=_('Giờ Ra'))
    working_units = models.DecimalField(
        max_digits=6, decimal_places=2, default=Decimal('0'), verbose_name=_('Công')
    )
    overtime_units = models.DecimalField(
        max_digits=6, decimal_places=2, default=Decimal('0'), verbose_name=_('Tăng Ca')
    )

    class Meta:
        verbose_name = _('Chấm Công Ngày')
        verbose_name_plural = _('Chấm Công Ngày')
        ordering = ['employee_id', 'work_date']
        db_table = 'attendance_daily'
        constraints = [
            models.UniqueConstraint(fields=['employee', 'work_date'], name='unique_attendance_per_day'),
        ]

    def __str__(self) -> str:
        return f"{self.employee_id} - {self.work_date}"


class AttendanceMonthly(TimeStampedMixin, ImportBatchMixin):
    """
    One employee's attendance totals for a period.

    Totals come from the summary columns of the attendance sheet.
    """

    employee = models.ForeignKey(
        'employees.Employee',
        to_field='employee_id',
        db_column='employee_id',
        on_delete=models.PROTECT,
        related_name='attendance_months',
        verbose_name=_('Nhân Viên')
    )
    period_year = models.PositiveSmallIntegerField(verbose_name=_('Năm'))
    period_month = models.PositiveSmallIntegerField(verbose_name=_('Tháng'))
    total_hours = models.DecimalField(
        max_digits=8, decimal_places=2, default=Decimal('0'), verbose_name=_('Tổng Giờ Công')
    )
    total_days = models.DecimalField(
        max_digits=6, decimal_places=2, default=Decimal('0'), verbose_name=_('Tổng Ngày Công')
    )
    total_meal_ot_hours = models.DecimalField(
        max_digits=8, decimal_places=2, default=Decimal('0'), verbose_name=_('Tổng Giờ Ăn TC')
    )
    total_ot_hours = models.DecimalField(
        max_digits=8, decimal_places=2, default=Decimal('0'), verbose_name=_('Tổng Giờ Tăng Ca')
    )
    sick_days = models.DecimalField(
        max_digits=6, decimal_places=2, default=Decimal('0'), verbose_name=_('Nghỉ Ốm')
    )

    class Meta:
        verbose_name = _('Chấm Công Tháng')
        verbose_name_plural = _('Chấm Công Tháng')
        ordering = ['employee_id', '-period_year', '-period_month']
        db_table = 'attendance_monthly'
        constraints = [
            models.UniqueConstraint(
                fields=['employee', 'period_year', 'period_month'],
                name='unique_attendance_per_period'
            ),
        ]

    def __str__(self) -> str:
        return f"{self.employee_id} - {self.period_month:02d}/{self.period_year}"
