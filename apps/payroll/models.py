"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Payroll record model. One row per employee, salary month
             and payroll type. Rows are created by import and flipped
             from unsigned to signed exactly once by the employee.
-------------------------------------------------------------------------
"""
from decimal import Decimal
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.mixins import TimeStampedMixin, ImportBatchMixin


class PayrollType(models.TextChoices):
    """Monthly salary or 13th-month bonus."""
    MONTHLY = 'monthly', _('Lương Tháng')
    T13 = 't13', _('Lương Tháng 13')


def payroll_type_for_month(salary_month: str) -> str:
    """YYYY-13 months belong to the 13th-month payroll."""
    if salary_month and salary_month.endswith('-13'):
        return PayrollType.T13
    return PayrollType.MONTHLY


def _amount(label: str) -> models.DecimalField:
    return models.DecimalField(
        max_digits=18,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=label
    )


class PayrollRecord(TimeStampedMixin, ImportBatchMixin):
    """
    Payroll detail for one employee and period.

    Attributes:
        employee: Employee the payroll belongs to (joined on employee_id).
        salary_month: YYYY-MM for monthly payroll, YYYY-13 for the bonus.
        payroll_type: PayrollType derived from salary_month.
        is_signed: Whether the employee has acknowledged the payroll.
        signed_at: Server time of the acknowledgement.
        signed_by_name: Name recorded at signing.
    """

    employee = models.ForeignKey(
        'employees.Employee',
        to_field='employee_id',
        db_column='employee_id',
        on_delete=models.PROTECT,
        related_name='payrolls',
        verbose_name=_('Nhân Viên')
    )
    salary_month = models.CharField(
        max_length=7,
        db_index=True,
        verbose_name=_('Tháng Lương')
    )
    payroll_type = models.CharField(
        max_length=10,
        choices=PayrollType.choices,
        default=PayrollType.MONTHLY,
        verbose_name=_('Loại Bảng Lương')
    )

    # Coefficients and base
    he_so_lam_viec = _amount(_('Hệ Số Làm Việc'))
    he_so_phu_cap_ket_qua = _amount(_('Hệ Số Phụ Cấp Kết Quả'))
    he_so_luong_co_ban = _amount(_('Hệ Số Lương Cơ Bản'))
    luong_toi_thieu_cty = _amount(_('Lương Tối Thiểu Công Ty'))

    # Working time
    ngay_cong_trong_gio = _amount(_('Ngày Công Trong Giờ'))
    gio_cong_tang_ca = _amount(_('Giờ Công Tăng Ca'))
    gio_an_ca = _amount(_('Giờ Ăn Ca'))
    tong_gio_lam_viec = _amount(_('Tổng Giờ Làm Việc'))
    tong_he_so_quy_doi = _amount(_('Tổng Hệ Số Quy Đổi'))

    # Product wages
    tong_luong_san_pham_cong_doan = _amount(_('Tổng Lương Sản Phẩm Công Đoạn'))
    don_gia_tien_luong_tren_gio = _amount(_('Đơn Giá Tiền Lương Trên Giờ'))
    tien_luong_san_pham_trong_gio = _amount(_('Tiền Lương Sản Phẩm Trong Giờ'))
    tien_luong_tang_ca = _amount(_('Tiền Lương Tăng Ca'))
    tien_luong_30p_an_ca = _amount(_('Tiền Lương 30p Ăn Ca'))
    tien_khen_thuong_chuyen_can = _amount(_('Tiền Khen Thưởng Chuyên Cần'))
    luong_hoc_viec_pc_luong = _amount(_('Lương Học Việc PC Lương'))
    tong_cong_tien_luong_san_pham = _amount(_('Tổng Cộng Tiền Lương Sản Phẩm'))

    # Allowances
    ho_tro_thoi_tiet_nong = _amount(_('Hỗ Trợ Thời Tiết Nóng'))
    bo_sung_luong = _amount(_('Bổ Sung Lương'))
    bhxh_21_5_percent = _amount(_('BHXH 21.5%'))
    pc_cdcs_pccc_atvsv = _amount(_('PC CDCS PCCC ATVSV'))
    luong_phu_nu_hanh_kinh = _amount(_('Lương Phụ Nữ Hành Kinh'))
    tien_con_bu_thai_7_thang = _amount(_('Tiền Con Bú Thai 7 Tháng'))
    ho_tro_gui_con_nha_tre = _amount(_('Hỗ Trợ Gửi Con Nhà Trẻ'))

    # Leave
    ngay_cong_phep_le = _amount(_('Ngày Công Phép Lễ'))
    tien_phep_le = _amount(_('Tiền Phép Lễ'))

    # Totals and deductions
    tong_cong_tien_luong = _amount(_('Tổng Cộng Tiền Lương'))
    tien_boc_vac = _amount(_('Tiền Bốc Vác'))
    ho_tro_xang_xe = _amount(_('Hỗ Trợ Xăng Xe'))
    thue_tncn_nam_2024 = _amount(_('Thuế TNCN Năm 2024'))
    tam_ung = _amount(_('Tạm Ứng'))
    thue_tncn = _amount(_('Thuế TNCN'))
    bhxh_bhtn_bhyt_total = _amount(_('BHXH BHTN BHYT Total'))
    truy_thu_the_bhyt = _amount(_('Truy Thu Thẻ BHYT'))
    tien_luong_thuc_nhan_cuoi_ky = _amount(_('Tiền Lương Thực Nhận Cuối Kỳ'))

    # Signature state; written only by SignatureService.sign_employee_payroll
    is_signed = models.BooleanField(
        default=False,
        db_index=True,
        verbose_name=_('Đã Ký')
    )
    signed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Thời Gian Ký')
    )
    signed_by_name = models.CharField(
        max_length=255,
        blank=True,
        default='',
        verbose_name=_('Người Ký')
    )

    class Meta:
        verbose_name = _('Bảng Lương')
        verbose_name_plural = _('Bảng Lương')
        ordering = ['-salary_month', 'employee_id']
        db_table = 'payrolls'
        constraints = [
            models.UniqueConstraint(
                fields=['employee', 'salary_month', 'payroll_type'],
                name='unique_payroll_per_employee_month_type'
            ),
        ]
        indexes = [
            models.Index(fields=['salary_month', 'payroll_type', 'is_signed']),
        ]

    def __str__(self) -> str:
        return f"{self.employee_id} - {self.salary_month} ({self.payroll_type})"

    def save(self, *args, **kwargs) -> None:
        self.payroll_type = payroll_type_for_month(self.salary_month)
        super().save(*args, **kwargs)
