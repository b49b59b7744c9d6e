"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Employee model with role (chuc_vu) and dual credential
             support. Employees authenticate with their hashed CCCD
             until they change password; the authoritative credential
             is recorded explicitly by credential_kind.
-------------------------------------------------------------------------
"""
from typing import Optional
from django.contrib.auth.hashers import make_password, check_password
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from apps.core.exceptions import ValidationError
from apps.core.mixins import TimeStampedMixin, StatusMixin


class Role(models.TextChoices):
    """
    Position codes (chuc_vu) used throughout the system.

    Capabilities of each role live in apps.employees.capabilities.
    """
    ADMIN = 'admin', _('Quản Trị Viên')
    GIAM_DOC = 'giam_doc', _('Giám Đốc')
    KE_TOAN = 'ke_toan', _('Kế Toán')
    NGUOI_LAP_BIEU = 'nguoi_lap_bieu', _('Người Lập Biểu')
    TRUONG_PHONG = 'truong_phong', _('Trưởng Phòng')
    TO_TRUONG = 'to_truong', _('Tổ Trưởng')
    NHAN_VIEN = 'nhan_vien', _('Nhân Viên')
    VAN_PHONG = 'van_phong', _('Văn Phòng')


class CredentialKind(models.TextChoices):
    """Which stored hash is authoritative for an employee."""
    INITIAL_CCCD = 'initial_cccd', _('CCCD ban đầu')
    CHANGED_PASSWORD = 'changed_password', _('Mật khẩu đã đổi')


class Employee(TimeStampedMixin, StatusMixin):
    """
    Employee master record.

    employee_id is the external key used by payroll, attendance and
    signature tables. It is unique and cannot change once saved.

    Attributes:
        employee_id: External employee code (Mã NV).
        full_name: Display name.
        department: Department name used for role scoping.
        chuc_vu: Position, one of Role.
        cccd_hash: Hash of the national ID, the initial credential.
        password_hash: Hash of a changed password, empty until changed.
        credential_kind: Which of the two hashes is authoritative.
        last_password_change_at: When the password was last changed.
        allowed_departments: Extra departments visible to truong_phong.
    """

    employee_id = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_('Mã Nhân Viên'),
        help_text=_('External employee code. Immutable once created.')
    )
    full_name = models.CharField(
        max_length=255,
        verbose_name=_('Họ Tên')
    )
    department = models.CharField(
        max_length=100,
        db_index=True,
        verbose_name=_('Phòng Ban')
    )
    chuc_vu = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.NHAN_VIEN,
        verbose_name=_('Chức Vụ')
    )
    phone_number = models.CharField(
        max_length=15,
        blank=True,
        default='',
        verbose_name=_('Số Điện Thoại')
    )
    cccd_hash = models.CharField(
        max_length=255,
        verbose_name=_('CCCD Hash')
    )
    password_hash = models.CharField(
        max_length=255,
        blank=True,
        default='',
        verbose_name=_('Password Hash')
    )
    credential_kind = models.CharField(
        max_length=20,
        choices=CredentialKind.choices,
        default=CredentialKind.INITIAL_CCCD,
        verbose_name=_('Loại Mật Khẩu')
    )
    last_password_change_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Đổi Mật Khẩu Lần Cuối')
    )
    allowed_departments = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_('Phòng Ban Được Xem'),
        help_text=_('Departments a truong_phong may view.')
    )

    class Meta:
        verbose_name = _('Nhân Viên')
        verbose_name_plural = _('Nhân Viên')
        ordering = ['employee_id']
        db_table = 'employees'

    def __str__(self) -> str:
        return f"{self.employee_id} - {self.full_name}"

    def save(self, *args, **kwargs) -> None:
        if self.pk is not None:
            stored_id = Employee.objects.filter(pk=self.pk).values_list('employee_id', flat=True).first()
            if stored_id is not None and stored_id != self.employee_id:
                raise ValidationError(
                    "Không được thay đổi mã nhân viên",
                    details={'employee_id': stored_id}
                )
        super().save(*args, **kwargs)

    def set_cccd(self, raw_cccd: str) -> None:
        """Hash and store the national ID used as the initial credential."""
        self.cccd_hash = make_password(raw_cccd.strip())

    def set_password(self, raw_password: str) -> None:
        """Hash a new password and make it the authoritative credential."""
        self.password_hash = make_password(raw_password)
        self.credential_kind = CredentialKind.CHANGED_PASSWORD
        self.last_password_change_at = timezone.now()

    @property
    def uses_changed_password(self) -> bool:
        return self.credential_kind == CredentialKind.CHANGED_PASSWORD

    def check_credential(self, raw: Optional[str]) -> bool:
        """
        Verify a raw credential against the authoritative hash.

        Args:
            raw: CCCD or password as typed by the employee.

        Returns:
            True if the credential matches.
        """
        if not raw:
            return False
        if self.uses_changed_password:
            return bool(self.password_hash) and check_password(raw, self.password_hash)
        return check_password(raw.strip(), self.cccd_hash)

    @property
    def invalid_credential_message(self) -> str:
        """Message naming the field the employee must re-enter."""
        if self.uses_changed_password:
            return "Mật khẩu không đúng"
        return "Số CCCD không đúng"
