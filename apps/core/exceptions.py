"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Custom exceptions for the payroll system. Each exception
             carries an error code and the HTTP status used when it is
             rendered as a JSON response.
-------------------------------------------------------------------------
"""
from typing import Optional


class PayrollException(Exception):
    """Base exception for all payroll system specific errors."""

    error_code: str = "ERR_PAYROLL_GENERIC"
    default_message: str = "Lỗi hệ thống"
    status_code: int = 500

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None) -> None:
        """
        Initialize payroll exception.

        Args:
            message: Custom error message. If None, uses default_message.
            details: Additional context dictionary returned to the client.
        """
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


# Taxonomy
class ValidationError(PayrollException):
    """Raised when request input has an invalid shape or format."""

    error_code = "ERR_VALIDATION"
    default_message = "Dữ liệu không hợp lệ"
    status_code = 400


class AuthenticationError(PayrollException):
    """Raised when a credential or token cannot be verified."""

    error_code = "ERR_AUTHENTICATION"
    default_message = "Chưa đăng nhập"
    status_code = 401


class AuthorizationError(PayrollException):
    """Raised when the caller's role does not allow the action."""

    error_code = "ERR_AUTHORIZATION"
    default_message = "Không có quyền truy cập"
    status_code = 403


class NotFoundError(PayrollException):
    """Raised when an employee or record does not exist."""

    error_code = "ERR_NOT_FOUND"
    default_message = "Không tìm thấy dữ liệu"
    status_code = 404


class ConflictError(PayrollException):
    """Raised when the target state already holds."""

    error_code = "ERR_CONFLICT"
    default_message = "Dữ liệu đã tồn tại"
    status_code = 409


class PreconditionError(PayrollException):
    """Raised when a business precondition does not hold yet."""

    error_code = "ERR_PRECONDITION"
    default_message = "Chưa đủ điều kiện thực hiện"
    status_code = 422


class PersistenceError(PayrollException):
    """Raised when the underlying store fails."""

    error_code = "ERR_PERSISTENCE"
    default_message = "Lỗi cơ sở dữ liệu"
    status_code = 500


class PartialImportError(PayrollException):
    """
    Raised when an import committed some rows and rejected others.

    This is not a hard failure. Callers inspect `details` for the
    inserted/skipped counts and the collected row errors.
    """

    error_code = "ERR_PARTIAL_IMPORT"
    default_message = "Nhập dữ liệu hoàn tất một phần"
    status_code = 207


# Employee Exceptions
class EmployeeNotFound(NotFoundError):
    """Raised when an employee_id does not match any employee."""

    error_code = "ERR_EMPLOYEE_NOT_FOUND"
    default_message = "Không tìm thấy nhân viên với mã nhân viên đã nhập"


class InvalidCredential(AuthenticationError):
    """Raised when a CCCD or password does not match the stored hash."""

    error_code = "ERR_INVALID_CREDENTIAL"
    default_message = "Số CCCD không đúng"


class InactiveEmployee(AuthorizationError):
    """Raised when a locked employee tries to act."""

    error_code = "ERR_EMPLOYEE_INACTIVE"
    default_message = "Nhân viên không tồn tại hoặc đã bị khóa"


# Signature Exceptions
class PayrollRecordNotFound(NotFoundError):
    """Raised when no payroll exists for the employee and month."""

    error_code = "ERR_PAYROLL_NOT_FOUND"
    default_message = "Không tìm thấy bảng lương cho tháng này"


class AlreadySigned(ConflictError):
    """Raised when an employee signs a payroll that is already signed."""

    error_code = "ERR_ALREADY_SIGNED"
    default_message = "Bạn đã ký nhận lương tháng này rồi"


class SignatureAlreadyExists(ConflictError):
    """Raised when an active management signature already exists."""

    error_code = "ERR_SIGNATURE_EXISTS"
    default_message = "Đã có chữ ký cho loại này trong tháng"


class IncompleteEmployeeSignatures(PreconditionError):
    """Raised when management signs before every employee has signed."""

    error_code = "ERR_INCOMPLETE_EMPLOYEE_SIGNATURES"
    default_message = "Chưa đủ 100% nhân viên có bảng lương ký tên"


class InvalidSignatureType(ValidationError):
    """Raised when signature_type is not a management signature type."""

    error_code = "ERR_INVALID_SIGNATURE_TYPE"
    default_message = "Loại chữ ký không hợp lệ"


class SignatureRoleMismatch(AuthorizationError):
    """Raised when a role tries to sign a type other than its own."""

    error_code = "ERR_SIGNATURE_ROLE_MISMATCH"
    default_message = "Chức vụ không có quyền ký loại này"


# Import Exceptions
class UnreadableWorkbook(ValidationError):
    """Raised when an uploaded spreadsheet cannot be parsed at all."""

    error_code = "ERR_UNREADABLE_WORKBOOK"
    default_message = "Không thể đọc file Excel"


class InvalidUploadFile(ValidationError):
    """Raised when an upload has the wrong extension or size."""

    error_code = "ERR_INVALID_UPLOAD"
    default_message = "File không hợp lệ"
