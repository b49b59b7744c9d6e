"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Canonical payroll field definitions. Maps the Vietnamese
             Excel headers of the payroll sheet to model field names.
-------------------------------------------------------------------------
"""
from decimal import Decimal
from typing import Dict, List


# Exact header text of the standard payroll sheet
PAYROLL_HEADER_TO_FIELD: Dict[str, str] = {
    "Mã Nhân Viên": "employee_id",
    "Tháng Lương": "salary_month",
    "Hệ Số Làm Việc": "he_so_lam_viec",
    "Hệ Số Phụ Cấp Kết Quả": "he_so_phu_cap_ket_qua",
    "Hệ Số Lương Cơ Bản": "he_so_luong_co_ban",
    "Lương Tối Thiểu Công Ty": "luong_toi_thieu_cty",
    "Ngày Công Trong Giờ": "ngay_cong_trong_gio",
    "Giờ Công Tăng Ca": "gio_cong_tang_ca",
    "Giờ Ăn Ca": "gio_an_ca",
    "Tổng Giờ Làm Việc": "tong_gio_lam_viec",
    "Tổng Hệ Số Quy Đổi": "tong_he_so_quy_doi",
    "Tổng Lương Sản Phẩm Công Đoạn": "tong_luong_san_pham_cong_doan",
    "Đơn Giá Tiền Lương Trên Giờ": "don_gia_tien_luong_tren_gio",
    "Tiền Lương Sản Phẩm Trong Giờ": "tien_luong_san_pham_trong_gio",
    "Tiền Lương Tăng Ca": "tien_luong_tang_ca",
    "Tiền Lương 30p Ăn Ca": "tien_luong_30p_an_ca",
    "Tiền Khen Thưởng Chuyên Cần": "tien_khen_thuong_chuyen_can",
    "Lương Học Việc PC Lương": "luong_hoc_viec_pc_luong",
    "Tổng Cộng Tiền Lương Sản Phẩm": "tong_cong_tien_luong_san_pham",
    "Hỗ Trợ Thời Tiết Nóng": "ho_tro_thoi_tiet_nong",
    "Bổ Sung Lương": "bo_sung_luong",
    "BHXH 21.5%": "bhxh_21_5_percent",
    "PC CDCS PCCC ATVSV": "pc_cdcs_pccc_atvsv",
    "Lương Phụ Nữ Hành Kinh": "luong_phu_nu_hanh_kinh",
    "Tiền Con Bú Thai 7 Tháng": "tien_con_bu_thai_7_thang",
    "Hỗ Trợ Gửi Con Nhà Trẻ": "ho_tro_gui_con_nha_tre",
    "Ngày Công Phép Lễ": "ngay_cong_phep_le",
    "Tiền Phép Lễ": "tien_phep_le",
    "Tổng Cộng Tiền Lương": "tong_cong_tien_luong",
    "Tiền Bốc Vác": "tien_boc_vac",
    "Hỗ Trợ Xăng Xe": "ho_tro_xang_xe",
    "Thuế TNCN Năm 2024": "thue_tncn_nam_2024",
    "Tạm Ứng": "tam_ung",
    "Thuế TNCN": "thue_tncn",
    "BHXH BHTN BHYT Total": "bhxh_bhtn_bhyt_total",
    "Truy Thu Thẻ BHYT": "truy_thu_the_bhyt",
    "Tiền Lương Thực Nhận Cuối Kỳ": "tien_luong_thuc_nhan_cuoi_ky",
}

DEFAULT_FIELD_HEADERS: Dict[str, str] = {field: header for header, field in PAYROLL_HEADER_TO_FIELD.items()}

KEY_FIELDS: List[str] = ['employee_id', 'salary_month']

# Every mapped field that holds a number
NUMERIC_FIELDS: List[str] = [f for f in PAYROLL_HEADER_TO_FIELD.values() if f not in KEY_FIELDS]

# Fields a client may receive for the payroll detail screen
PAYROLL_DISPLAY_FIELDS: List[str] = KEY_FIELDS + NUMERIC_FIELDS

SAMPLE_VALUES: Dict[str, object] = {
    'employee_id': 'NV001',
    'salary_month': '2025-01',
    'he_so_lam_viec': Decimal('1.0'),
    'he_so_phu_cap_ket_qua': Decimal('0.2'),
    'he_so_luong_co_ban': Decimal('2.34'),
    'luong_toi_thieu_cty': Decimal('4960000'),
    'ngay_cong_trong_gio': Decimal('26'),
    'gio_cong_tang_ca': Decimal('12'),
    'gio_an_ca': Decimal('13'),
    'tong_gio_lam_viec': Decimal('220'),
    'tien_luong_san_pham_trong_gio': Decimal('6500000'),
    'tien_luong_tang_ca': Decimal('650000'),
    'tong_cong_tien_luong': Decimal('8200000'),
    'bhxh_bhtn_bhyt_total': Decimal('520800'),
    'thue_tncn': Decimal('0'),
    'tam_ung': Decimal('500000'),
    'tien_luong_thuc_nhan_cuoi_ky': Decimal('7179200'),
}


def sample_value(field: str):
    """Realistic sample value for a template row."""
    return SAMPLE_VALUES.get(field, Decimal('0'))
