"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Tests for column mapping detection, saved configurations
             and dual-file merging.
-------------------------------------------------------------------------
"""
from django.test import SimpleTestCase

from apps.imports.dual_file import (
    ColumnSpec, DualFileImportParser, FileRows, convert_to_payroll_records, process_value,
)
from apps.imports.mapping import (
    AliasEntry, apply_configuration, auto_detect_mappings, calculate_confidence,
    categorize_confidence, resolve_template_headers, validate_mapping,
)
from apps.imports.models import DataType, MappingType


class ConfidenceTests(SimpleTestCase):

    def test_exact_and_contains(self):
        self.assertEqual(calculate_confidence('Mã Nhân Viên', 'mã nhân  viên'), (100, MappingType.EXACT))
        self.assertEqual(calculate_confidence('Tạm Ứng (VND)', 'Tạm Ứng'), (75, MappingType.FUZZY))

    def test_similarity_is_scaled(self):
        score, mapping_type = calculate_confidence('abcdef', 'abcxyz')
        self.assertEqual(mapping_type, MappingType.FUZZY)
        self.assertLess(score, 75)

    def test_categories(self):
        self.assertEqual(categorize_confidence(80), 'high')
        self.assertEqual(categorize_confidence(50), 'medium')
        self.assertEqual(categorize_confidence(49), 'low')


class AutoDetectTests(SimpleTestCase):
    """Tests for auto_detect_mappings"""

    def test_standard_headers(self):
        result = auto_detect_mappings(['Mã Nhân Viên', 'Tháng Lương', 'Tiền Lương Thực Nhận Cuối Kỳ', ''])

        self.assertTrue(result.success)
        self.assertEqual(result.detected_columns, ['Mã Nhân Viên', 'Tháng Lương', 'Tiền Lương Thực Nhận Cuối Kỳ'])
        self.assertEqual(result.mapping['Mã Nhân Viên'].database_field, 'employee_id')
        self.assertEqual(result.mapping['Tháng Lương'].confidence_level, 'high')
        self.assertEqual(
            result.mapping['Tiền Lương Thực Nhận Cuối Kỳ'].database_field, 'tien_luong_thuc_nhan_cuoi_ky'
        )

    def test_unknown_header_is_unmapped(self):
        result = auto_detect_mappings(['Mã Nhân Viên', 'Tháng Lương', 'zzzz'])
        self.assertIn('zzzz', result.unmapped_columns)
        self.assertEqual(result.confidence_summary['manual_required'], 1)

    def test_alias_match(self):
        aliases = [AliasEntry('employee_id', 'Số thẻ', 95)]
        result = auto_detect_mappings(['Số thẻ', 'Tháng Lương'], aliases=aliases)
        proposal = result.mapping['Số thẻ']
        self.assertEqual(proposal.database_field, 'employee_id')
        self.assertEqual(proposal.mapping_type, MappingType.ALIAS)

    def test_missing_required_field_is_a_conflict(self):
        result = auto_detect_mappings(['Tháng Lương'])
        self.assertFalse(result.success)
        self.assertEqual(result.conflicts[0].type, 'required_field_missing')
        self.assertEqual(result.conflicts[0].database_field, 'employee_id')


class ValidateMappingTests(SimpleTestCase):

    def test_duplicate_field(self):
        conflicts = validate_mapping({
            'Mã NV': 'employee_id', 'Mã nhân viên': 'employee_id', 'Tháng': 'salary_month'
        })
        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].type, 'duplicate_mapping')
        self.assertEqual(conflicts[0].excel_columns, ['Mã NV', 'Mã nhân viên'])

    def test_clean_mapping(self):
        self.assertEqual(validate_mapping({'Mã NV': 'employee_id', 'Tháng': 'salary_month'}), [])


class ApplyConfigurationTests(SimpleTestCase):

    def test_exact_match_preferred_over_contains(self):
        headers = ['Mã NV (cũ)', 'Mã NV', 'Tháng']
        resolved = apply_configuration(headers, [('mã nv', 'employee_id'), ('Tháng', 'salary_month')])
        self.assertEqual(resolved, {1: 'employee_id', 2: 'salary_month'})

    def test_contains_fallback(self):
        resolved = apply_configuration(['Lương thực nhận (VND)'], [('Lương thực nhận', 'tien_luong_thuc_nhan_cuoi_ky')])
        self.assertEqual(resolved, {0: 'tien_luong_thuc_nhan_cuoi_ky'})


class TemplateHeaderTests(SimpleTestCase):

    def test_configuration_overrides_defaults(self):
        result = resolve_template_headers(
            ['employee_id', 'salary_month', 'custom_field'],
            [('Mã số', 'employee_id')]
        )
        self.assertEqual(result.headers['employee_id'], 'Mã số')
        self.assertEqual(result.headers['salary_month'], 'Tháng Lương')
        self.assertEqual(result.headers['custom_field'], 'custom_field')
        self.assertEqual(result.unmapped_fields, ['custom_field'])
        self.assertEqual(result.source, 'configuration')

    def test_default_source(self):
        self.assertEqual(resolve_template_headers(['employee_id']).source, 'default')
        self.assertEqual(resolve_template_headers(['nothing']).source, 'fallback')


class DualFileMergeTests(SimpleTestCase):
    """Tests for joining two mapped payroll files"""

    def setUp(self):
        self.file1_specs = [
            ColumnSpec('Mã NV', 'employee_id', is_required=True),
            ColumnSpec('Tháng', 'salary_month', is_required=True, display_order=1),
            ColumnSpec('Tổng lương', 'tong_cong_tien_luong', DataType.NUMBER, display_order=2),
        ]
        self.file2_specs = [
            ColumnSpec('Mã NV', 'employee_id', is_required=True),
            ColumnSpec('Tháng', 'salary_month', is_required=True, display_order=1),
            ColumnSpec('Thực nhận', 'tien_luong_thuc_nhan_cuoi_ky', DataType.NUMBER, display_order=2),
        ]
        self.parser = DualFileImportParser(self.file1_specs, self.file2_specs)

    def _rows(self, filename, data):
        rows = FileRows(filename=filename)
        for number, (key, values) in enumerate(data.items(), 2):
            rows.rows[key] = {'employee_id': key[0], 'salary_month': key[1], **values}
            rows.row_numbers[key] = number
        return rows

    def test_matched_and_unmatched(self):
        rows1 = self._rows('a.xlsx', {
            ('NV001', '2025-05'): {'tong_cong_tien_luong': 100.0},
            ('NV002', '2025-05'): {'tong_cong_tien_luong': 200.0},
        })
        rows2 = self._rows('b.xlsx', {
            ('NV001', '2025-05'): {'tien_luong_thuc_nhan_cuoi_ky': 90.0},
            ('NV003', '2025-05'): {'tien_luong_thuc_nhan_cuoi_ky': 50.0},
        })
        result = self.parser.merge(rows1, rows2)

        self.assertEqual(result.total_employees, 3)
        self.assertEqual(result.matched_records, 1)
        self.assertEqual(result.unmatched_records, 2)
        self.assertEqual(result.summary['file1_only'], 1)
        self.assertEqual(result.summary['file2_only'], 1)
        self.assertEqual(len(result.warnings), 2)

        records = convert_to_payroll_records(result, matched_only=True)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0]['tong_cong_tien_luong'], 100.0)
        self.assertEqual(records[0]['tien_luong_thuc_nhan_cuoi_ky'], 90.0)
        self.assertEqual(records[0]['source_file'], 'a.xlsx + b.xlsx')

        self.assertEqual(len(convert_to_payroll_records(result, matched_only=False)), 3)

    def test_single_file(self):
        rows1 = self._rows('a.xlsx', {('NV001', '2025-05'): {'tong_cong_tien_luong': 100.0}})
        result = self.parser.merge(rows1, None)
        self.assertEqual(result.unmatched_records, 0)
        self.assertEqual(result.warnings, [])
        self.assertEqual(result.summary['file1_only'], 0)
        records = convert_to_payroll_records(result, matched_only=False)
        self.assertEqual(records[0]['source_file'], 'a.xlsx')
        self.assertEqual(records[0]['_row'], 2)

    def test_process_value(self):
        number = ColumnSpec('X', 'x', DataType.NUMBER)
        self.assertEqual(process_value(None, number), 0)
        self.assertEqual(process_value('1.500', number), 1.5)
        self.assertEqual(process_value(None, ColumnSpec('X', 'x', DataType.NUMBER, default_value='7')), 7.0)
        self.assertEqual(process_value('2025-05-01', ColumnSpec('D', 'd', DataType.DATE)), '2025-05-01')
        self.assertIsNone(process_value('hôm qua', ColumnSpec('D', 'd', DataType.DATE)))
