"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Management command to import a payroll workbook from the
             shell through the same pipeline as the upload endpoint.
-------------------------------------------------------------------------
"""
import os
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from apps.core.exceptions import PayrollException
from apps.imports.parsers import parse_payroll_workbook
from apps.imports.services import ImportService


class Command(BaseCommand):
    """
    Import a payroll .xlsx file.

    With --dry-run the file is parsed and validated only; nothing is
    written.
    """

    help = 'Imports a payroll Excel workbook.'

    def add_arguments(self, parser) -> None:
        parser.add_argument('path', type=str, help='Path to the .xlsx file.')
        parser.add_argument('--t13', action='store_true', help='Validate months as 13th-month payroll (YYYY-13).')
        parser.add_argument('--dry-run', action='store_true', help='Parse and validate without saving.')
        parser.add_argument('--imported-by', type=str, default='cli', help='Employee code recorded on the batch.')

    def handle(self, *args: Any, **options: Any) -> None:
        path = options['path']
        if not os.path.isfile(path):
            raise CommandError(f"File not found: {path}")
        with open(path, 'rb') as fh:
            content = fh.read()
        filename = os.path.basename(path)

        try:
            if options['dry_run']:
                parsed = parse_payroll_workbook(content, filename, is_t13=options['t13'])
                self.stdout.write(self.style.NOTICE(
                    f"Dry run: {parsed.total_rows} rows, {len(parsed.records)} valid, "
                    f"{parsed.errors.rejected_count} rejected"
                ))
                errors = parsed.errors.as_dicts()
            else:
                result = ImportService(imported_by=options['imported_by']).import_payroll(
                    content, filename, is_t13=options['t13']
                )
                self.stdout.write(self.style.SUCCESS(
                    f"Batch {result['importBatchId']}: {result['insertedMonthly']} saved "
                    f"({result['overwriteCount']} overwritten), {result['skippedRecords']} skipped"
                ))
                errors = result['errors']
        except PayrollException as e:
            raise CommandError(e.message)

        for error in errors:
            self.stdout.write(self.style.WARNING(
                f"  Row {error['row']}: [{error['errorType']}] {error['error']}"
            ))
