"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Centralized logging for Excel import operations.
-------------------------------------------------------------------------
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger('imports')


class ImportLogger:
    """Centralized logging for import operations"""

    @staticmethod
    def log_import_started(import_type: str, batch_id: str, filename: str, imported_by: str):
        logger.info(
            f"Import started: {import_type} | "
            f"Batch: {batch_id} | "
            f"File: {filename} | "
            f"By: {imported_by}",
            extra={
                'import_type': import_type,
                'batch_id': batch_id,
                'source_file': filename,
                'imported_by': imported_by
            }
        )

    @staticmethod
    def log_import_completed(import_type: str, batch_id: str, summary: Dict[str, Any]):
        """Log the counts of a finished import"""
        level = logging.INFO if not summary.get('error_count') else logging.WARNING
        logger.log(
            level,
            f"Import completed: {import_type} | "
            f"Batch: {batch_id} | "
            f"Total: {summary.get('total_records', 0)} | "
            f"Inserted: {summary.get('inserted_count', 0)} | "
            f"Overwritten: {summary.get('overwrite_count', 0)} | "
            f"Skipped: {summary.get('skipped_count', 0)} | "
            f"Errors: {summary.get('error_count', 0)}",
            extra={'import_type': import_type, 'batch_id': batch_id, **summary}
        )

    @staticmethod
    def log_batch_failed(batch_id: str, batch_index: int, row_count: int, error: Exception):
        """Log a failed write batch; earlier batches stay committed"""
        logger.error(
            f"Import batch failed: {batch_id} | "
            f"Chunk: {batch_index} | "
            f"Rows: {row_count} | "
            f"Error: {error}",
            exc_info=True,
            extra={
                'batch_id': batch_id,
                'batch_index': batch_index,
                'row_count': row_count,
                'error_type': type(error).__name__
            }
        )

    @staticmethod
    def log_signed_record_skipped(batch_id: str, employee_id: str, salary_month: str):
        logger.warning(
            f"Signed payroll not overwritten: {employee_id} {salary_month} | Batch: {batch_id}",
            extra={'batch_id': batch_id, 'employee_id': employee_id, 'salary_month': salary_month}
        )

    @staticmethod
    def log_rejected_upload(filename: str, reason: str):
        logger.warning(
            f"Upload rejected: {filename} | Reason: {reason}",
            extra={'source_file': filename, 'reason': reason}
        )

    @staticmethod
    def log_error(operation: str, error: Exception, context: Optional[Dict[str, Any]] = None):
        """Log errors with context"""
        logger.error(
            f"Error in {operation}: {str(error)}",
            exc_info=True,
            extra={
                'operation': operation,
                'error_type': type(error).__name__,
                'context': context or {}
            }
        )
