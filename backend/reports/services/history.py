"""
Report history: one ``ReportRecord`` per generated report.

Recording is best effort. A failed write is logged and never fails the
report that was already produced.
"""
import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from ..models import FormatType, ReportRecord, ReportStatus, ReportType
from .base import ReportParameters
from .domain import Report
from .export_service import ExportFormat, ExportedFile

logger = logging.getLogger(__name__)

FORMAT_CHOICES = {
    None: FormatType.VIEW,
    ExportFormat.PDF: FormatType.PDF,
    ExportFormat.EXCEL: FormatType.EXCEL,
    ExportFormat.CSV: FormatType.CSV,
}


class ReportHistoryService:
    @staticmethod
    def is_enabled() -> bool:
        return getattr(settings, "REPORT_HISTORY_ENABLED", True)

    @classmethod
    def record_generation(
        cls,
        report: Report,
        params: ReportParameters,
        export_format: Optional[str] = None,
        created_by: str = "",
        exported: Optional[ExportedFile] = None,
        view_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[ReportRecord]:
        if not cls.is_enabled():
            return None

        try:
            record = ReportRecord.objects.create(
                report_type=ReportType(report.report_type.value),
                format=FORMAT_CHOICES[export_format],
                title=report.title,
                created_at=timezone.now(),
                created_by=created_by or "",
                start_date=report.start_date,
                end_date=report.end_date,
                parameters=params.to_json(),
                parameters_hash=params.fingerprint(),
                row_count=report.row_count,
                total_amount=report.headline_amount,
                status=ReportStatus.GENERATED,
                file_name=exported.filename if exported else "",
                file_size=exported.size if exported else None,
                view_data=view_data,
            )
        except DatabaseError as e:
            logger.error(f"Failed to record {report.report_type.value} report history: {e}")
            return None

        logger.info(f"Recorded {record.report_type} report #{record.pk} ({record.format})")
        return record

    @staticmethod
    def expire_overdue() -> int:
        expired = ReportRecord.expire_overdue()
        if expired:
            logger.info(f"Marked {expired} report records as expired")
        return expired
