"""
Export dispatch: picks the formatter for a requested format and names the
resulting file.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.utils import timezone

from ..exceptions import RenderError
from .charts import ChartRenderer
from .csv_export import CsvExporter
from .domain import Report
from .excel_export import ExcelExporter
from .pdf_export import PdfExporter

logger = logging.getLogger(__name__)


class ExportFormat:
    PDF = "pdf"
    EXCEL = "excel"
    CSV = "csv"

    ALIASES = {
        "pdf": PDF,
        "excel": EXCEL,
        "xlsx": EXCEL,
        "csv": CSV,
    }

    EXTENSIONS = {
        PDF: "pdf",
        EXCEL: "xlsx",
        CSV: "csv",
    }

    CONTENT_TYPES = {
        PDF: "application/pdf",
        EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        CSV: "text/csv",
    }

    @classmethod
    def normalize(cls, value: Optional[str]) -> Optional[str]:
        """Canonical format name, or None for a JSON view."""
        if value is None:
            return None
        key = value.strip().lower()
        if key in ("", "json", "view"):
            return None
        if key not in cls.ALIASES:
            raise ValueError(f"Unsupported export format: {value}")
        return cls.ALIASES[key]


@dataclass(frozen=True)
class ExportedFile:
    content: bytes
    content_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)


class ExportService:
    """Renders a canonical report into a downloadable file."""

    def __init__(self, charts: Optional[ChartRenderer] = None):
        charts = charts or ChartRenderer()
        self.exporters = {
            ExportFormat.PDF: PdfExporter(charts),
            ExportFormat.EXCEL: ExcelExporter(charts),
            ExportFormat.CSV: CsvExporter(),
        }

    @staticmethod
    def filename_for(report: Report, export_format: str, generated_on=None) -> str:
        generated_on = generated_on or timezone.localdate()
        extension = ExportFormat.EXTENSIONS[export_format]
        return f"{report.report_type.value}Report_{generated_on.strftime('%Y%m%d')}.{extension}"

    def export(self, report: Report, export_format: str) -> ExportedFile:
        export_format = ExportFormat.normalize(export_format)
        if export_format is None:
            raise RenderError("A file format is required for export")

        try:
            content = self.exporters[export_format].export(report)
        except RenderError:
            raise
        except Exception as e:
            logger.error(f"{export_format.upper()} export failed for {report.report_type.value}: {e}")
            raise RenderError(f"{export_format.upper()} export failed: {e}", export_format) from e

        exported = ExportedFile(
            content=content,
            content_type=ExportFormat.CONTENT_TYPES[export_format],
            filename=self.filename_for(report, export_format),
        )
        logger.info(f"Exported {exported.filename} ({exported.size} bytes)")
        return exported
