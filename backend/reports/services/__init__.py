from .assembler import ReportAssembler, DashboardStats
from .base import CustomReportParameters, ReportParameters, resolve_date_range
from .charts import ChartRenderer
from .export_service import ExportFormat, ExportService, ExportedFile
from .history import ReportHistoryService
from .upstream import UpstreamDataGateway

__all__ = [
    "ReportAssembler",
    "DashboardStats",
    "ReportParameters",
    "CustomReportParameters",
    "resolve_date_range",
    "ChartRenderer",
    "ExportFormat",
    "ExportService",
    "ExportedFile",
    "ReportHistoryService",
    "UpstreamDataGateway",
]
