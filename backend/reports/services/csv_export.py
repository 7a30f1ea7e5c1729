"""
CSV rendering: the report's summary metrics as ``Metric,Value`` rows.

CSV is the fallback format. It carries the headline figures only and never
flattens the line-item sections.
"""
import csv
import io
import logging

from ..exceptions import RenderError
from .domain import Report
from .formatting import plain_metric

logger = logging.getLogger(__name__)


class CsvExporter:
    def export(self, report: Report) -> bytes:
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        try:
            writer.writerow(["Metric", "Value"])
            for metric in report.summary_metrics():
                writer.writerow([metric.label, plain_metric(metric)])
            return output.getvalue().encode("utf-8")
        except Exception as e:
            logger.error(f"CSV export failed for {report.report_type.value}: {e}")
            raise RenderError(f"CSV export failed: {e}", "csv") from e
        finally:
            output.close()
