"""
Error taxonomy for report generation.

Upstream unavailability is not represented here: the data gateway degrades
to empty collections instead of raising. Invalid request parameters are
rejected by the parameter serializers with ``serializers.ValidationError``.
"""


class ReportError(Exception):
    """Base class for report generation failures."""


class AggregationError(ReportError):
    """Fetched data had an unexpected shape and could not be aggregated."""


class RenderError(ReportError):
    """An export format could not be produced."""

    def __init__(self, message, export_format=None):
        super().__init__(message)
        self.export_format = export_format
