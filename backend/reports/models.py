from datetime import timedelta

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone


class ReportType(models.TextChoices):
    SALES = "Sales", "Sales Report"
    INVENTORY = "Inventory", "Inventory Report"
    FINANCIAL = "Financial", "Financial Report"
    CUSTOM = "Custom", "Custom Report"


class FormatType(models.TextChoices):
    VIEW = "View", "View"
    PDF = "PDF", "PDF"
    EXCEL = "Excel", "Excel"
    CSV = "CSV", "CSV"


class ReportStatus(models.TextChoices):
    GENERATED = "Generated", "Generated"
    FAILED = "Failed", "Failed"
    EXPIRED = "Expired", "Expired"


def default_expiry():
    return timezone.now() + timedelta(days=getattr(settings, "REPORT_RETENTION_DAYS", 30))


class ReportRecord(models.Model):
    """Audit/history entry written once per generated report"""

    report_type = models.CharField(max_length=20, choices=ReportType.choices)
    format = models.CharField(max_length=10, choices=FormatType.choices, default=FormatType.VIEW)
    title = models.CharField(max_length=200)
    created_at = models.DateTimeField(default=timezone.now)
    created_by = models.CharField(max_length=150, blank=True, default="")
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    parameters = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    parameters_hash = models.CharField(max_length=64, blank=True, default="")
    row_count = models.IntegerField(default=0)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    status = models.CharField(
        max_length=20, choices=ReportStatus.choices, default=ReportStatus.GENERATED
    )
    expires_at = models.DateTimeField(default=default_expiry)
    file_name = models.CharField(max_length=255, blank=True, default="")
    file_size = models.BigIntegerField(null=True, blank=True)
    view_data = models.JSONField(
        null=True, blank=True, encoder=DjangoJSONEncoder, help_text="Report payload for JSON views"
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Report Record"
        verbose_name_plural = "Report Records"
        indexes = [
            models.Index(fields=["report_type", "created_at"], name="reports_rec_type_created_idx"),
            models.Index(fields=["status", "expires_at"], name="reports_rec_status_exp_idx"),
        ]

    def __str__(self):
        return f"{self.title} ({self.format}) - {self.created_at.strftime('%Y-%m-%d %H:%M')}"

    @property
    def is_expired(self):
        return timezone.now() > self.expires_at

    def file_size_display(self):
        if not self.file_size:
            return "-"
        size = float(self.file_size)
        for unit in ["B", "KB", "MB", "GB"]:
            if size < 1024.0:
                return f"{size:.1f} {unit}"
            size /= 1024.0
        return f"{size:.1f} TB"

    @classmethod
    def expire_overdue(cls, now=None):
        """Move overdue Generated records to Expired; returns how many changed."""
        now = now or timezone.now()
        return cls.objects.filter(
            status=ReportStatus.GENERATED, expires_at__lt=now
        ).update(status=ReportStatus.EXPIRED)
