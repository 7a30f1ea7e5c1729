from celery import shared_task
from django.db import DatabaseError
from django.utils import timezone
import logging

from .services.history import ReportHistoryService

logger = logging.getLogger(__name__)


@shared_task
def expire_report_records():
    """
    Mark report history records past their retention window as Expired.
    This task should be run periodically (see CELERY_BEAT_SCHEDULE).
    """
    try:
        expired_count = ReportHistoryService.expire_overdue()
        logger.info(f"Report expiry sweep finished: {expired_count} records expired")
        return {
            "status": "completed",
            "expired_count": expired_count,
            "swept_at": timezone.now().isoformat(),
        }
    except DatabaseError as exc:
        logger.error(f"Error in report expiry sweep: {exc}")
        return {"status": "failed", "error": str(exc)}
