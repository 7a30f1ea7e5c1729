from django.core.management.base import BaseCommand
from django.utils import timezone

from reports.models import ReportRecord, ReportStatus
from reports.services.history import ReportHistoryService


class Command(BaseCommand):
    help = 'Mark report history records past their retention window as Expired'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Only count the records that would be expired',
        )

    def handle(self, *args, **options):
        overdue = ReportRecord.objects.filter(
            status=ReportStatus.GENERATED, expires_at__lt=timezone.now()
        )

        if options['dry_run']:
            self.stdout.write(f"{overdue.count()} report records would be expired")
            return

        expired = ReportHistoryService.expire_overdue()
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} report records"))
