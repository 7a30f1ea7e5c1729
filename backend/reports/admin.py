from django.contrib import admin
from django.utils.html import format_html

from .models import ReportRecord, ReportStatus


@admin.register(ReportRecord)
class ReportRecordAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "report_type",
        "format",
        "created_by",
        "created_at",
        "row_count",
        "total_amount",
        "status_badge",
        "expires_at",
        "file_size_display",
    )
    list_filter = ("report_type", "format", "status", "created_at")
    search_fields = ("title", "created_by", "file_name")
    readonly_fields = [field.name for field in ReportRecord._meta.fields if field.name != "status"]
    ordering = ("-created_at",)

    fieldsets = (
        (
            "Report",
            {"fields": ("report_type", "format", "title", "status", "expires_at")},
        ),
        ("Request", {"fields": ("created_by", "created_at", "start_date", "end_date", "parameters")}),
        ("Output", {"fields": ("row_count", "total_amount", "file_name", "file_size")}),
        ("Payload", {"fields": ("parameters_hash", "view_data"), "classes": ("collapse",)}),
    )

    def status_badge(self, obj):
        color = {
            ReportStatus.GENERATED: "green",
            ReportStatus.FAILED: "red",
            ReportStatus.EXPIRED: "grey",
        }.get(obj.status, "black")
        return format_html('<span style="color: {};">{}</span>', color, obj.get_status_display())

    status_badge.short_description = "Status"

    def file_size_display(self, obj):
        return obj.file_size_display()

    file_size_display.short_description = "File Size"

    actions = ["expire_selected"]

    def expire_selected(self, request, queryset):
        count = queryset.filter(status=ReportStatus.GENERATED).update(status=ReportStatus.EXPIRED)
        self.message_user(request, f"Marked {count} report records as expired.")

    expire_selected.short_description = "Mark selected reports as expired"

    def has_add_permission(self, request):
        # History records are only written by report generation
        return False


admin.site.site_header = "Report Service Administration"
admin.site.site_title = "Report Service Admin"
admin.site.index_title = "Report history"
