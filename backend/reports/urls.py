from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r"history", views.ReportRecordViewSet, basename="report-history")
router.register(r"", views.ReportViewSet, basename="reports")

urlpatterns = [
    path("", include(router.urls)),
]

# URL patterns reference (mounted under /api/reports/):
#
# Report generation (JSON by default, file download with "format"):
# POST sales/        {"startDate": "2025-06-01", "endDate": "2025-06-30", "format": "pdf"}
# POST inventory/
# POST financial/    (manager or admin)
# POST custom/       {"reportTitle": "...", "minSaleAmount": 50, "includeCharts": false}
#
# Lookups:
# GET sales/daily/?start_date=2025-06-01&end_date=2025-06-30
# GET products/top-selling/?top_count=5
# GET customers/top/?top_count=5
# GET inventory/low-stock/
# GET financial/monthly-revenue/?year=2025 (manager or admin)
# GET financial/revenue-by-category/ (manager or admin)
# GET dashboard/stats/
#
# Report history:
# GET history/?report_type=Sales&format=PDF&status=Generated
# GET history/{id}/
