"""
URL configuration for core_backend project.

The report service only exposes the reports API, the admin (for report
history) and an unauthenticated health check.
"""

from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    """Simple health check endpoint that doesn't require authentication"""
    return JsonResponse({"status": "ok", "message": "Report service is running"})


urlpatterns = [
    path("api/health/", health_check, name="health_check"),
    path("admin/", admin.site.urls),
    path("api/reports/", include("reports.urls")),
]
