import logging

from django.http import HttpResponse
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core_backend.pagination import StandardPagination

from .exceptions import AggregationError, RenderError
from .models import ReportRecord
from .permissions import IsManagerOrHigher, is_manager
from .serializers import (
    CustomerSalesSerializer,
    CustomReportParameterSerializer,
    DailySalesSerializer,
    DashboardStatsSerializer,
    LookupQuerySerializer,
    MonthlyRevenueSerializer,
    NamedAmountSerializer,
    ProductInventorySerializer,
    ProductSalesSerializer,
    ReportParameterSerializer,
    ReportRecordDetailSerializer,
    ReportRecordSerializer,
    serialize_report,
)
from .services import ExportService, ReportAssembler, ReportHistoryService, UpstreamDataGateway
from .services.domain import ReportKind

logger = logging.getLogger(__name__)

MANAGER_PERMISSIONS = [IsAuthenticated, IsManagerOrHigher]


def caller_name(request) -> str:
    user_id = getattr(request.user, "id", None)
    return "" if user_id is None else str(user_id)


def file_response(exported) -> HttpResponse:
    response = HttpResponse(exported.content, content_type=exported.content_type)
    response["Content-Disposition"] = f'attachment; filename="{exported.filename}"'
    response["Content-Length"] = str(exported.size)
    return response


def error_response(message: str, exc: Exception) -> Response:
    return Response(
        {"error": message, "detail": str(exc)},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class ReportViewSet(viewsets.ViewSet):
    """
    Report generation and lookup endpoints.

    POST endpoints return the report as JSON, or as a file download when a
    ``format`` is given. Financial data is limited to managers and admins.
    """

    permission_classes = [IsAuthenticated]

    def get_assembler(self, request) -> ReportAssembler:
        """Assembler whose upstream calls carry the caller's bearer token."""
        token = str(request.auth) if request.auth else None
        return ReportAssembler(UpstreamDataGateway(auth_token=token))

    # ========================================================================
    # REPORT GENERATION
    # ========================================================================

    def _generate(self, request, kind: ReportKind, serializer_class=ReportParameterSerializer):
        serializer = serializer_class(data=request.data, context={"report_kind": kind})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        params = serializer.to_parameters()
        export_format = serializer.export_format
        label = kind.value.lower()
        assembler = self.get_assembler(request)

        try:
            builders = {
                ReportKind.SALES: assembler.build_sales_report,
                ReportKind.INVENTORY: assembler.build_inventory_report,
                ReportKind.FINANCIAL: assembler.build_financial_report,
                ReportKind.CUSTOM: assembler.build_custom_report,
            }
            report = builders[kind](params)

            if export_format is None:
                data = serialize_report(report)
                ReportHistoryService.record_generation(
                    report, params, created_by=caller_name(request), view_data=data
                )
                return Response(data, status=status.HTTP_200_OK)

            exported = ExportService().export(report, export_format)
            ReportHistoryService.record_generation(
                report, params, export_format, created_by=caller_name(request), exported=exported
            )
            logger.info(f"Exported {exported.filename} ({exported.size} bytes) for {caller_name(request) or 'anonymous'}")
            return file_response(exported)

        except AggregationError as e:
            logger.error(f"{kind.value} report aggregation failed: {e}", exc_info=True)
            return error_response(f"Failed to generate {label} report", e)
        except RenderError as e:
            logger.error(f"{kind.value} report export to {e.export_format} failed: {e}", exc_info=True)
            return error_response(f"Failed to export {label} report", e)
        except Exception as e:
            logger.error(f"{kind.value} report generation failed: {e}", exc_info=True)
            return error_response(f"Failed to generate {label} report", e)
        finally:
            assembler.gateway.close()

    @action(detail=False, methods=["post"], url_path="sales")
    def sales(self, request):
        """Generate a sales report"""
        return self._generate(request, ReportKind.SALES)

    @action(detail=False, methods=["post"], url_path="inventory")
    def inventory(self, request):
        """Generate an inventory snapshot report"""
        return self._generate(request, ReportKind.INVENTORY)

    @action(detail=False, methods=["post"], url_path="financial", permission_classes=MANAGER_PERMISSIONS)
    def financial(self, request):
        """Generate a financial report (managers and admins only)"""
        return self._generate(request, ReportKind.FINANCIAL)

    @action(detail=False, methods=["post"], url_path="custom")
    def custom(self, request):
        """Generate a custom filtered report"""
        return self._generate(request, ReportKind.CUSTOM, CustomReportParameterSerializer)

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def _lookup(self, request, description: str, fetch):
        serializer = LookupQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        assembler = self.get_assembler(request)
        try:
            return Response(fetch(assembler, serializer.validated_data), status=status.HTTP_200_OK)
        except Exception as e:
            logger.error(f"{description} lookup failed: {e}", exc_info=True)
            return error_response(f"Failed to load {description}", e)
        finally:
            assembler.gateway.close()

    @action(detail=False, methods=["get"], url_path="sales/daily", url_name="daily-sales")
    def daily_sales(self, request):
        """Daily sales series, one entry per day"""
        return self._lookup(
            request,
            "daily sales",
            lambda assembler, query: DailySalesSerializer(
                assembler.daily_sales(query.get("start_date"), query.get("end_date")), many=True
            ).data,
        )

    @action(detail=False, methods=["get"], url_path="products/top-selling", url_name="top-products")
    def top_products(self, request):
        return self._lookup(
            request,
            "top products",
            lambda assembler, query: ProductSalesSerializer(
                assembler.top_products(query.get("start_date"), query.get("end_date"), query["top_count"]),
                many=True,
            ).data,
        )

    @action(detail=False, methods=["get"], url_path="customers/top", url_name="top-customers")
    def top_customers(self, request):
        return self._lookup(
            request,
            "top customers",
            lambda assembler, query: CustomerSalesSerializer(
                assembler.top_customers(query.get("start_date"), query.get("end_date"), query["top_count"]),
                many=True,
            ).data,
        )

    @action(detail=False, methods=["get"], url_path="inventory/low-stock", url_name="low-stock")
    def low_stock(self, request):
        """Products at or below their minimum stock level"""
        return self._lookup(
            request,
            "low stock items",
            lambda assembler, query: ProductInventorySerializer(assembler.low_stock(), many=True).data,
        )

    @action(
        detail=False,
        methods=["get"],
        url_path="financial/monthly-revenue",
        url_name="monthly-revenue",
        permission_classes=MANAGER_PERMISSIONS,
    )
    def monthly_revenue(self, request):
        return self._lookup(
            request,
            "monthly revenue",
            lambda assembler, query: MonthlyRevenueSerializer(
                assembler.monthly_revenue(query.get("year")), many=True
            ).data,
        )

    @action(
        detail=False,
        methods=["get"],
        url_path="financial/revenue-by-category",
        url_name="revenue-by-category",
        permission_classes=MANAGER_PERMISSIONS,
    )
    def revenue_by_category(self, request):
        return self._lookup(
            request,
            "revenue by category",
            lambda assembler, query: NamedAmountSerializer(
                assembler.revenue_by_category(query.get("start_date"), query.get("end_date")), many=True
            ).data,
        )

    @action(detail=False, methods=["get"], url_path="dashboard/stats", url_name="dashboard-stats")
    def dashboard_stats(self, request):
        """Headline numbers for the dashboard, computed from live upstream data"""
        return self._lookup(
            request,
            "dashboard stats",
            lambda assembler, query: DashboardStatsSerializer(assembler.dashboard_stats()).data,
        )


class ReportRecordViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Report history. Managers and admins see every record; other callers only
    see the reports they generated.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ["report_type", "format", "status"]
    search_fields = ["title"]
    ordering_fields = ["created_at", "total_amount", "row_count"]
    ordering = ["-created_at"]

    def get_queryset(self):
        queryset = ReportRecord.objects.all()
        if is_manager(self.request.user):
            return queryset
        return queryset.filter(created_by=caller_name(self.request))

    def get_serializer_class(self):
        if self.action == "retrieve":
            return ReportRecordDetailSerializer
        return ReportRecordSerializer
