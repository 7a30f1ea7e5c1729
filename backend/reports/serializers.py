import re

from rest_framework import serializers

from .models import ReportRecord
from .services.base import CustomReportParameters, ReportParameters, default_top_count, resolve_date_range
from .services.domain import (
    CustomReport,
    FinancialReport,
    InventoryReport,
    ReportKind,
    SalesReport,
)
from .services.entities import SaleStatus
from .services.export_service import ExportFormat

DATE_INPUT_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
]

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


class CamelCaseInputMixin:
    """Accept camelCase request keys (``startDate``) alongside snake_case."""

    def to_internal_value(self, data):
        if hasattr(data, "items"):
            data = {to_snake_case(key): value for key, value in data.items()}
        return super().to_internal_value(data)


# ============================================================================
# REQUEST PARAMETERS
# ============================================================================


class ReportParameterSerializer(CamelCaseInputMixin, serializers.Serializer):
    """Validate report parameters"""

    start_date = serializers.DateField(required=False, allow_null=True, input_formats=DATE_INPUT_FORMATS)
    end_date = serializers.DateField(required=False, allow_null=True, input_formats=DATE_INPUT_FORMATS)
    format = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    include_details = serializers.BooleanField(required=False, default=True)
    selected_categories = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    selected_products = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    selected_customers = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    top_count = serializers.IntegerField(required=False, min_value=1, max_value=100, default=default_top_count)

    @property
    def report_kind(self) -> ReportKind:
        return self.context.get("report_kind", ReportKind.SALES)

    def spans_monthly_revenue(self, data) -> bool:
        """Whether the report carries a monthly revenue table for the end year."""
        return self.report_kind == ReportKind.FINANCIAL

    def validate_format(self, value):
        try:
            return ExportFormat.normalize(value)
        except ValueError:
            raise serializers.ValidationError("Format must be one of: pdf, excel, xlsx, csv, json")

    def validate(self, data):
        """Validate the date range and fill in the defaults for this report type"""
        start_date = data.get("start_date")
        end_date = data.get("end_date")

        if start_date and end_date and start_date > end_date:
            raise serializers.ValidationError("Start date must be before end date")

        start_date, end_date = resolve_date_range(self.report_kind, start_date, end_date)
        if start_date > end_date:
            raise serializers.ValidationError("Start date must be before end date")
        if self.spans_monthly_revenue(data) and start_date.year != end_date.year:
            raise serializers.ValidationError("Financial reports must start and end in the same calendar year")

        data["start_date"] = start_date
        data["end_date"] = end_date
        return data

    def _common_parameters(self):
        data = self.validated_data
        return dict(
            start_date=data["start_date"],
            end_date=data["end_date"],
            include_details=data.get("include_details", True),
            selected_categories=tuple(data.get("selected_categories", [])),
            selected_products=tuple(data.get("selected_products", [])),
            selected_customers=tuple(data.get("selected_customers", [])),
            top_count=data.get("top_count", default_top_count()),
        )

    def to_parameters(self) -> ReportParameters:
        return ReportParameters(**self._common_parameters())

    @property
    def export_format(self):
        return self.validated_data.get("format")


class CustomReportParameterSerializer(ReportParameterSerializer):
    """Extended parameters for custom (filtered) reports"""

    report_title = serializers.CharField(required=False, allow_blank=True, max_length=200, default="Custom Report")
    include_daily_sales = serializers.BooleanField(required=False, default=True)
    include_top_products = serializers.BooleanField(required=False, default=True)
    include_top_customers = serializers.BooleanField(required=False, default=True)
    include_sales_by_category = serializers.BooleanField(required=False, default=True)
    include_sales_overview = serializers.BooleanField(required=False, default=False)
    include_inventory_status = serializers.BooleanField(required=False, default=False)
    include_financial_summary = serializers.BooleanField(required=False, default=False)
    include_charts = serializers.BooleanField(required=False, default=True)
    top_products_count = serializers.IntegerField(required=False, min_value=1, max_value=100, default=10)
    top_customers_count = serializers.IntegerField(required=False, min_value=1, max_value=100, default=10)
    min_sale_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True, min_value=0
    )
    max_sale_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True, min_value=0
    )
    payment_method = serializers.CharField(required=False, allow_blank=True, default="")
    sales_status = serializers.ChoiceField(
        choices=[SaleStatus.PENDING, SaleStatus.COMPLETED, SaleStatus.CANCELLED],
        required=False,
        default=SaleStatus.COMPLETED,
    )

    def spans_monthly_revenue(self, data) -> bool:
        return data.get("include_financial_summary", False)

    def validate(self, data):
        data = super().validate(data)
        min_amount = data.get("min_sale_amount")
        max_amount = data.get("max_sale_amount")
        if min_amount is not None and max_amount is not None and min_amount > max_amount:
            raise serializers.ValidationError("Minimum sale amount cannot exceed maximum sale amount")
        return data

    def to_parameters(self) -> CustomReportParameters:
        data = self.validated_data
        return CustomReportParameters(
            **self._common_parameters(),
            report_title=data.get("report_title") or "Custom Report",
            include_daily_sales=data["include_daily_sales"],
            include_top_products=data["include_top_products"],
            include_top_customers=data["include_top_customers"],
            include_sales_by_category=data["include_sales_by_category"],
            include_sales_overview=data["include_sales_overview"],
            include_inventory_status=data["include_inventory_status"],
            include_financial_summary=data["include_financial_summary"],
            include_charts=data["include_charts"],
            top_products_count=data["top_products_count"],
            top_customers_count=data["top_customers_count"],
            min_sale_amount=data.get("min_sale_amount"),
            max_sale_amount=data.get("max_sale_amount"),
            payment_method=data.get("payment_method", ""),
            sales_status=data["sales_status"],
        )


class LookupQuerySerializer(CamelCaseInputMixin, serializers.Serializer):
    """Query string parameters for the lookup endpoints"""

    start_date = serializers.DateField(required=False, allow_null=True, input_formats=DATE_INPUT_FORMATS)
    end_date = serializers.DateField(required=False, allow_null=True, input_formats=DATE_INPUT_FORMATS)
    top_count = serializers.IntegerField(required=False, min_value=1, max_value=100, default=default_top_count)
    year = serializers.IntegerField(required=False, min_value=2000, max_value=2100)

    def validate(self, data):
        start_date = data.get("start_date")
        end_date = data.get("end_date")
        if start_date or end_date:
            start_date, end_date = resolve_date_range(ReportKind.SALES, start_date, end_date)
            if start_date > end_date:
                raise serializers.ValidationError("Start date must be before end date")
        return data


# ============================================================================
# CANONICAL REPORT -> WIRE DTO
# ============================================================================


def money_field(**kwargs):
    return serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True, **kwargs)


class DailySalesSerializer(serializers.Serializer):
    date = serializers.DateField(read_only=True)
    total_amount = money_field()
    order_count = serializers.IntegerField(read_only=True)


class ProductSalesSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(read_only=True)
    product_name = serializers.CharField(read_only=True)
    sku = serializers.CharField(read_only=True)
    quantity_sold = serializers.IntegerField(read_only=True)
    revenue = money_field()


class CustomerSalesSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(read_only=True)
    customer_name = serializers.CharField(read_only=True)
    order_count = serializers.IntegerField(read_only=True)
    total_amount = money_field()


class NamedAmountSerializer(serializers.Serializer):
    name = serializers.CharField(read_only=True)
    amount = money_field()


class CategoryInventorySerializer(serializers.Serializer):
    category_id = serializers.IntegerField(read_only=True, allow_null=True)
    category_name = serializers.CharField(read_only=True)
    product_count = serializers.IntegerField(read_only=True)
    total_stock = serializers.IntegerField(read_only=True)
    total_value = money_field()


class ProductInventorySerializer(serializers.Serializer):
    product_id = serializers.IntegerField(read_only=True)
    product_name = serializers.CharField(read_only=True)
    sku = serializers.CharField(read_only=True)
    category_name = serializers.CharField(read_only=True)
    current_stock = serializers.IntegerField(read_only=True)
    min_stock = serializers.IntegerField(read_only=True)
    unit_price = money_field()
    stock_value = money_field()
    is_active = serializers.BooleanField(read_only=True)
    status = serializers.CharField(source="status.value", read_only=True)
    status_label = serializers.CharField(source="status.label", read_only=True)


class MonthlyRevenueSerializer(serializers.Serializer):
    year = serializers.IntegerField(read_only=True)
    month = serializers.IntegerField(read_only=True)
    label = serializers.CharField(read_only=True)
    revenue = money_field()
    transaction_count = serializers.IntegerField(read_only=True)
    growth_percent = money_field()


class SalesSummarySerializer(serializers.Serializer):
    total_sales = money_field()
    total_orders = serializers.IntegerField(read_only=True)
    average_order_value = money_field()


class InventorySummarySerializer(serializers.Serializer):
    total_products = serializers.IntegerField(read_only=True)
    active_products = serializers.IntegerField(read_only=True)
    inactive_products = serializers.IntegerField(read_only=True)
    low_stock_products = serializers.IntegerField(read_only=True)
    out_of_stock_products = serializers.IntegerField(read_only=True)
    total_inventory_value = money_field()


class FinancialSummarySerializer(serializers.Serializer):
    gross_revenue = money_field()
    total_discounts = money_field()
    net_revenue = money_field()
    total_transactions = serializers.IntegerField(read_only=True)
    average_transaction_value = money_field()


class CustomSummarySerializer(serializers.Serializer):
    total_revenue = money_field()
    total_transactions = serializers.IntegerField(read_only=True)
    average_transaction_value = money_field()
    unique_customers = serializers.IntegerField(read_only=True)
    products_sold = serializers.IntegerField(read_only=True)


class BaseReportSerializer(serializers.Serializer):
    report_type = serializers.CharField(source="report_type.value", read_only=True)
    title = serializers.CharField(read_only=True)
    start_date = serializers.DateField(read_only=True)
    end_date = serializers.DateField(read_only=True)
    generated_at = serializers.DateTimeField(read_only=True)


class SalesReportSerializer(BaseReportSerializer):
    summary = SalesSummarySerializer(read_only=True)
    daily_sales = DailySalesSerializer(many=True, read_only=True)
    top_products = ProductSalesSerializer(many=True, read_only=True)
    top_customers = CustomerSalesSerializer(many=True, read_only=True)
    sales_by_category = NamedAmountSerializer(many=True, read_only=True)
    sales_by_payment_method = NamedAmountSerializer(many=True, read_only=True)


class InventoryReportSerializer(BaseReportSerializer):
    summary = InventorySummarySerializer(read_only=True)
    product_details = ProductInventorySerializer(many=True, read_only=True)
    categories = CategoryInventorySerializer(many=True, read_only=True)
    low_stock_items = ProductInventorySerializer(many=True, read_only=True)


class FinancialReportSerializer(BaseReportSerializer):
    summary = FinancialSummarySerializer(read_only=True)
    monthly_revenue = MonthlyRevenueSerializer(many=True, read_only=True)
    revenue_by_category = NamedAmountSerializer(many=True, read_only=True)
    revenue_by_payment_method = NamedAmountSerializer(many=True, read_only=True)


class CustomReportSerializer(BaseReportSerializer):
    summary = CustomSummarySerializer(read_only=True)
    include_charts = serializers.BooleanField(read_only=True)
    daily_sales = DailySalesSerializer(many=True, read_only=True, allow_null=True)
    top_products = ProductSalesSerializer(many=True, read_only=True, allow_null=True)
    top_customers = CustomerSalesSerializer(many=True, read_only=True, allow_null=True)
    sales_by_category = NamedAmountSerializer(many=True, read_only=True, allow_null=True)
    sales_overview = SalesReportSerializer(read_only=True, allow_null=True)
    inventory_status = InventoryReportSerializer(read_only=True, allow_null=True)
    financial_summary = FinancialReportSerializer(read_only=True, allow_null=True)


REPORT_SERIALIZERS = {
    SalesReport: SalesReportSerializer,
    InventoryReport: InventoryReportSerializer,
    FinancialReport: FinancialReportSerializer,
    CustomReport: CustomReportSerializer,
}


def serialize_report(report):
    """Map any canonical report to its JSON wire shape"""
    serializer_class = REPORT_SERIALIZERS[type(report)]
    return serializer_class(report).data


class DashboardStatsSerializer(serializers.Serializer):
    total_products = serializers.IntegerField(read_only=True)
    active_products = serializers.IntegerField(read_only=True)
    low_stock_products = serializers.IntegerField(read_only=True)
    out_of_stock_products = serializers.IntegerField(read_only=True)
    total_customers = serializers.IntegerField(read_only=True)
    today_sales = money_field()
    month_sales = money_field()
    year_sales = money_field()
    pending_orders = serializers.IntegerField(read_only=True)
    completed_orders = serializers.IntegerField(read_only=True)


# ============================================================================
# HISTORY
# ============================================================================


class ReportRecordSerializer(serializers.ModelSerializer):
    """Serializer for report history records"""

    is_expired = serializers.ReadOnlyField()
    file_size_display = serializers.ReadOnlyField()

    class Meta:
        model = ReportRecord
        fields = [
            "id",
            "report_type",
            "format",
            "title",
            "created_at",
            "created_by",
            "start_date",
            "end_date",
            "parameters",
            "row_count",
            "total_amount",
            "status",
            "expires_at",
            "is_expired",
            "file_name",
            "file_size",
            "file_size_display",
        ]
        read_only_fields = fields


class ReportRecordDetailSerializer(ReportRecordSerializer):
    class Meta(ReportRecordSerializer.Meta):
        fields = ReportRecordSerializer.Meta.fields + ["parameters_hash", "view_data"]
        read_only_fields = fields
