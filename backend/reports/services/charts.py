"""
Chart rendering for report exports.

Each method takes line items from a canonical report and returns PNG bytes.
The same bytes are embedded by the PDF and Excel exporters. Charts are drawn
on standalone ``Figure`` objects (Agg canvas), so no pyplot global state is
shared between concurrent requests.
"""
import io
import logging
from typing import List, Sequence

import matplotlib

matplotlib.use("Agg")

from matplotlib.figure import Figure  # noqa: E402
from matplotlib.ticker import FuncFormatter  # noqa: E402

from .domain import (  # noqa: E402
    CategoryInventory,
    CustomerSales,
    DailySales,
    MonthlyRevenue,
    NamedAmount,
    ProductSales,
)

logger = logging.getLogger(__name__)

PALETTE = [
    "#366092",
    "#E07B39",
    "#4CAF50",
    "#C0392B",
    "#8E44AD",
    "#16A085",
    "#F1C40F",
    "#7F8C8D",
    "#2C3E50",
    "#D35400",
]
FIGURE_SIZE = (10, 5)
PIE_FIGURE_SIZE = (8, 6)
DPI = 100
MAX_DATE_LABELS = 10
TARGET_DATE_LABELS = 8


def currency_tick(value, _pos=None) -> str:
    return f"${value:,.0f}"


def percent_tick(value, _pos=None) -> str:
    return f"{value:.0f}%"


def date_label_positions(count: int) -> List[int]:
    """Indices of the x labels to show; every label up to 10 points, ~8 beyond."""
    if count <= MAX_DATE_LABELS:
        return list(range(count))
    step = max(1, count // TARGET_DATE_LABELS)
    return list(range(0, count, step))


class ChartRenderer:
    """Stateless chart factory returning PNG image bytes."""

    # === helpers ===

    @staticmethod
    def _to_png(fig: Figure) -> bytes:
        buffer = io.BytesIO()
        fig.savefig(buffer, format="png", dpi=DPI, bbox_inches="tight")
        fig.clear()
        return buffer.getvalue()

    @classmethod
    def placeholder(cls, title: str) -> bytes:
        """Empty chart whose title says there is nothing to plot."""
        logger.debug(f"Rendering placeholder chart: {title}")
        fig = Figure(figsize=FIGURE_SIZE)
        ax = fig.add_subplot(1, 1, 1)
        ax.set_title(title, fontsize=14, fontweight="bold")
        ax.text(0.5, 0.5, title, ha="center", va="center", fontsize=12, color="#7F8C8D",
                transform=ax.transAxes)
        ax.set_xticks([])
        ax.set_yticks([])
        for spine in ax.spines.values():
            spine.set_visible(False)
        return cls._to_png(fig)

    # === charts ===

    @classmethod
    def daily_sales_chart(cls, daily: Sequence[DailySales], title: str = "Daily Sales Trend") -> bytes:
        if not daily:
            return cls.placeholder("No Sales Data Available")

        labels = [entry.date.strftime("%b %d") for entry in daily]
        amounts = [float(entry.total_amount) for entry in daily]
        positions = list(range(len(daily)))

        fig = Figure(figsize=FIGURE_SIZE)
        ax = fig.add_subplot(1, 1, 1)
        ax.plot(positions, amounts, marker="o", linewidth=2, markersize=4, color=PALETTE[0])
        ax.fill_between(positions, amounts, alpha=0.15, color=PALETTE[0])
        shown = date_label_positions(len(labels))
        ax.set_xticks(shown)
        ax.set_xticklabels([labels[i] for i in shown], rotation=45, ha="right")
        ax.yaxis.set_major_formatter(FuncFormatter(currency_tick))
        ax.set_title(title, fontsize=14, fontweight="bold")
        ax.set_ylabel("Sales")
        ax.grid(True, alpha=0.3)
        return cls._to_png(fig)

    @classmethod
    def top_products_chart(cls, products: Sequence[ProductSales], title: str = "Top Products by Revenue") -> bytes:
        if not products:
            return cls.placeholder("No Product Data Available")
        names = [row.product_name for row in products][::-1]
        values = [float(row.revenue) for row in products][::-1]
        return cls._horizontal_bars(names, values, title)

    @classmethod
    def top_customers_chart(cls, customers: Sequence[CustomerSales], title: str = "Top Customers") -> bytes:
        if not customers:
            return cls.placeholder("No Customer Data Available")
        names = [row.customer_name for row in customers][::-1]
        values = [float(row.total_amount) for row in customers][::-1]
        return cls._horizontal_bars(names, values, title)

    @classmethod
    def _horizontal_bars(cls, names: List[str], values: List[float], title: str) -> bytes:
        fig = Figure(figsize=FIGURE_SIZE)
        ax = fig.add_subplot(1, 1, 1)
        positions = list(range(len(names)))
        ax.barh(positions, values, color=PALETTE[0], edgecolor=PALETTE[8])
        ax.set_yticks(positions)
        ax.set_yticklabels(names)
        ax.xaxis.set_major_formatter(FuncFormatter(currency_tick))
        ax.set_title(title, fontsize=14, fontweight="bold")
        ax.grid(axis="x", alpha=0.3)
        return cls._to_png(fig)

    @classmethod
    def category_pie_chart(cls, amounts: Sequence[NamedAmount], title: str = "Sales by Category") -> bytes:
        slices = [row for row in amounts if row.amount > 0]
        if not slices:
            return cls.placeholder(f"No {title} Data Available")

        fig = Figure(figsize=PIE_FIGURE_SIZE)
        ax = fig.add_subplot(1, 1, 1)
        ax.pie(
            [float(row.amount) for row in slices],
            labels=[row.name for row in slices],
            colors=[PALETTE[i % len(PALETTE)] for i in range(len(slices))],
            autopct="%1.1f%%",
            startangle=90,
        )
        ax.axis("equal")
        ax.set_title(title, fontsize=14, fontweight="bold")
        return cls._to_png(fig)

    @classmethod
    def inventory_category_chart(
        cls, categories: Sequence[CategoryInventory], title: str = "Inventory by Category"
    ) -> bytes:
        if not categories:
            return cls.placeholder("No Inventory Data Available")

        names = [row.category_name for row in categories]
        positions = list(range(len(categories)))
        width = 0.4

        fig = Figure(figsize=FIGURE_SIZE)
        stock_ax = fig.add_subplot(1, 1, 1)
        value_ax = stock_ax.twinx()
        stock_ax.bar([p - width / 2 for p in positions], [row.total_stock for row in categories],
                     width, label="Units in Stock", color=PALETTE[0])
        value_ax.bar([p + width / 2 for p in positions], [float(row.total_value) for row in categories],
                     width, label="Stock Value", color=PALETTE[1])
        stock_ax.set_xticks(positions)
        stock_ax.set_xticklabels(names, rotation=30, ha="right")
        stock_ax.set_ylabel("Units")
        value_ax.yaxis.set_major_formatter(FuncFormatter(currency_tick))
        value_ax.set_ylabel("Value")
        handles = stock_ax.get_legend_handles_labels()[0] + value_ax.get_legend_handles_labels()[0]
        stock_ax.legend(handles, ["Units in Stock", "Stock Value"], loc="upper right")
        stock_ax.set_title(title, fontsize=14, fontweight="bold")
        return cls._to_png(fig)

    @classmethod
    def monthly_revenue_chart(cls, months: Sequence[MonthlyRevenue], title: str = "Monthly Revenue") -> bytes:
        if not months or not any(row.revenue for row in months):
            return cls.placeholder("No Revenue Data Available")

        labels = [row.label for row in months]
        values = [float(row.revenue) for row in months]
        fig = Figure(figsize=FIGURE_SIZE)
        ax = fig.add_subplot(1, 1, 1)
        ax.plot(range(len(values)), values, marker="o", linewidth=2, color=PALETTE[2])
        ax.set_xticks(list(range(len(labels))))
        ax.set_xticklabels(labels, rotation=45, ha="right")
        ax.yaxis.set_major_formatter(FuncFormatter(currency_tick))
        ax.set_title(title, fontsize=14, fontweight="bold")
        ax.grid(True, alpha=0.3)
        return cls._to_png(fig)

    @classmethod
    def growth_chart(cls, months: Sequence[MonthlyRevenue], title: str = "Month-over-Month Growth") -> bytes:
        if not months or not any(row.revenue for row in months):
            return cls.placeholder("No Growth Data Available")

        values = [float(row.growth_percent) for row in months]
        colors = [PALETTE[2] if value >= 0 else PALETTE[3] for value in values]
        fig = Figure(figsize=FIGURE_SIZE)
        ax = fig.add_subplot(1, 1, 1)
        ax.bar(range(len(values)), values, color=colors)
        ax.axhline(0, color=PALETTE[8], linewidth=0.8)
        ax.set_xticks(list(range(len(months))))
        ax.set_xticklabels([row.label for row in months], rotation=45, ha="right")
        ax.yaxis.set_major_formatter(FuncFormatter(percent_tick))
        ax.set_title(title, fontsize=14, fontweight="bold")
        ax.grid(axis="y", alpha=0.3)
        return cls._to_png(fig)
