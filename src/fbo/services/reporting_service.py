from __future__ import annotations

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from fbo.domain.models import DashboardCounts, MaterialUsage, MonthlySales, SalesSummary, TopSofa
from fbo.domain.pricing import from_cents

MONTH_LABELS = ("Ene", "Feb", "Mar", "Abr", "May", "Jun", "Jul", "Ago", "Sep", "Oct", "Nov", "Dic")


def _pct(part: int, whole: int) -> int:
    if not whole:
        return 0
    return int((Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ReportingService:
    """Aggregates over completed orders and bills of materials."""

    def __init__(self, repo):
        self.repo = repo

    def dashboard_counts(self) -> DashboardCounts:
        materials, models, orders = self.repo.count_rows()
        return DashboardCounts(materials=materials, sofa_models=models, orders=orders)

    def sales_summary(self) -> SalesSummary:
        revenue_cents, total, completed, pending = self.repo.order_status_summary()
        return SalesSummary(
            total_sales=from_cents(revenue_cents),
            total_orders=total,
            completed_orders=completed,
            pending_orders=pending,
            completed_pct=_pct(completed, total),
            pending_pct=_pct(pending, total),
        )

    def monthly_sales(self, year: Optional[int] = None) -> list[MonthlySales]:
        totals = self.repo.monthly_completed_totals(None if year is None else f"{int(year):04d}")
        return [
            MonthlySales(month=i, label=label, total=from_cents(totals.get(i, 0)))
            for i, label in enumerate(MONTH_LABELS, start=1)
        ]

    def top_sofas(self, limit: int = 10) -> list[TopSofa]:
        return [
            TopSofa(name=name, quantity=units, total_sales=from_cents(cents))
            for name, units, cents in self.repo.top_sofas_completed(limit)
        ]

    def materials_usage(self, limit: int = 8) -> list[MaterialUsage]:
        usage: dict[str, Decimal] = defaultdict(Decimal)
        for name, quantity in self.repo.bom_quantities_by_material():
            usage[name] += Decimal(quantity)
        ranked = sorted(usage.items(), key=lambda kv: (-kv[1], kv[0]))
        return [MaterialUsage(name=name, quantity=qty) for name, qty in ranked[: int(limit)]]
