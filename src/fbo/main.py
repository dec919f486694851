from __future__ import annotations

import logging

from fbo.application.container import AppContainer, build_container
from fbo.config import get_app_paths
from fbo.domain.pricing import format_currency
from fbo.logging_config import setup_logging

log = logging.getLogger(__name__)


def render_overview(container: AppContainer) -> str:
    counts = container.reporting.dashboard_counts()
    summary = container.reporting.sales_summary()
    lines = [
        f"Materials:    {counts.materials}",
        f"Sofa models:  {counts.sofa_models}",
        f"Orders:       {counts.orders}",
        f"Total sales:  {format_currency(summary.total_sales)}",
        f"Completed:    {summary.completed_orders} ({summary.completed_pct}% of total)",
        f"Pending:      {summary.pending_orders} ({summary.pending_pct}% of total)",
    ]
    recent = container.orders.recent_orders()
    if recent:
        lines.append("")
        lines.append("Recent orders:")
        for o in recent:
            lines.append(f"  #{o.id} {o.customer_name} [{o.status}] {format_currency(o.total_amount)}")
    return "\n".join(lines)


def main() -> None:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    container = build_container(paths.db_path)
    log.info("app_started db=%s", paths.db_path)
    print(render_overview(container))


if __name__ == "__main__":
    main()
