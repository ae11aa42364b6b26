"""Sales metrics tools: month-to-date and daily totals."""

import calendar
from datetime import date
from typing import Any, Callable, Optional

from shared.logging import get_logger
from catalog.base import ToolGroup, error_payload, seller_scope
from catalog.services import MetricsService

logger = get_logger(__name__)


def _target_seller(args: dict[str, Any]) -> Optional[str]:
    """The caller, or the requested seller when a manager asks."""
    if seller_scope(args) is None and args.get("seller_id"):
        return str(args["seller_id"])
    user_id = args.get("user_id")
    return str(user_id) if user_id else None


class MetricsTools(ToolGroup):
    """
    Sales metrics tool group.

    Sellers (level <= 1) always get their own numbers; only managers may
    look at another seller.
    """

    name = "metrics"

    def __init__(
        self,
        metrics: MetricsService,
        today: Callable[[], date] = date.today
    ) -> None:
        self.metrics = metrics
        self.today = today
        super().__init__()

    def _define_tools(self) -> None:
        self._add(
            "get_my_sales_metrics",
            "Get sales performance metrics for a specific seller or yourself for the "
            "current month vs previous month.",
            {
                "type": "object",
                "properties": {
                    "seller_id": {
                        "type": "string",
                        "description": "Optional: the seller to check. Defaults to the current user."
                    }
                }
            },
            self.get_my_sales_metrics,
        )

        self._add(
            "get_daily_sales_metrics",
            "Get sales metrics for a specific day (defaults to today) for a seller or "
            "yourself. Use this to check daily performance.",
            {
                "type": "object",
                "properties": {
                    "date": {
                        "type": "string",
                        "description": "Optional: date in YYYY-MM-DD format. Defaults to today."
                    },
                    "seller_id": {"type": "string", "description": "Optional: seller ID"}
                }
            },
            self.get_daily_sales_metrics,
        )

    async def get_my_sales_metrics(self, args: dict[str, Any]) -> Any:
        target = _target_seller(args)
        if not target:
            return error_payload("User ID is required")

        logger.info("Computing monthly sales metrics", seller_id=target)

        today = self.today()
        month_start = today.replace(day=1)
        prev_year, prev_month = (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)
        prev_start = date(prev_year, prev_month, 1)
        prev_end = date(prev_year, prev_month, calendar.monthrange(prev_year, prev_month)[1])

        current = await self.metrics.sales_total(target, month_start, today)
        previous = await self.metrics.sales_total(target, prev_start, prev_end)

        current_total = float(current["total"])
        previous_total = float(previous["total"])
        variation = (current_total - previous_total) / previous_total * 100 if previous_total > 0 else 0.0

        return {
            "period": f"{today.month}/{today.year}",
            "sales": {
                "current_month": current_total,
                "previous_month": previous_total,
                "variation_percent": round(variation, 2),
                "orders_count": current["count"],
            },
            "summary": (
                f"You sold ${current_total:,.2f} so far this month, a variation of "
                f"{variation:.2f}% compared to the previous month."
            ),
        }

    async def get_daily_sales_metrics(self, args: dict[str, Any]) -> Any:
        target = _target_seller(args)
        if not target:
            return error_payload("User ID is required")

        try:
            day = date.fromisoformat(args["date"]) if args.get("date") else self.today()
        except ValueError:
            return error_payload("Invalid date, expected YYYY-MM-DD")

        result = await self.metrics.sales_total(target, day, day)
        total = float(result["total"])

        return {
            "date": day.isoformat(),
            "total": total,
            "orders_count": result["count"],
            "summary": f"On {day.isoformat()} total sales were ${total:,.2f} across {result['count']} orders.",
        }
