"""Analytics tools: forecasts, churn risk, recommendations and discounts."""

from typing import Any

from shared.logging import get_logger
from shared.schema import create_tool_schema
from catalog.base import ToolGroup, error_payload, seller_scope
from catalog.services import (
    ChurnService,
    ForecastService,
    RecommendationService,
)

logger = get_logger(__name__)


class AnalyticsTools(ToolGroup):
    """
    Analytics tool group.

    Sellers (level <= 1) only ever see their own forecast and deviation,
    whatever seller the model asked for.
    """

    name = "analytics"

    def __init__(
        self,
        forecast: ForecastService,
        churn: ChurnService,
        recommendations: RecommendationService
    ) -> None:
        self.forecast = forecast
        self.churn = churn
        self.recommendations = recommendations
        super().__init__()

    def _define_tools(self) -> None:
        self._add(
            "get_sales_forecast",
            "Get the sales forecast for the next days (30 by default). "
            "Can be filtered by segment or seller.",
            create_tool_schema([
                {"name": "seller_id", "type": "string", "description": "Filter by seller ID", "required": False},
                {"name": "segment", "type": "string", "description": "Filter by segment (e.g. TEXTIL, CALCADISTA)", "required": False},
                {"name": "days", "type": "integer", "description": "Number of days to forecast (default 30)", "default": 30},
            ]),
            self.get_sales_forecast,
        )

        self._add(
            "get_customer_churn_risk",
            "Check the churn risk score for a specific customer. "
            "Higher scores (80+) mean critical risk of losing the customer.",
            create_tool_schema([
                {"name": "customer_id", "type": "integer", "description": "The ID of the customer"},
            ]),
            self.get_customer_churn_risk,
        )

        self._add(
            "check_sales_deviation",
            "Compare actual sales vs predicted sales for the last N days. Use this when the "
            "user asks about sales performance, whether they are meeting targets, or how "
            "they are doing compared to expectations.",
            create_tool_schema([
                {"name": "days", "type": "integer", "description": "Number of days to analyze (default 7)", "default": 7},
            ]),
            self.check_sales_deviation,
        )

        self._add(
            "get_product_recommendations",
            "Get product recommendations for a customer. Use this when the user asks what "
            "else they can sell to a customer, or for suggestions to offer.",
            create_tool_schema([
                {"name": "customer_id", "type": "integer", "description": "The ID of the customer"},
                {"name": "limit", "type": "integer", "description": "Number of recommendations to return (default 5)", "default": 5},
            ]),
            self.get_product_recommendations,
        )

        self._add(
            "get_discount_recommendation",
            "Get a recommended discount percentage for a specific product and customer "
            "based on historical deals.",
            create_tool_schema([
                {"name": "customer_id", "type": "integer", "description": "The ID of the customer"},
                {"name": "product_id", "type": "integer", "description": "The ID of the product"},
            ]),
            self.get_discount_recommendation,
        )

    async def get_sales_forecast(self, args: dict[str, Any]) -> Any:
        days = int(args.get("days") or 30)
        seller_id = seller_scope(args) or args.get("seller_id")
        logger.info("Forecasting sales", seller_id=seller_id, days=days)

        result = await self.forecast.predict(
            seller_id=seller_id,
            segment=args.get("segment"),
            days=days
        )

        if not result.get("forecast"):
            return {"message": "Not enough data to generate a forecast."}

        total = sum(day["predicted_value"] for day in result["forecast"])

        return {
            "summary": {
                "total_predicted": total,
                "avg_daily": total / days,
                "growth_rate": result.get("growth_rate"),
            },
            "message": f"Sales forecast for the next {days} days: ${total:,.2f}.",
        }

    async def get_customer_churn_risk(self, args: dict[str, Any]) -> Any:
        customer_id = int(args["customer_id"])
        result = await self.churn.get_score(customer_id)

        if not result:
            return {"message": "No churn risk data is available for this customer yet."}

        trend = "Declining revenue" if result["avg_ticket_variation"] < 0 else "Stable/Growing"
        return {
            "score": result["score"],
            "risk_level": result["risk_level"],
            "days_since_last_order": result["days_since_last_order"],
            "trend": trend,
            "message": (
                f"The customer has a {result['risk_level']} churn risk "
                f"(score: {result['score']}/100). Their last purchase was "
                f"{result['days_since_last_order']} days ago."
            ),
        }

    async def check_sales_deviation(self, args: dict[str, Any]) -> Any:
        days = int(args.get("days") or 7)
        result = await self.forecast.analyze_deviation(seller_id=seller_scope(args), days=days)

        deviation = result["overall_deviation_percent"]
        direction = "above" if deviation >= 0 else "below"
        if result["requires_attention"]:
            status = f"Attention: your sales are {abs(deviation):.1f}% {direction} the forecast!"
        else:
            status = f"Your sales are on target ({abs(deviation):.1f}% {direction} the forecast)."

        return {
            "period_days": result["period_days"],
            "total_actual": result["total_actual"],
            "total_expected": result["total_expected"],
            "deviation_percent": deviation,
            "requires_attention": result["requires_attention"],
            "message": status,
        }

    async def get_product_recommendations(self, args: dict[str, Any]) -> Any:
        customer_id = int(args["customer_id"])
        result = await self.recommendations.get_for_customer(
            customer_id, int(args.get("limit") or 5)
        )

        replenishment = result.get("replenishment", [])
        cross_sell = result.get("cross_sell", [])

        lines = [f"Found {len(replenishment) + len(cross_sell)} suggestions for this customer."]
        if replenishment:
            lines.append("Replenishment (products they buy regularly):")
            lines.extend(
                f"- {p['product_code']}: {p['product_name']} (bought {p['orders_count']} times)"
                for p in replenishment
            )
        if cross_sell:
            lines.append("Cross-sell suggestions (segment trends):")
            lines.extend(f"- {p['code']}: {p['description']}" for p in cross_sell)

        return {"recommendations": result, "message": "\n".join(lines)}

    async def get_discount_recommendation(self, args: dict[str, Any]) -> Any:
        if "customer_id" not in args or "product_id" not in args:
            return error_payload("customer_id and product_id are required")

        result = await self.recommendations.get_discount_recommendation(
            int(args["customer_id"]), int(args["product_id"])
        )
        return {
            "suggested_discount": result["suggested_discount"],
            "rationale": result["rationale"],
            "message": (
                f"Suggested discount for this item: {result['suggested_discount']}%. "
                f"Rationale: {result['rationale']}"
            ),
        }
