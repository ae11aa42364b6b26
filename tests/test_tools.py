"""Tests for the tool catalog and the tool groups."""

import json
from datetime import date

import pytest

from shared.models import ToolDefinition

SELLER_ARGS = {"user_id": "7", "user_level": 1}
MANAGER_ARGS = {"user_id": "100", "user_level": 3}


async def noop(args):
    return "{}"


class TestToolCatalog:
    """Tests for ToolCatalog."""

    def test_register_and_resolve(self):
        """Registered tools are listed and their handlers resolved."""
        from catalog.registry import ToolCatalog

        catalog = ToolCatalog()
        catalog.register(ToolDefinition(name="ping", group="system", description="Ping"), noop)

        assert "ping" in catalog
        assert len(catalog) == 1
        assert catalog.handler("ping") is noop
        assert catalog.handler("missing") is None
        assert catalog.get("ping").group == "system"
        assert catalog.list_groups() == ["system"]

    def test_duplicate_name_rejected(self):
        """Tool names are unique."""
        from catalog.registry import ToolCatalog

        catalog = ToolCatalog()
        catalog.register(ToolDefinition(name="ping", group="a", description="Ping"), noop)

        with pytest.raises(ValueError, match="already registered"):
            catalog.register(ToolDefinition(name="ping", group="b", description="Ping again"), noop)

    def test_sealed_catalog_is_read_only(self):
        """No registration after sealing."""
        from catalog.registry import ToolCatalog

        catalog = ToolCatalog()
        catalog.seal()

        assert catalog.sealed
        with pytest.raises(RuntimeError):
            catalog.register(ToolDefinition(name="late", group="a", description="Too late"), noop)

    @pytest.mark.parametrize("parameters", [
        {"type": "array", "items": {"type": "string"}},
        {"type": "object", "properties": {"x": {"type": "not-a-type"}}},
        {"type": "object", "required": "x"},
    ])
    def test_invalid_schema_rejected(self, parameters):
        """Parameter schemas must be valid Draft 7 object schemas."""
        from catalog.registry import ToolCatalog

        catalog = ToolCatalog()
        tool = ToolDefinition(name="bad", group="a", description="Bad", parameters=parameters)

        with pytest.raises(ValueError):
            catalog.register(tool, noop)

    def test_definitions_in_function_format(self):
        """Definitions follow the OpenAI function calling format."""
        from catalog import build_catalog

        catalog = build_catalog()
        definitions = catalog.definitions()

        assert len(definitions) == len(catalog) == 18
        for definition in definitions:
            assert definition["type"] == "function"
            assert definition["function"]["parameters"]["type"] == "object"

        by_name = {d["function"]["name"]: d["function"] for d in definitions}
        churn = by_name["get_customer_churn_risk"]
        assert churn["parameters"]["required"] == ["customer_id"]
        assert "churn" in churn["description"].lower()

    def test_build_catalog_groups(self):
        """The default catalog is sealed and holds every group."""
        from catalog import build_catalog

        catalog = build_catalog()

        assert catalog.sealed
        assert catalog.list_groups() == [
            "analytics",
            "customers",
            "interactions",
            "leads",
            "metrics",
            "orders",
            "pricing",
            "stock",
        ]
        assert {t.name for t in catalog.list_tools("customers")} == {
            "search_customers",
            "get_customer_details",
        }


class TestSafeHandler:
    """Tests for handler wrapping."""

    @pytest.mark.asyncio
    async def test_serializes_structured_results(self):
        """Dict results are returned as JSON text."""
        from catalog.base import safe_handler

        async def handler(args):
            return {"value": 1}

        assert json.loads(await safe_handler("t", handler)({})) == {"value": 1}

    @pytest.mark.asyncio
    async def test_passes_strings_through(self):
        """String results are returned unchanged."""
        from catalog.base import safe_handler

        async def handler(args):
            return "plain text"

        assert await safe_handler("t", handler)({}) == "plain text"

    @pytest.mark.asyncio
    async def test_converts_exceptions(self):
        """Exceptions become an error payload."""
        from catalog.base import safe_handler

        async def handler(args):
            raise KeyError("customer_id")

        result = json.loads(await safe_handler("t", handler)({}))
        assert "customer_id" in result["error"]

    def test_seller_scope(self):
        """Sellers are scoped to themselves, managers are not."""
        from catalog.base import seller_scope

        assert seller_scope(SELLER_ARGS) == "7"
        assert seller_scope({"user_id": "3", "user_level": 0}) == "3"
        assert seller_scope(MANAGER_ARGS) is None


class TestCustomerTools:
    """Tests for the customer tool group."""

    def setup_method(self):
        """Set up test fixtures."""
        from catalog.customers import CustomerTools
        from catalog.services import SampleCustomerDirectory

        self.tools = CustomerTools(SampleCustomerDirectory())

    async def call(self, name, **args):
        return json.loads(await self.tools.handler(name)(args))

    @pytest.mark.asyncio
    async def test_search_scoped_to_seller(self):
        """Sellers only find customers of their own portfolio."""
        results = await self.call("search_customers", query="aurora", **SELLER_ARGS)

        assert {c["id"] for c in results} == {42, 63}

    @pytest.mark.asyncio
    async def test_search_manager_sees_everyone(self):
        """Managers search across all sellers."""
        results = await self.call("search_customers", query="", **MANAGER_ARGS)

        assert {c["id"] for c in results} == {42, 57, 63}

    @pytest.mark.asyncio
    async def test_search_limit(self):
        """The limit argument caps the result count."""
        results = await self.call("search_customers", query="", limit=1, **MANAGER_ARGS)

        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_search_no_results(self):
        """An empty search returns a message instead of a list."""
        result = await self.call("search_customers", query="horizonte", **SELLER_ARGS)

        assert result == {"message": "No customers found."}

    @pytest.mark.asyncio
    async def test_get_details(self):
        """Details include financial data."""
        result = await self.call("get_customer_details", id=42, **SELLER_ARGS)

        assert result["name"] == "Textil Aurora Ltda"
        assert result["financial"] == {"limit": 150000.0, "balance": 32000.0}

    @pytest.mark.asyncio
    async def test_get_details_other_seller(self):
        """Another seller's customer looks exactly like a missing one."""
        foreign = await self.call("get_customer_details", id=57, **SELLER_ARGS)
        missing = await self.call("get_customer_details", id=999, **SELLER_ARGS)

        assert foreign == missing == {"error": "Customer not found"}

    @pytest.mark.asyncio
    async def test_get_details_missing_argument(self):
        """A missing id becomes an error payload, not an exception."""
        result = await self.call("get_customer_details", **SELLER_ARGS)

        assert "error" in result


class TestAnalyticsTools:
    """Tests for the analytics tool group."""

    def setup_method(self):
        """Set up test fixtures."""
        from catalog.analytics import AnalyticsTools
        from catalog.services import DomainServices

        services = DomainServices.sample()
        self.tools = AnalyticsTools(
            forecast=services.forecast,
            churn=services.churn,
            recommendations=services.recommendations,
        )

    async def call(self, name, **args):
        return json.loads(await self.tools.handler(name)(args))

    @pytest.mark.asyncio
    async def test_churn_risk(self):
        """Churn risk reports score, level and trend."""
        result = await self.call("get_customer_churn_risk", customer_id=42, **SELLER_ARGS)

        assert result["score"] == 82
        assert result["risk_level"] == "critical"
        assert result["trend"] == "Declining revenue"
        assert "96 days ago" in result["message"]

    @pytest.mark.asyncio
    async def test_churn_risk_without_data(self):
        """Customers without scores get an explanatory message."""
        result = await self.call("get_customer_churn_risk", customer_id=63, **SELLER_ARGS)

        assert "No churn risk data" in result["message"]

    @pytest.mark.asyncio
    async def test_forecast_scoped_to_seller(self):
        """A seller's forecast ignores the seller_id the model asked for."""
        own = await self.call("get_sales_forecast", days=10, seller_id="8", **SELLER_ARGS)
        other = await self.call("get_sales_forecast", days=10, seller_id="8", **MANAGER_ARGS)

        assert own["summary"]["total_predicted"] == pytest.approx(185000.0)
        assert other["summary"]["total_predicted"] == pytest.approx(92000.0)

    @pytest.mark.asyncio
    async def test_sales_deviation(self):
        """Deviation beyond the threshold requires attention."""
        result = await self.call("check_sales_deviation", days=7, **SELLER_ARGS)

        assert result["deviation_percent"] == pytest.approx(-18.0)
        assert result["requires_attention"] is True
        assert result["message"].startswith("Attention")

    @pytest.mark.asyncio
    async def test_product_recommendations(self):
        """Recommendations combine replenishment and cross-sell."""
        result = await self.call("get_product_recommendations", customer_id=42, **SELLER_ARGS)

        assert [p["product_code"] for p in result["recommendations"]["replenishment"]] == ["ZJ-9000"]
        assert [p["code"] for p in result["recommendations"]["cross_sell"]] == ["ZJ-5300"]
        assert "Found 2 suggestions" in result["message"]

    @pytest.mark.asyncio
    async def test_discount_recommendation(self):
        """Repeat buyers get a larger discount."""
        result = await self.call(
            "get_discount_recommendation", customer_id=42, product_id=1001, **SELLER_ARGS
        )

        assert result["suggested_discount"] == 6.0

    @pytest.mark.asyncio
    async def test_discount_requires_both_ids(self):
        """Missing identifiers are reported to the model."""
        result = await self.call("get_discount_recommendation", customer_id=42, **SELLER_ARGS)

        assert result == {"error": "customer_id and product_id are required"}


class TestLeadTools:
    """Tests for the lead tool group."""

    def setup_method(self):
        """Set up test fixtures."""
        from catalog.leads import LeadTools
        from catalog.services import SampleCustomerDirectory, SampleLeadService, SampleStockService

        self.leads = SampleLeadService()
        self.tools = LeadTools(self.leads, SampleCustomerDirectory(), SampleStockService())

    async def call(self, name, **args):
        return json.loads(await self.tools.handler(name)(args))

    @pytest.mark.asyncio
    async def test_search_scoped_to_seller(self):
        """Sellers only see their own leads, whatever seller they ask for."""
        results = await self.call("search_leads", seller_id="8", **SELLER_ARGS)

        assert [lead["id"] for lead in results] == [501, 503]

    @pytest.mark.asyncio
    async def test_manager_filters_by_seller(self):
        """Managers may look at a specific seller."""
        results = await self.call("search_leads", seller_id="8", **MANAGER_ARGS)

        assert [lead["id"] for lead in results] == [502]
        assert results[0]["customer"] == "Calcados Horizonte S.A."

    @pytest.mark.asyncio
    async def test_search_filters(self):
        """Status, free text and dates narrow the results."""
        open_leads = await self.call("search_leads", status="open", **SELLER_ARGS)
        by_name = await self.call("search_leads", query="horizonte", **MANAGER_ARGS)
        recent = await self.call("search_leads", start_date="2026-09-01", **MANAGER_ARGS)

        assert [lead["id"] for lead in open_leads] == [501]
        assert open_leads[0]["status"] == "Open"
        assert open_leads[0]["total"] == 37800.0
        assert [lead["id"] for lead in by_name] == [502]
        assert [lead["id"] for lead in recent] == [501, 502]

    @pytest.mark.asyncio
    async def test_invalid_status(self):
        """Unknown statuses are reported to the model."""
        result = await self.call("search_leads", status="lost", **SELLER_ARGS)

        assert result == {"error": "Invalid status: lost"}

    @pytest.mark.asyncio
    async def test_details(self):
        """Details list the items with product names."""
        result = await self.call("get_lead_details", id=502, **MANAGER_ARGS)

        assert result["status"] == "Converted (order 9001)"
        assert result["items"] == [{
            "product": "Post bed machine PT-210",
            "quantity": 1,
            "price": 24500.0,
            "total": 24500.0,
        }]

    @pytest.mark.asyncio
    async def test_details_other_seller(self):
        """Another seller's lead looks like a missing one."""
        foreign = await self.call("get_lead_details", id=502, **SELLER_ARGS)
        missing = await self.call("get_lead_details", id=999, **SELLER_ARGS)

        assert foreign == missing == {"error": "Lead not found"}

    @pytest.mark.asyncio
    async def test_create_lead_owned_by_caller(self):
        """New leads belong to the caller; unknown products are reported."""
        result = await self.call(
            "create_lead",
            customer_id=57,
            items=[{"product_id": 1002, "quantity": 2}, {"product_id": 999, "quantity": 1}],
            **SELLER_ARGS,
        )

        assert result["success"] is True
        assert result["items"] == [{"product": "Overlock machine ZJ-5300", "quantity": 2}]
        assert result["errors"] == ["Product ID 999 not found."]

        lead = await self.leads.get(result["lead_id"])
        assert lead["seller_id"] == "7"
        assert lead["items"] == [{"product_id": 1002, "quantity": 2, "price": 9400.0}]

    @pytest.mark.asyncio
    async def test_create_lead_requires_user(self):
        """Without an authenticated user nothing is created."""
        result = await self.call(
            "create_lead", customer_id=42, items=[{"product_id": 1001, "quantity": 1}]
        )

        assert result == {"error": "User authentication required"}

    @pytest.mark.asyncio
    async def test_create_lead_unknown_customer(self):
        """Leads need an existing customer."""
        result = await self.call(
            "create_lead",
            customer_id=999,
            items=[{"product_id": 1001, "quantity": 1}],
            **SELLER_ARGS,
        )

        assert result == {"error": "Customer 999 not found."}


class TestOrderTools:
    """Tests for the order tool group."""

    def setup_method(self):
        """Set up test fixtures."""
        from catalog.orders import OrderTools
        from catalog.services import SampleCustomerDirectory, SampleOrderService, SampleStockService

        self.tools = OrderTools(SampleOrderService(), SampleCustomerDirectory(), SampleStockService())

    async def call(self, name, **args):
        return json.loads(await self.tools.handler(name)(args))

    @pytest.mark.asyncio
    async def test_search_scoped_to_seller(self):
        """Sellers only see orders they sold, newest first."""
        results = await self.call("search_orders", **SELLER_ARGS)

        assert [order["id"] for order in results] == [9002, 9003]
        assert results[1]["total"] == 27300.0

    @pytest.mark.asyncio
    async def test_manager_search_by_customer(self):
        """Managers search across sellers."""
        results = await self.call("search_orders", customer_id=57, **MANAGER_ARGS)

        assert [order["id"] for order in results] == [9001]

    @pytest.mark.asyncio
    async def test_details(self):
        """Details include items and payment terms."""
        result = await self.call("get_order_details", id=9002, **SELLER_ARGS)

        assert result["customer"] == "Textil Aurora Ltda"
        assert result["payment"] == {"type": "boleto", "terms": "28"}
        assert result["items"][0]["product"] == "Industrial sewing machine ZJ-9000"

    @pytest.mark.asyncio
    async def test_details_other_seller_denied(self):
        """A seller cannot read another seller's order."""
        result = await self.call("get_order_details", id=9001, **SELLER_ARGS)

        assert result == {"error": "Access denied: this order belongs to another seller."}

    @pytest.mark.asyncio
    async def test_details_missing(self):
        """Unknown orders are reported as not found."""
        result = await self.call("get_order_details", id=1, **MANAGER_ARGS)

        assert result == {"error": "Order not found"}


class TestMetricsTools:
    """Tests for the sales metrics tool group."""

    def setup_method(self):
        """Set up test fixtures."""
        from unittest.mock import AsyncMock, MagicMock
        from catalog.metrics import MetricsTools

        self.metrics = MagicMock()
        self.metrics.sales_total = AsyncMock(return_value={"total": 0, "count": 0})
        self.today = date(2026, 10, 17)
        self.tools = MetricsTools(self.metrics, today=lambda: self.today)

    async def call(self, name, **args):
        return json.loads(await self.tools.handler(name)(args))

    @pytest.mark.asyncio
    async def test_month_over_month(self):
        """Current month to date is compared with the whole previous month."""
        from unittest.mock import call

        self.metrics.sales_total.side_effect = [
            {"total": 12000.0, "count": 4},
            {"total": 10000.0, "count": 5},
        ]

        result = await self.call("get_my_sales_metrics", **SELLER_ARGS)

        assert self.metrics.sales_total.await_args_list == [
            call("7", date(2026, 10, 1), date(2026, 10, 17)),
            call("7", date(2026, 9, 1), date(2026, 9, 30)),
        ]
        assert result["period"] == "10/2026"
        assert result["sales"] == {
            "current_month": 12000.0,
            "previous_month": 10000.0,
            "variation_percent": 20.0,
            "orders_count": 4,
        }
        assert "$12,000.00" in result["summary"]

    @pytest.mark.asyncio
    async def test_january_compares_with_december(self):
        """The previous month wraps around the year."""
        self.today = date(2026, 1, 10)

        await self.call("get_my_sales_metrics", **SELLER_ARGS)

        previous = self.metrics.sales_total.await_args_list[1]
        assert previous.args[1:] == (date(2025, 12, 1), date(2025, 12, 31))

    @pytest.mark.asyncio
    async def test_no_previous_sales(self):
        """Without previous sales the variation is zero."""
        result = await self.call("get_my_sales_metrics", **SELLER_ARGS)

        assert result["sales"]["variation_percent"] == 0.0

    @pytest.mark.asyncio
    async def test_seller_cannot_target_another_seller(self):
        """A seller asking for seller 8 gets their own numbers."""
        await self.call("get_my_sales_metrics", seller_id="8", **SELLER_ARGS)
        await self.call("get_daily_sales_metrics", seller_id="8", **SELLER_ARGS)

        targets = {c.args[0] for c in self.metrics.sales_total.await_args_list}
        assert targets == {"7"}

    @pytest.mark.asyncio
    async def test_manager_targets_seller(self):
        """Managers choose the seller, or default to themselves."""
        await self.call("get_daily_sales_metrics", seller_id="8", **MANAGER_ARGS)
        await self.call("get_daily_sales_metrics", **MANAGER_ARGS)

        targets = [c.args[0] for c in self.metrics.sales_total.await_args_list]
        assert targets == ["8", "100"]

    @pytest.mark.asyncio
    async def test_daily_metrics(self):
        """A given day is summed on its own; the default is today."""
        from unittest.mock import call

        self.metrics.sales_total.return_value = {"total": 5400.0, "count": 2}

        result = await self.call("get_daily_sales_metrics", date="2026-10-15", **SELLER_ARGS)
        await self.call("get_daily_sales_metrics", **SELLER_ARGS)

        assert self.metrics.sales_total.await_args_list == [
            call("7", date(2026, 10, 15), date(2026, 10, 15)),
            call("7", date(2026, 10, 17), date(2026, 10, 17)),
        ]
        assert result["date"] == "2026-10-15"
        assert result["total"] == 5400.0
        assert result["orders_count"] == 2

    @pytest.mark.asyncio
    async def test_invalid_date(self):
        """Dates must be ISO formatted."""
        result = await self.call("get_daily_sales_metrics", date="17/10/2026", **SELLER_ARGS)

        assert result == {"error": "Invalid date, expected YYYY-MM-DD"}
        self.metrics.sales_total.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_user(self):
        """Without a caller there is nobody to report on."""
        result = await self.call("get_my_sales_metrics")

        assert result == {"error": "User ID is required"}

    @pytest.mark.asyncio
    async def test_sample_service(self):
        """The sample service derives totals from the daily averages."""
        from catalog.services import SampleMetricsService

        result = await SampleMetricsService().sales_total("7", date(2026, 10, 1), date(2026, 10, 2))

        assert result == {"total": 37000.0, "count": 2}


class TestStockTools:
    """Tests for the product and stock tool group."""

    def setup_method(self):
        """Set up test fixtures."""
        from catalog.services import SampleStockService
        from catalog.stock import StockTools

        self.tools = StockTools(SampleStockService())

    async def call(self, name, **args):
        return json.loads(await self.tools.handler(name)(args))

    @pytest.mark.asyncio
    async def test_search_products(self):
        """Products match on model, name or segment."""
        by_model = await self.call("search_products", query="zj", **SELLER_ARGS)
        by_segment = await self.call("search_products", query="calcadista", limit=1, **SELLER_ARGS)

        assert [p["model"] for p in by_model] == ["ZJ-9000", "ZJ-5300"]
        assert by_model[0]["sale_price"] == 18900.0
        assert [p["id"] for p in by_segment] == [2001]

    @pytest.mark.asyncio
    async def test_search_no_results(self):
        result = await self.call("search_products", query="bicycle", **SELLER_ARGS)

        assert result == {"message": "No products found."}

    @pytest.mark.asyncio
    async def test_stock_per_state(self):
        """Warehouses are summed per state."""
        result = await self.call("get_product_stock", id=1001, **SELLER_ARGS)

        assert result["stock"]["sp"] == 16
        assert result["stock"]["sc"] == 3
        assert result["stock"]["details"]["deposito_sp"] == 10

    @pytest.mark.asyncio
    async def test_stock_unknown_product(self):
        result = await self.call("get_product_stock", id=999, **SELLER_ARGS)

        assert result == {"error": "Product not found"}


class TestInteractionTools:
    """Tests for the interaction tool group."""

    def setup_method(self):
        """Set up test fixtures."""
        from catalog.interactions import InteractionTools
        from catalog.services import SampleInteractionService

        self.service = SampleInteractionService()
        self.tools = InteractionTools(self.service)

    async def call(self, name, **args):
        return json.loads(await self.tools.handler(name)(args))

    @pytest.mark.asyncio
    async def test_create_interaction(self):
        """Interactions are recorded as the caller with an optional follow-up."""
        result = await self.call(
            "create_interaction",
            customer_id=42,
            type="visit",
            description="Demo of the ZJ-9000",
            next_action_date="2026-10-20",
            **SELLER_ARGS,
        )

        assert result["success"] is True
        assert result["id"] == 1
        assert result["next_action"] == "Scheduled for 2026-10-20"

        recorded = self.service.interactions[0]
        assert recorded["user_id"] == "7"
        assert recorded["next_action_date"] == date(2026, 10, 20)

    @pytest.mark.asyncio
    async def test_without_follow_up(self):
        result = await self.call(
            "create_interaction", customer_id=42, type="call", description="Check-in", **SELLER_ARGS
        )

        assert result["next_action"] == "No follow-up action scheduled"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides, error", [
        ({"type": "fax"}, "Invalid interaction type: fax"),
        ({"next_action_date": "tomorrow"}, "Invalid next_action_date, expected YYYY-MM-DD"),
        ({"user_id": None}, "User authentication required"),
    ])
    async def test_rejected(self, overrides, error):
        """Invalid input is reported and nothing is recorded."""
        args = {"customer_id": 42, "type": "call", "description": "Check-in", **SELLER_ARGS, **overrides}

        result = await self.call("create_interaction", **args)

        assert result == {"error": error}
        assert self.service.interactions == []


class TestPricingTools:
    """Tests for the pricing tool group."""

    def setup_method(self):
        """Set up test fixtures."""
        from catalog.pricing import PricingTools
        from catalog.services import (
            SampleCustomerDirectory,
            SamplePricingService,
            SampleStockService,
        )

        self.tools = PricingTools(SamplePricingService(), SampleCustomerDirectory(), SampleStockService())

    async def call(self, name, **args):
        return json.loads(await self.tools.handler(name)(args))

    @pytest.mark.asyncio
    async def test_simulation_with_taxes(self):
        """Suggested net price plus IPI and ST make up the final total."""
        result = await self.call(
            "simulate_pricing", customer_id=57, items=[{"product_id": 2001, "quantity": 2}], **SELLER_ARGS
        )

        assert result["customer_name"] == "Calcados Horizonte S.A."
        item = result["items"][0]
        assert item["unit_price_list"] == 24500.0
        assert item["unit_price_suggested_net"] == pytest.approx(24010.0)
        assert item["discount_percent"] == pytest.approx(2.0)
        assert item["ipi"] == pytest.approx(4802.0)
        assert item["st"] == pytest.approx(1920.8)

        summary = result["summary"]
        assert summary["subtotal_list"] == 49000.0
        assert summary["total_final"] == pytest.approx(54742.8)
        assert summary["installments"] == 1

    @pytest.mark.asyncio
    async def test_installments_and_volume_change_discount(self):
        """Large orders get more discount, longer terms less."""
        result = await self.call(
            "simulate_pricing",
            customer_id=42,
            items=[{"product_id": 1001, "quantity": 3}],
            installments=3,
            **SELLER_ARGS,
        )

        item = result["items"][0]
        assert item["discount_percent"] == pytest.approx(4.0)
        assert item["st"] == 0.0

    @pytest.mark.asyncio
    async def test_unknown_products_reported(self):
        result = await self.call(
            "simulate_pricing",
            customer_id=42,
            items=[{"product_id": 1001}, {"product_id": 999}],
            **SELLER_ARGS,
        )

        assert [item["id"] for item in result["items"]] == [1001]
        assert result["items"][0]["quantity"] == 1
        assert result["errors"] == ["Product ID 999 not found."]

    @pytest.mark.asyncio
    async def test_unknown_customer(self):
        result = await self.call(
            "simulate_pricing", customer_id=999, items=[{"product_id": 1001}], **SELLER_ARGS
        )

        assert result == {"error": "Customer 999 not found."}
