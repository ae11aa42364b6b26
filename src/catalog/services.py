"""Domain services called by the tool handlers.

The analytics engines and the ERP database live outside this
package; tools only see these interfaces. The ``Sample*`` classes serve
fixed data so the assistant runs end to end without a backend.
"""

import copy
import itertools
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any, Optional


class ForecastService(ABC):
    """Sales forecasting."""

    @abstractmethod
    async def predict(
        self,
        seller_id: Optional[str],
        segment: Optional[str],
        days: int
    ) -> dict[str, Any]:
        """
        Forecast daily sales.

        Returns:
            ``{"forecast": [{"date", "predicted_value"}], "growth_rate"}``
        """
        pass

    @abstractmethod
    async def analyze_deviation(
        self,
        seller_id: Optional[str],
        days: int
    ) -> dict[str, Any]:
        """
        Compare actual against predicted sales for the last ``days`` days.

        Returns:
            ``{"period_days", "total_actual", "total_expected",
            "overall_deviation_percent", "requires_attention"}``
        """
        pass


class ChurnService(ABC):
    """Customer churn scoring."""

    @abstractmethod
    async def get_score(self, customer_id: int) -> Optional[dict[str, Any]]:
        """
        Returns:
            ``{"score", "risk_level", "days_since_last_order",
            "avg_ticket_variation"}`` or None when no data exists
        """
        pass


class RecommendationService(ABC):
    """Product and discount recommendations."""

    @abstractmethod
    async def get_for_customer(self, customer_id: int, limit: int) -> dict[str, Any]:
        """
        Returns:
            ``{"replenishment": [...], "cross_sell": [...]}``
        """
        pass

    @abstractmethod
    async def get_discount_recommendation(
        self,
        customer_id: int,
        product_id: int
    ) -> dict[str, Any]:
        """
        Returns:
            ``{"suggested_discount", "rationale"}``
        """
        pass


class CustomerDirectory(ABC):
    """Customer lookup."""

    @abstractmethod
    async def search(
        self,
        query: str,
        seller_id: Optional[str],
        limit: int
    ) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    async def get(self, customer_id: int) -> Optional[dict[str, Any]]:
        pass


class LeadService(ABC):
    """Leads (quotes) and their items."""

    @abstractmethod
    async def search(
        self,
        seller_id: Optional[str],
        customer_id: Optional[int] = None,
        query: Optional[str] = None,
        status: str = "all",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 5
    ) -> list[dict[str, Any]]:
        """
        Returns:
            Leads, newest first, each with ``id``, ``date``, ``customer_id``,
            ``seller_id``, ``buyer``, ``order_id`` and ``items``
        """
        pass

    @abstractmethod
    async def get(self, lead_id: int) -> Optional[dict[str, Any]]:
        pass

    @abstractmethod
    async def create(
        self,
        customer_id: int,
        seller_id: str,
        items: list[dict[str, Any]],
        remarks: str
    ) -> dict[str, Any]:
        """
        Create an open lead.

        Args:
            items: ``[{"product_id", "quantity", "price"}]``, already priced
        """
        pass


class OrderService(ABC):
    """Finalized orders."""

    @abstractmethod
    async def search(
        self,
        seller_id: Optional[str],
        customer_id: Optional[int] = None,
        order_id: Optional[int] = None,
        limit: int = 5
    ) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    async def get(self, order_id: int) -> Optional[dict[str, Any]]:
        pass


class MetricsService(ABC):
    """Invoiced sales totals."""

    @abstractmethod
    async def sales_total(self, seller_id: str, start: date, end: date) -> dict[str, Any]:
        """
        Sum a seller's sales between two dates, both inclusive.

        Returns:
            ``{"total", "count"}``
        """
        pass


class StockService(ABC):
    """Product catalog and warehouse stock."""

    @abstractmethod
    async def search_products(self, query: str, limit: int) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    async def get_products(self, product_ids: list[int]) -> dict[int, dict[str, Any]]:
        """Fetch several products at once; missing ids are left out."""
        pass

    @abstractmethod
    async def get_stock(self, product_id: int) -> Optional[dict[str, int]]:
        """
        Returns:
            Available units per warehouse, or None for an unknown product
        """
        pass


class InteractionService(ABC):
    """Customer interaction log."""

    @abstractmethod
    async def create(
        self,
        customer_id: int,
        user_id: str,
        type: str,
        description: str,
        next_action_date: Optional[date] = None,
        next_action_description: Optional[str] = None
    ) -> int:
        """Record an interaction and return its id."""
        pass


class PricingService(ABC):
    """Price suggestion and tax calculation."""

    @abstractmethod
    async def quote(self, request: dict[str, Any]) -> dict[str, Any]:
        """
        Suggest a net unit price for one item of an order.

        Args:
            request: ``customer_id``, ``product_id``, ``quantity``,
                ``list_price``, ``order_value``, ``installments``

        Returns:
            ``{"final_price", "reason"}``
        """
        pass

    @abstractmethod
    async def taxes(
        self,
        customer: dict[str, Any],
        product: dict[str, Any],
        unit_price: float,
        quantity: int
    ) -> dict[str, float]:
        """
        Returns:
            ``{"ipi", "st"}`` for the whole item
        """
        pass


# Sample data for the in-process implementations
SAMPLE_CUSTOMERS: dict[int, dict[str, Any]] = {
    42: {
        "id": 42,
        "name": "Textil Aurora Ltda",
        "fantasy": "Aurora Textil",
        "document": "12.345.678/0001-90",
        "email": "compras@auroratextil.com.br",
        "phone": "(11) 4002-8922",
        "address": "Rua das Fiandeiras, 120 - Bras",
        "city": "Sao Paulo",
        "state": "SP",
        "segment": "TEXTIL",
        "seller_id": "7",
        "credit_limit": 150000.0,
        "balance": 32000.0,
    },
    57: {
        "id": 57,
        "name": "Calcados Horizonte S.A.",
        "fantasy": "Horizonte",
        "document": "98.765.432/0001-10",
        "email": "financeiro@horizonte.com.br",
        "phone": "(51) 3333-1020",
        "address": "Av. Industrial, 900 - Centro",
        "city": "Novo Hamburgo",
        "state": "RS",
        "segment": "CALCADISTA",
        "seller_id": "8",
        "credit_limit": 80000.0,
        "balance": 79000.0,
    },
    63: {
        "id": 63,
        "name": "Confeccoes Aurora do Sul",
        "fantasy": "Aurora Sul",
        "document": "45.678.123/0001-55",
        "email": "contato@aurorasul.com.br",
        "phone": "(47) 3222-4455",
        "address": "Rua XV de Novembro, 55 - Centro",
        "city": "Blumenau",
        "state": "SC",
        "segment": "TEXTIL",
        "seller_id": "7",
        "credit_limit": 60000.0,
        "balance": 0.0,
    },
}

SAMPLE_CHURN: dict[int, dict[str, Any]] = {
    42: {"score": 82, "risk_level": "critical", "days_since_last_order": 96, "avg_ticket_variation": -0.34},
    57: {"score": 35, "risk_level": "low", "days_since_last_order": 12, "avg_ticket_variation": 0.08},
}

SAMPLE_DAILY_SALES: dict[str, float] = {
    "7": 18500.0,
    "8": 9200.0,
}

SAMPLE_PRODUCTS: dict[int, dict[str, Any]] = {
    1001: {
        "code": "ZJ-9000", "name": "Industrial sewing machine ZJ-9000", "segment": "TEXTIL",
        "brand": "ZOJE", "price": 18900.0, "cost": 12100.0, "ipi": 5.0,
    },
    1002: {
        "code": "ZJ-5300", "name": "Overlock machine ZJ-5300", "segment": "TEXTIL",
        "brand": "ZOJE", "price": 9400.0, "cost": 6100.0, "ipi": 5.0,
    },
    2001: {
        "code": "PT-210", "name": "Post bed machine PT-210", "segment": "CALCADISTA",
        "brand": "SUNSPECIAL", "price": 24500.0, "cost": 16800.0, "ipi": 10.0,
    },
    2002: {
        "code": "PT-330", "name": "Cylinder bed machine PT-330", "segment": "CALCADISTA",
        "brand": "SUNSPECIAL", "price": 31200.0, "cost": 21900.0, "ipi": 10.0,
    },
}

SAMPLE_STOCK: dict[int, dict[str, int]] = {
    1001: {"matriz_sp": 4, "deposito_sp": 10, "barrafunda_sp": 2, "deposito_sc": 3},
    1002: {"matriz_sp": 0, "deposito_sp": 6, "barrafunda_sp": 0, "deposito_sc": 1},
    2001: {"matriz_sp": 0, "deposito_sp": 1, "barrafunda_sp": 0, "deposito_sc": 5},
    2002: {"matriz_sp": 0, "deposito_sp": 0, "barrafunda_sp": 0, "deposito_sc": 0},
}

SAMPLE_LEADS: dict[int, dict[str, Any]] = {
    501: {
        "id": 501, "date": date(2026, 10, 2), "customer_id": 42, "seller_id": "7",
        "buyer": "Marta", "order_id": None, "remarks": "Waiting for budget approval",
        "items": [{"product_id": 1001, "quantity": 2, "price": 18900.0}],
    },
    502: {
        "id": 502, "date": date(2026, 9, 15), "customer_id": 57, "seller_id": "8",
        "buyer": "Jorge", "order_id": 9001, "remarks": "",
        "items": [{"product_id": 2001, "quantity": 1, "price": 24500.0}],
    },
    503: {
        "id": 503, "date": date(2026, 8, 20), "customer_id": 63, "seller_id": "7",
        "buyer": "Lia", "order_id": 9003, "remarks": "",
        "items": [{"product_id": 1002, "quantity": 3, "price": 9100.0}],
    },
}

SAMPLE_ORDERS: dict[int, dict[str, Any]] = {
    9001: {
        "id": 9001, "date": date(2026, 9, 18), "customer_id": 57, "seller_id": "8",
        "operation": 27, "payment": {"type": "boleto", "terms": "30/60/90"},
        "items": [{"product_id": 2001, "quantity": 1, "price": 24500.0}],
    },
    9002: {
        "id": 9002, "date": date(2026, 9, 30), "customer_id": 42, "seller_id": "7",
        "operation": 27, "payment": {"type": "boleto", "terms": "28"},
        "items": [{"product_id": 1001, "quantity": 1, "price": 18400.0}],
    },
    9003: {
        "id": 9003, "date": date(2026, 8, 25), "customer_id": 63, "seller_id": "7",
        "operation": 51, "payment": {"type": "pix", "terms": "cash"},
        "items": [{"product_id": 1002, "quantity": 3, "price": 9100.0}],
    },
}

SAMPLE_PURCHASES: dict[int, dict[int, int]] = {
    42: {1001: 6},
    57: {2001: 3, 2002: 1},
}


class SampleForecastService(ForecastService):
    """Flat forecast from per-seller daily averages."""

    async def predict(
        self,
        seller_id: Optional[str],
        segment: Optional[str],
        days: int
    ) -> dict[str, Any]:
        if seller_id is not None:
            daily = SAMPLE_DAILY_SALES.get(str(seller_id), 0.0)
        else:
            daily = sum(SAMPLE_DAILY_SALES.values())

        if segment:
            daily *= 0.5

        start = date.today()
        return {
            "forecast": [
                {"date": (start + timedelta(days=i + 1)).isoformat(), "predicted_value": daily}
                for i in range(days)
            ] if daily else [],
            "growth_rate": 0.04,
        }

    async def analyze_deviation(
        self,
        seller_id: Optional[str],
        days: int
    ) -> dict[str, Any]:
        if seller_id is not None:
            expected = SAMPLE_DAILY_SALES.get(str(seller_id), 0.0) * days
        else:
            expected = sum(SAMPLE_DAILY_SALES.values()) * days
        actual = expected * 0.82
        deviation = ((actual - expected) / expected * 100) if expected else 0.0

        return {
            "period_days": days,
            "total_actual": round(actual, 2),
            "total_expected": round(expected, 2),
            "overall_deviation_percent": round(deviation, 2),
            "requires_attention": abs(deviation) >= 15,
        }


class SampleChurnService(ChurnService):

    async def get_score(self, customer_id: int) -> Optional[dict[str, Any]]:
        return SAMPLE_CHURN.get(customer_id)


class SampleRecommendationService(RecommendationService):

    async def get_for_customer(self, customer_id: int, limit: int) -> dict[str, Any]:
        customer = SAMPLE_CUSTOMERS.get(customer_id)
        purchases = SAMPLE_PURCHASES.get(customer_id, {})

        replenishment = [
            {
                "product_code": SAMPLE_PRODUCTS[pid]["code"],
                "product_name": SAMPLE_PRODUCTS[pid]["name"],
                "orders_count": count,
            }
            for pid, count in sorted(purchases.items(), key=lambda i: -i[1])
        ][:limit]

        segment = customer["segment"] if customer else None
        cross_sell = [
            {"code": p["code"], "description": p["name"]}
            for pid, p in SAMPLE_PRODUCTS.items()
            if p["segment"] == segment and pid not in purchases
        ][:max(limit - len(replenishment), 0)]

        return {"replenishment": replenishment, "cross_sell": cross_sell}

    async def get_discount_recommendation(
        self,
        customer_id: int,
        product_id: int
    ) -> dict[str, Any]:
        if product_id not in SAMPLE_PRODUCTS:
            raise LookupError(f"Product {product_id} not found")

        orders = SAMPLE_PURCHASES.get(customer_id, {}).get(product_id, 0)
        discount = min(3.0 + orders * 0.5, 8.0)
        return {
            "suggested_discount": discount,
            "rationale": f"Customer bought this product {orders} time(s); loyal buyers get up to 8%.",
        }


class SampleCustomerDirectory(CustomerDirectory):

    async def search(
        self,
        query: str,
        seller_id: Optional[str],
        limit: int
    ) -> list[dict[str, Any]]:
        needle = query.lower().strip()
        results = []
        for customer in SAMPLE_CUSTOMERS.values():
            if seller_id is not None and customer["seller_id"] != str(seller_id):
                continue
            haystack = " ".join([
                str(customer["id"]), customer["name"], customer["fantasy"], customer["document"]
            ]).lower()
            if needle in haystack:
                results.append(customer)
        return results[:limit]

    async def get(self, customer_id: int) -> Optional[dict[str, Any]]:
        return SAMPLE_CUSTOMERS.get(customer_id)


class SampleLeadService(LeadService):
    """Leads kept in memory; each instance starts from the sample set."""

    def __init__(self) -> None:
        self._leads = copy.deepcopy(SAMPLE_LEADS)
        self._ids = itertools.count(max(self._leads) + 1)

    async def search(
        self,
        seller_id: Optional[str],
        customer_id: Optional[int] = None,
        query: Optional[str] = None,
        status: str = "all",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 5
    ) -> list[dict[str, Any]]:
        needle = (query or "").lower().strip()
        results = []
        for lead in sorted(self._leads.values(), key=lambda l: l["date"], reverse=True):
            if seller_id is not None and lead["seller_id"] != str(seller_id):
                continue
            if customer_id is not None and lead["customer_id"] != customer_id:
                continue
            if status == "open" and lead["order_id"] is not None:
                continue
            if status == "converted" and lead["order_id"] is None:
                continue
            if start_date and lead["date"] < start_date:
                continue
            if end_date and lead["date"] > end_date:
                continue
            if needle:
                customer = SAMPLE_CUSTOMERS.get(lead["customer_id"], {})
                haystack = " ".join([
                    str(lead["id"]), str(lead["order_id"] or ""), customer.get("name", "")
                ]).lower()
                if needle not in haystack:
                    continue
            results.append(copy.deepcopy(lead))
        return results[:limit]

    async def get(self, lead_id: int) -> Optional[dict[str, Any]]:
        lead = self._leads.get(lead_id)
        return copy.deepcopy(lead) if lead else None

    async def create(
        self,
        customer_id: int,
        seller_id: str,
        items: list[dict[str, Any]],
        remarks: str
    ) -> dict[str, Any]:
        lead = {
            "id": next(self._ids),
            "date": date.today(),
            "customer_id": customer_id,
            "seller_id": str(seller_id),
            "buyer": None,
            "order_id": None,
            "remarks": remarks,
            "items": [dict(item) for item in items],
        }
        self._leads[lead["id"]] = lead
        return copy.deepcopy(lead)


class SampleOrderService(OrderService):

    async def search(
        self,
        seller_id: Optional[str],
        customer_id: Optional[int] = None,
        order_id: Optional[int] = None,
        limit: int = 5
    ) -> list[dict[str, Any]]:
        results = [
            copy.deepcopy(order)
            for order in sorted(SAMPLE_ORDERS.values(), key=lambda o: o["date"], reverse=True)
            if (seller_id is None or order["seller_id"] == str(seller_id))
            and (customer_id is None or order["customer_id"] == customer_id)
            and (order_id is None or order["id"] == order_id)
        ]
        return results[:limit]

    async def get(self, order_id: int) -> Optional[dict[str, Any]]:
        order = SAMPLE_ORDERS.get(order_id)
        return copy.deepcopy(order) if order else None


class SampleMetricsService(MetricsService):
    """Totals derived from the per-seller daily averages."""

    async def sales_total(self, seller_id: str, start: date, end: date) -> dict[str, Any]:
        days = max((end - start).days + 1, 0)
        daily = SAMPLE_DAILY_SALES.get(str(seller_id), 0.0)
        return {"total": round(daily * days, 2), "count": days if daily else 0}


class SampleStockService(StockService):

    async def search_products(self, query: str, limit: int) -> list[dict[str, Any]]:
        needle = query.lower().strip()
        return [
            {"id": pid, **product}
            for pid, product in SAMPLE_PRODUCTS.items()
            if needle in " ".join([product["code"], product["name"], product["segment"]]).lower()
        ][:limit]

    async def get_products(self, product_ids: list[int]) -> dict[int, dict[str, Any]]:
        return {
            pid: {"id": pid, **SAMPLE_PRODUCTS[pid]}
            for pid in product_ids
            if pid in SAMPLE_PRODUCTS
        }

    async def get_stock(self, product_id: int) -> Optional[dict[str, int]]:
        stock = SAMPLE_STOCK.get(product_id)
        return dict(stock) if stock is not None else None


class SampleInteractionService(InteractionService):

    def __init__(self) -> None:
        self.interactions: list[dict[str, Any]] = []
        self._ids = itertools.count(1)

    async def create(
        self,
        customer_id: int,
        user_id: str,
        type: str,
        description: str,
        next_action_date: Optional[date] = None,
        next_action_description: Optional[str] = None
    ) -> int:
        interaction_id = next(self._ids)
        self.interactions.append({
            "id": interaction_id,
            "customer_id": customer_id,
            "user_id": user_id,
            "type": type,
            "description": description,
            "next_action_date": next_action_date,
            "next_action_description": next_action_description,
        })
        return interaction_id


class SamplePricingService(PricingService):
    """Volume and payment-term discounts; IPI from the product, ST outside SP."""

    async def quote(self, request: dict[str, Any]) -> dict[str, Any]:
        discount = 5.0 if request["order_value"] >= 50000 else 2.0
        discount = max(discount - 0.5 * (int(request.get("installments") or 1) - 1), 0.0)

        return {
            "final_price": round(request["list_price"] * (1 - discount / 100), 2),
            "reason": f"{discount:.1f}% for order volume and payment terms",
        }

    async def taxes(
        self,
        customer: dict[str, Any],
        product: dict[str, Any],
        unit_price: float,
        quantity: int
    ) -> dict[str, float]:
        net = unit_price * quantity
        st = net * 0.04 if customer.get("state") != "SP" else 0.0
        return {
            "ipi": round(net * product.get("ipi", 0.0) / 100, 2),
            "st": round(st, 2),
        }


class DomainServices:
    """The domain collaborators available to tool groups."""

    def __init__(
        self,
        forecast: ForecastService,
        churn: ChurnService,
        recommendations: RecommendationService,
        customers: CustomerDirectory,
        leads: LeadService,
        orders: OrderService,
        metrics: MetricsService,
        stock: StockService,
        interactions: InteractionService,
        pricing: PricingService
    ) -> None:
        self.forecast = forecast
        self.churn = churn
        self.recommendations = recommendations
        self.customers = customers
        self.leads = leads
        self.orders = orders
        self.metrics = metrics
        self.stock = stock
        self.interactions = interactions
        self.pricing = pricing

    @classmethod
    def sample(cls) -> "DomainServices":
        return cls(
            forecast=SampleForecastService(),
            churn=SampleChurnService(),
            recommendations=SampleRecommendationService(),
            customers=SampleCustomerDirectory(),
            leads=SampleLeadService(),
            orders=SampleOrderService(),
            metrics=SampleMetricsService(),
            stock=SampleStockService(),
            interactions=SampleInteractionService(),
            pricing=SamplePricingService(),
        )
