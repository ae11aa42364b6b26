"""Tool Catalog - tool schemas and handlers offered to the model.

Tool groups are thin adapters over domain services. They are registered
once at startup into a sealed, read-only ToolCatalog.
"""

from typing import Optional

from catalog.registry import ToolCatalog, ToolHandler
from catalog.services import DomainServices


def build_catalog(services: Optional[DomainServices] = None) -> ToolCatalog:
    """
    Register every tool group and seal the catalog.

    Args:
        services: Domain collaborators; sample data services when omitted
    """
    from catalog.analytics import AnalyticsTools
    from catalog.customers import CustomerTools
    from catalog.interactions import InteractionTools
    from catalog.leads import LeadTools
    from catalog.metrics import MetricsTools
    from catalog.orders import OrderTools
    from catalog.pricing import PricingTools
    from catalog.stock import StockTools

    services = services or DomainServices.sample()

    catalog = ToolCatalog()
    catalog.register_group(CustomerTools(services.customers))
    catalog.register_group(LeadTools(services.leads, services.customers, services.stock))
    catalog.register_group(OrderTools(services.orders, services.customers, services.stock))
    catalog.register_group(MetricsTools(services.metrics))
    catalog.register_group(StockTools(services.stock))
    catalog.register_group(InteractionTools(services.interactions))
    catalog.register_group(AnalyticsTools(
        forecast=services.forecast,
        churn=services.churn,
        recommendations=services.recommendations,
    ))
    catalog.register_group(PricingTools(services.pricing, services.customers, services.stock))
    catalog.seal()

    return catalog


__all__ = ["ToolCatalog", "ToolHandler", "DomainServices", "build_catalog"]
