"""
Valuation - Pure cost layer objects and FIFO/LIFO/weighted-average costing.

Pure domain types only. The stateful InventoryLedger lives in
books_services.valuation_service.
"""

from books_engines.valuation.cost_lot import (
    CostLayer,
    CostMethod,
    IssueCosting,
    LayerConsumption,
)
from books_engines.valuation.costing import (
    CostingStrategy,
    FifoCosting,
    LifoCosting,
    WeightedAverageCosting,
    available_for_issue,
    get_costing_strategy,
)

__all__ = [
    "CostLayer",
    "CostMethod",
    "CostingStrategy",
    "FifoCosting",
    "IssueCosting",
    "LayerConsumption",
    "LifoCosting",
    "WeightedAverageCosting",
    "available_for_issue",
    "get_costing_strategy",
]
