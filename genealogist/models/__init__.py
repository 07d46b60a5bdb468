"""
Genealogist Models.

Lineage ledger for batch traceability:
- StockBatch: Trackable quantity of one stock item (purchased or produced)
- Recipe: What a production run makes, with its allergen declarations
- ProductionBatch: One manufacturing run
- ProductionBatchInput / ProductionBatchOutput: Lineage edges of a run
- DispatchRecord: Stock batch shipped to a customer
- Recall / RecallAffectedBatch: Recall case and its curated batches
"""

from genealogist.models.dispatch import DispatchRecord
from genealogist.models.production_batch import (
    ProductionBatch,
    ProductionBatchInput,
    ProductionBatchOutput,
    ProductionBatchStatus,
)
from genealogist.models.recall import (
    BatchType,
    Recall,
    RecallAction,
    RecallAffectedBatch,
    RecallSeverity,
    RecallStatus,
    RecallType,
)
from genealogist.models.recipe import Recipe
from genealogist.models.stock_batch import StockBatch, StockBatchStatus

__all__ = [
    "StockBatch",
    "StockBatchStatus",
    "Recipe",
    "ProductionBatch",
    "ProductionBatchStatus",
    "ProductionBatchInput",
    "ProductionBatchOutput",
    "DispatchRecord",
    "Recall",
    "RecallStatus",
    "RecallType",
    "RecallSeverity",
    "RecallAction",
    "RecallAffectedBatch",
    "BatchType",
]
