"""
Genealogist Services.

Logic that doesn't belong in models:
- allocation: Batch code allocation under the uniqueness constraint
- lineage: Forward and backward tracing over a GenealogyStore
- allergens: Allergen and "may contain" aggregation
- mass_balance: Recall mass balance and production yield
- reports: Recall report assembly
"""

from genealogist.services.allergens import (
    aggregate_allergens,
    aggregate_may_contain,
    finalize_production_allergens,
    summarize,
)
from genealogist.services.allocation import BatchCodeAllocator
from genealogist.services.lineage import LineageResolver
from genealogist.services.mass_balance import production_yield, reconcile
from genealogist.services.reports import build_recall_report

__all__ = [
    "BatchCodeAllocator",
    "LineageResolver",
    "aggregate_allergens",
    "aggregate_may_contain",
    "summarize",
    "finalize_production_allergens",
    "reconcile",
    "production_yield",
    "build_recall_report",
]
