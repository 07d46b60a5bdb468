"""
Genealogist Result Types.

Structured, immutable results for allocation, tracing and recall reports.
Every `as_dict()` returns plain values (Decimal, date, datetime, str, list,
dict) ready for `DjangoJSONEncoder`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from genealogist.protocols.genealogy import RecallRecord, SkippedEdge


@dataclass(frozen=True)
class Allocation:
    """Outcome of a batch code allocation."""

    code: str
    sequence: int | None
    attempts: int
    instance: Any = field(default=None, compare=False, repr=False)


# ══════════════════════════════════════════════════════════════
# LINEAGE
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DispatchLine:
    """One dispatch record reached by a trace."""

    dispatch_id: int
    stock_batch_id: int
    batch_code: str
    quantity: Decimal
    unit: str
    dispatch_date: date
    delivery_note_reference: str = ""

    def as_dict(self) -> dict:
        return {
            "dispatch_id": self.dispatch_id,
            "stock_batch_id": self.stock_batch_id,
            "batch_code": self.batch_code,
            "quantity": self.quantity,
            "unit": self.unit,
            "dispatch_date": self.dispatch_date,
            "delivery_note_reference": self.delivery_note_reference,
        }


@dataclass(frozen=True)
class TracedCustomer:
    """A customer that received product derived from the traced batches."""

    key: str
    customer_id: str | None
    customer_name: str
    batches: tuple[DispatchLine, ...] = ()

    @property
    def total_quantity(self) -> Decimal:
        return sum((line.quantity for line in self.batches), Decimal("0"))

    def as_dict(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "batches": [line.as_dict() for line in self.batches],
            "total_quantity": self.total_quantity,
        }


@dataclass(frozen=True)
class LineageTrace:
    """
    Result of a forward trace.

    customers: sorted by (customer_name, key)
    visited_*: ids in the order the BFS expanded them
    skipped_edges: edges whose stock batch did not resolve
    """

    start_ids: tuple[int, ...]
    customers: tuple[TracedCustomer, ...] = ()
    visited_stock_batches: tuple[int, ...] = ()
    visited_production_batches: tuple[int, ...] = ()
    batch_codes: dict[int, str] = field(default_factory=dict, compare=False)
    skipped_edges: tuple[SkippedEdge, ...] = ()

    @property
    def skipped_edge_count(self) -> int:
        return len(self.skipped_edges)

    @property
    def total_dispatched(self) -> Decimal:
        return sum((c.total_quantity for c in self.customers), Decimal("0"))

    @property
    def downstream_batch_codes(self) -> tuple[str, ...]:
        """Codes of every resolved stock batch the trace reached, in BFS order."""
        return tuple(
            self.batch_codes[batch_id]
            for batch_id in self.visited_stock_batches
            if batch_id in self.batch_codes
        )

    def customer(self, key: str) -> TracedCustomer | None:
        return next((c for c in self.customers if c.key == key), None)


@dataclass(frozen=True)
class BackwardTrace:
    """
    Result of a backward trace (finished batch → source materials).

    source_batches: visited stock batches not produced by any production run
    """

    stock_batch_id: int
    visited_stock_batches: tuple[int, ...] = ()
    visited_production_batches: tuple[int, ...] = ()
    source_batches: tuple[int, ...] = ()
    skipped_edges: tuple[SkippedEdge, ...] = ()

    @property
    def skipped_edge_count(self) -> int:
        return len(self.skipped_edges)


# ══════════════════════════════════════════════════════════════
# AGGREGATES
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AllergenSummary:
    """Confirmed allergens and "may contain" tags, kept apart."""

    allergens: tuple[str, ...] = ()
    may_contain: tuple[str, ...] = ()


@dataclass(frozen=True)
class MassBalance:
    """Recall mass balance. unaccounted is never clamped."""

    total_produced: Decimal
    total_recovered: Decimal
    unaccounted: Decimal

    @property
    def unaccounted_percent(self) -> Decimal | None:
        if not self.total_produced:
            return None
        return (self.unaccounted / self.total_produced * 100).quantize(Decimal("0.01"))

    def as_dict(self) -> dict:
        return {
            "total_produced": self.total_produced,
            "total_recovered": self.total_recovered,
            "unaccounted": self.unaccounted,
            "unaccounted_percent": self.unaccounted_percent,
        }


@dataclass(frozen=True)
class YieldBalance:
    """Input vs output quantities of a single production batch."""

    production_batch_id: int
    total_input: Decimal
    total_output: Decimal
    skipped_edges: tuple[SkippedEdge, ...] = ()

    @property
    def variance(self) -> Decimal:
        return self.total_output - self.total_input

    @property
    def variance_percent(self) -> Decimal | None:
        if not self.total_input:
            return None
        return (self.variance / self.total_input * 100).quantize(Decimal("0.01"))


# ══════════════════════════════════════════════════════════════
# RECALL REPORT
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AffectedBatchLine:
    """A curated affected batch, resolved."""

    stock_batch_id: int
    batch_code: str
    batch_type: str
    quantity_received: Decimal
    quantity_affected: Decimal | None
    quantity_recovered: Decimal
    unit: str
    action_taken: str
    allergens: tuple[str, ...] = ()
    added_at: datetime | None = None

    def as_dict(self) -> dict:
        return {
            "stock_batch_id": self.stock_batch_id,
            "batch_code": self.batch_code,
            "batch_type": self.batch_type,
            "quantity_received": self.quantity_received,
            "quantity_affected": self.quantity_affected,
            "quantity_recovered": self.quantity_recovered,
            "unit": self.unit,
            "action_taken": self.action_taken,
            "allergens": list(self.allergens),
            "added_at": self.added_at,
        }


@dataclass(frozen=True)
class TimelineEntry:
    label: str
    date: date | datetime


@dataclass(frozen=True)
class RecallReport:
    """
    Composed recall report.

    Built fresh on every call; identical inputs give identical as_dict().
    """

    recall: RecallRecord
    affected_batches: tuple[AffectedBatchLine, ...]
    traced_customers: tuple[TracedCustomer, ...]
    allergen_summary: tuple[str, ...]
    may_contain_summary: tuple[str, ...]
    mass_balance: MassBalance
    timeline: tuple[TimelineEntry, ...]
    downstream_batches: tuple[str, ...] = ()
    skipped_edges: tuple[SkippedEdge, ...] = ()

    @property
    def skipped_edge_count(self) -> int:
        return len(self.skipped_edges)

    def as_dict(self) -> dict:
        recall = self.recall
        return {
            "recall": {
                "id": recall.id,
                "recall_code": recall.recall_code,
                "title": recall.title,
                "status": recall.status,
                "initiated_at": recall.initiated_at,
                "fsa_notified_at": recall.fsa_notified_at,
                "salsa_notified_at": recall.salsa_notified_at,
                "resolved_at": recall.resolved_at,
                "closed_at": recall.closed_at,
                "root_cause": recall.root_cause,
                "corrective_actions": recall.corrective_actions,
            },
            "affected_batches": [line.as_dict() for line in self.affected_batches],
            "traced_customers": [c.as_dict() for c in self.traced_customers],
            "allergen_summary": list(self.allergen_summary),
            "may_contain_summary": list(self.may_contain_summary),
            "mass_balance": self.mass_balance.as_dict(),
            "timeline": [
                {"label": entry.label, "date": entry.date} for entry in self.timeline
            ],
            "downstream_batches": list(self.downstream_batches),
            "skipped_edge_count": self.skipped_edge_count,
            "skipped_edges": [edge.as_dict() for edge in self.skipped_edges],
        }
