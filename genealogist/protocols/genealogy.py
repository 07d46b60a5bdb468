"""
Genealogy Store Protocol.

Defines the read-only interface the tracing engine uses to walk the batch
lineage graph, and the typed records that cross that boundary.

Edge methods (the whole edge set of the lineage DAG):
    inputs_of()                     production batch → consumed stock batches
    outputs_of()                    production batch → produced stock batches
    production_batch_producing()    stock batch → production batch (inverse of output)
    dispatches_of()                 stock batch → dispatch records
    consuming_production_batches()  stock batch → production batches (inverse of input)

Node lookups (stock_batches, production_batches, recall, affected_batches)
resolve ids into records; an id missing from a lookup is a dangling edge.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Protocol, runtime_checkable


# ══════════════════════════════════════════════════════════════
# VALIDATION HELPERS
# ══════════════════════════════════════════════════════════════


def to_decimal(value, field_name: str) -> Decimal:
    """Coerce a stored quantity to Decimal or raise ValueError."""
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"{field_name} must be a number, got {value!r}") from e


def normalize_tags(values: Iterable[str] | None) -> frozenset[str]:
    """Normalize allergen tags: lowercase, stripped, empties dropped."""
    if not values:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    return frozenset(str(v).strip().lower() for v in values if v and str(v).strip())


# ══════════════════════════════════════════════════════════════
# DATA TYPES
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StockBatchRecord:
    """A physically trackable quantity of one stock item."""

    id: int
    batch_code: str
    quantity_received: Decimal
    quantity_remaining: Decimal
    unit: str = ""
    status: str = "active"
    allergens: frozenset[str] = frozenset()
    may_contain_allergens: frozenset[str] = frozenset()
    production_batch_id: int | None = None
    tenant_id: str = ""

    def __post_init__(self):
        if not self.batch_code:
            raise ValueError(f"Stock batch {self.id} has no batch_code")
        received = to_decimal(self.quantity_received, "quantity_received")
        remaining = to_decimal(self.quantity_remaining, "quantity_remaining")
        if remaining > received:
            raise ValueError(
                f"Stock batch {self.batch_code}: quantity_remaining ({remaining}) "
                f"exceeds quantity_received ({received})"
            )
        object.__setattr__(self, "quantity_received", received)
        object.__setattr__(self, "quantity_remaining", remaining)
        object.__setattr__(self, "allergens", normalize_tags(self.allergens))
        object.__setattr__(
            self, "may_contain_allergens", normalize_tags(self.may_contain_allergens)
        )


@dataclass(frozen=True)
class ProductionBatchRecord:
    """One manufacturing run."""

    id: int
    batch_code: str
    status: str
    recipe_id: int | None = None
    production_date: date | None = None
    planned_quantity: Decimal | None = None
    actual_quantity: Decimal | None = None
    unit: str = ""
    allergens: frozenset[str] = frozenset()
    may_contain_allergens: frozenset[str] = frozenset()
    completed_at: datetime | None = None

    def __post_init__(self):
        for name in ("planned_quantity", "actual_quantity"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, to_decimal(value, name))
        object.__setattr__(self, "allergens", normalize_tags(self.allergens))
        object.__setattr__(
            self, "may_contain_allergens", normalize_tags(self.may_contain_allergens)
        )


@dataclass(frozen=True)
class InputEdge:
    """Production batch consumed a stock batch."""

    production_batch_id: int
    stock_batch_id: int
    quantity: Decimal
    unit: str = ""
    is_rework: bool = False

    def __post_init__(self):
        object.__setattr__(self, "quantity", to_decimal(self.quantity, "quantity"))


@dataclass(frozen=True)
class OutputEdge:
    """Production batch yielded a stock batch."""

    production_batch_id: int
    stock_batch_id: int


@dataclass(frozen=True)
class DispatchEdge:
    """Stock batch shipped to a customer (terminal edge)."""

    id: int
    stock_batch_id: int
    customer_name: str
    quantity: Decimal
    dispatch_date: date
    customer_id: str | None = None
    unit: str = ""
    delivery_note_reference: str = ""

    def __post_init__(self):
        if not self.customer_id and not (self.customer_name or "").strip():
            raise ValueError(f"Dispatch {self.id} has neither customer_id nor customer_name")
        object.__setattr__(self, "customer_name", self.customer_name or "")
        object.__setattr__(self, "quantity", to_decimal(self.quantity, "quantity"))
        if isinstance(self.dispatch_date, datetime):
            object.__setattr__(self, "dispatch_date", self.dispatch_date.date())

    @property
    def customer_key(self) -> str:
        """Join key: registered customer id, else the free-text name."""
        return str(self.customer_id) if self.customer_id else self.customer_name


@dataclass(frozen=True)
class RecallRecord:
    """A recall case."""

    id: int
    recall_code: str
    status: str
    initiated_at: datetime
    title: str = ""
    tenant_id: str = ""
    root_cause: str = ""
    corrective_actions: str = ""
    fsa_notified_at: datetime | None = None
    salsa_notified_at: datetime | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None


@dataclass(frozen=True)
class AffectedBatchRecord:
    """A stock batch curated onto a recall."""

    recall_id: int
    stock_batch_id: int
    quantity_affected: Decimal | None = None
    quantity_recovered: Decimal = Decimal("0")
    batch_type: str = "raw_material"
    action_taken: str = "pending"
    added_at: datetime | None = None

    def __post_init__(self):
        if self.quantity_affected is not None:
            object.__setattr__(
                self,
                "quantity_affected",
                to_decimal(self.quantity_affected, "quantity_affected"),
            )
        recovered = self.quantity_recovered
        object.__setattr__(
            self,
            "quantity_recovered",
            Decimal("0") if recovered is None else to_decimal(recovered, "quantity_recovered"),
        )


# ══════════════════════════════════════════════════════════════
# PROTOCOL
# ══════════════════════════════════════════════════════════════


@runtime_checkable
class GenealogyStore(Protocol):
    """
    Read access to the batch lineage graph.

    Implementations:
        - OrmGenealogyStore: Django ORM over the genealogist models
        - InMemoryGenealogyStore: Plain dicts, for tests and offline analysis

    Results of list-returning methods must be ordered deterministically
    (by id) so that repeated traces are identical.
    """

    def inputs_of(self, production_batch_id: int) -> list[InputEdge]:
        """Stock batches consumed by a production batch."""
        ...

    def outputs_of(self, production_batch_id: int) -> list[OutputEdge]:
        """Stock batches produced by a production batch (output edges and batches naming it)."""
        ...

    def production_batch_producing(self, stock_batch_id: int) -> int | None:
        """Production batch that produced a stock batch, if any."""
        ...

    def dispatches_of(self, stock_batch_id: int) -> list[DispatchEdge]:
        """Dispatch records of a stock batch."""
        ...

    def consuming_production_batches(self, stock_batch_id: int) -> list[int]:
        """Production batches that consumed a stock batch."""
        ...

    def stock_batches(self, ids: Iterable[int]) -> dict[int, StockBatchRecord]:
        """Resolve stock batch ids; unknown ids are absent from the result."""
        ...

    def production_batches(self, ids: Iterable[int]) -> dict[int, ProductionBatchRecord]:
        """Resolve production batch ids; unknown ids are absent from the result."""
        ...

    def recall(self, recall_id: int) -> RecallRecord:
        """
        Load a recall case.

        Raises:
            NotFound: If the recall does not exist
        """
        ...

    def affected_batches(self, recall_id: int) -> list[AffectedBatchRecord]:
        """Curated affected-batch rows of a recall."""
        ...


@dataclass(frozen=True)
class SkippedEdge:
    """A lineage edge whose stock batch reference did not resolve."""

    kind: str  # "start" | "input" | "output" | "affected" | "producer"
    stock_batch_id: int
    production_batch_id: int | None = None
    recall_id: int | None = None

    def as_dict(self) -> dict:
        return {
            "kind": self.kind,
            "stock_batch_id": self.stock_batch_id,
            "production_batch_id": self.production_batch_id,
            "recall_id": self.recall_id,
        }


__all__ = [
    "GenealogyStore",
    "StockBatchRecord",
    "ProductionBatchRecord",
    "InputEdge",
    "OutputEdge",
    "DispatchEdge",
    "RecallRecord",
    "AffectedBatchRecord",
    "SkippedEdge",
    "normalize_tags",
    "to_decimal",
]
