"""
In-memory Genealogy Store.

Plain-dict GenealogyStore for tests and offline analysis of exported
lineage data. No database access.

Usage:
    store = InMemoryGenealogyStore()
    store.add_stock_batch(StockBatchRecord(id=1, batch_code="FL-1", ...))
    store.add_input(InputEdge(production_batch_id=10, stock_batch_id=1, quantity=5))
    LineageResolver(store).trace([1])
"""

from typing import Iterable

from genealogist.exceptions import NotFound
from genealogist.protocols.genealogy import (
    AffectedBatchRecord,
    DispatchEdge,
    InputEdge,
    OutputEdge,
    ProductionBatchRecord,
    RecallRecord,
    StockBatchRecord,
)


class InMemoryGenealogyStore:
    """GenealogyStore over in-process dicts. Edges may reference missing nodes."""

    def __init__(self, tenant_id: str | None = None):
        self.tenant_id = tenant_id
        self._stock: dict[int, StockBatchRecord] = {}
        self._production: dict[int, ProductionBatchRecord] = {}
        self._inputs: list[InputEdge] = []
        self._outputs: list[OutputEdge] = []
        self._dispatches: list[DispatchEdge] = []
        self._recalls: dict[int, RecallRecord] = {}
        self._affected: list[AffectedBatchRecord] = []

    # ── Loading ──

    def add_stock_batch(self, record: StockBatchRecord) -> StockBatchRecord:
        self._stock[record.id] = record
        return record

    def add_production_batch(self, record: ProductionBatchRecord) -> ProductionBatchRecord:
        self._production[record.id] = record
        return record

    def add_input(self, edge: InputEdge) -> InputEdge:
        self._inputs.append(edge)
        return edge

    def add_output(self, edge: OutputEdge) -> OutputEdge:
        self._outputs.append(edge)
        return edge

    def add_dispatch(self, edge: DispatchEdge) -> DispatchEdge:
        self._dispatches.append(edge)
        return edge

    def add_recall(self, record: RecallRecord) -> RecallRecord:
        self._recalls[record.id] = record
        return record

    def add_affected(self, record: AffectedBatchRecord) -> AffectedBatchRecord:
        self._affected.append(record)
        return record

    def _visible(self, record) -> bool:
        tenant = getattr(record, "tenant_id", "")
        return self.tenant_id is None or not tenant or tenant == self.tenant_id

    # ── Edges ──

    def inputs_of(self, production_batch_id: int) -> list[InputEdge]:
        return [e for e in self._inputs if e.production_batch_id == production_batch_id]

    def outputs_of(self, production_batch_id: int) -> list[OutputEdge]:
        ids = dict.fromkeys(
            e.stock_batch_id for e in self._outputs if e.production_batch_id == production_batch_id
        )
        # StockBatch.production_batch_id is an output edge of its own
        ids.update(
            dict.fromkeys(
                sorted(
                    i for i, r in self._stock.items()
                    if r.production_batch_id == production_batch_id
                )
            )
        )
        return [OutputEdge(production_batch_id, stock_batch_id) for stock_batch_id in ids]

    def production_batch_producing(self, stock_batch_id: int) -> int | None:
        for edge in self._outputs:
            if edge.stock_batch_id == stock_batch_id:
                return edge.production_batch_id
        record = self._stock.get(stock_batch_id)
        return record.production_batch_id if record else None

    def dispatches_of(self, stock_batch_id: int) -> list[DispatchEdge]:
        return sorted(
            (d for d in self._dispatches if d.stock_batch_id == stock_batch_id),
            key=lambda d: d.id,
        )

    def consuming_production_batches(self, stock_batch_id: int) -> list[int]:
        return sorted(
            {e.production_batch_id for e in self._inputs if e.stock_batch_id == stock_batch_id}
        )

    # ── Nodes ──

    def stock_batches(self, ids: Iterable[int]) -> dict[int, StockBatchRecord]:
        return {
            i: self._stock[i]
            for i in set(ids)
            if i in self._stock and self._visible(self._stock[i])
        }

    def production_batches(self, ids: Iterable[int]) -> dict[int, ProductionBatchRecord]:
        return {i: self._production[i] for i in set(ids) if i in self._production}

    def recall(self, recall_id: int) -> RecallRecord:
        record = self._recalls.get(recall_id)
        if record is None or not self._visible(record):
            raise NotFound("recall", recall_id, tenant_id=self.tenant_id)
        return record

    def affected_batches(self, recall_id: int) -> list[AffectedBatchRecord]:
        return [a for a in self._affected if a.recall_id == recall_id]
