"""
Lineage resolver.

Walks the batch lineage graph breadth-first:

    forward:  stock batch → consuming production batch → output stock batch
              → ... → dispatch (customer)
    backward: stock batch → producing production batch → input stock batch
              → ... → source batch

Visited sets are local to each call, so cycles terminate and every
production batch is expanded at most once. Edges whose stock batch does not
resolve are skipped, logged and returned as SkippedEdge so an auditor sees
an incomplete trace as incomplete.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from genealogist.exceptions import NotFound, TraceCancelled
from genealogist.protocols.genealogy import (
    DispatchEdge,
    GenealogyStore,
    SkippedEdge,
    StockBatchRecord,
)
from genealogist.results import BackwardTrace, DispatchLine, LineageTrace, TracedCustomer

logger = logging.getLogger(__name__)


def _cancel_check(cancel):
    """
    Normalize a cancellation signal into a zero-argument check.

    cancel may be None, an object with is_set() (threading.Event) or a
    callable returning True once the trace should stop.
    """
    if cancel is None:
        return lambda: None

    probe = cancel.is_set if hasattr(cancel, "is_set") else cancel

    def check():
        if probe():
            raise TraceCancelled()

    return check


class LineageResolver:
    """
    Forward and backward tracing over a GenealogyStore.

    Usage:
        resolver = LineageResolver(get_genealogy_store(tenant_id))
        trace = resolver.trace([flour.pk])
        for customer in trace.customers:
            print(customer.customer_name, customer.total_quantity)
    """

    def __init__(self, store: GenealogyStore):
        self.store = store

    def _skip(self, edge: SkippedEdge, skipped: list[SkippedEdge]):
        logger.warning(
            f"Skipping {edge.kind} edge to unresolved stock batch {edge.stock_batch_id}",
            extra=edge.as_dict(),
        )
        skipped.append(edge)

    def _check_inputs(self, production_batch_id: int, skipped: list[SkippedEdge]):
        """Flag consumed stock batches of a production batch that do not resolve."""
        edges = self.store.inputs_of(production_batch_id)
        if not edges:
            return edges, {}
        resolved = self.store.stock_batches(e.stock_batch_id for e in edges)
        for edge in edges:
            if edge.stock_batch_id not in resolved:
                self._skip(
                    SkippedEdge(
                        kind="input",
                        stock_batch_id=edge.stock_batch_id,
                        production_batch_id=production_batch_id,
                    ),
                    skipped,
                )
        return edges, resolved

    # ══════════════════════════════════════════════════════════════
    # FORWARD
    # ══════════════════════════════════════════════════════════════

    def trace(self, start_ids: Iterable[int], cancel=None) -> LineageTrace:
        """
        Every dispatch reachable from the given stock batches.

        Args:
            start_ids: Stock batch ids to start from (e.g. a recall's affected set)
            cancel: Optional threading.Event or callable; checked every iteration

        Returns:
            LineageTrace with customers sorted by name, then key

        Raises:
            TraceCancelled: If cancel fired before the queue drained
        """
        check = _cancel_check(cancel)
        start_ids = tuple(dict.fromkeys(start_ids))

        skipped: list[SkippedEdge] = []
        records: dict[int, StockBatchRecord] = dict(self.store.stock_batches(start_ids))
        for batch_id in start_ids:
            if batch_id not in records:
                self._skip(SkippedEdge(kind="start", stock_batch_id=batch_id), skipped)

        queue = deque(batch_id for batch_id in start_ids if batch_id in records)
        visited_stock: dict[int, None] = {}
        visited_production: dict[int, None] = {}
        customers: dict[str, dict] = {}

        while queue:
            check()
            batch_id = queue.popleft()
            if batch_id in visited_stock:
                continue
            visited_stock[batch_id] = None
            record = records[batch_id]

            for dispatch in self.store.dispatches_of(batch_id):
                self._record_dispatch(customers, dispatch, record)

            for production_batch_id in self.store.consuming_production_batches(batch_id):
                if production_batch_id in visited_production:
                    continue
                visited_production[production_batch_id] = None

                self._check_inputs(production_batch_id, skipped)

                outputs = self.store.outputs_of(production_batch_id)
                resolved = self.store.stock_batches(o.stock_batch_id for o in outputs)
                for output in outputs:
                    if output.stock_batch_id not in resolved:
                        self._skip(
                            SkippedEdge(
                                kind="output",
                                stock_batch_id=output.stock_batch_id,
                                production_batch_id=production_batch_id,
                            ),
                            skipped,
                        )
                        continue
                    records.setdefault(output.stock_batch_id, resolved[output.stock_batch_id])
                    if output.stock_batch_id not in visited_stock:
                        queue.append(output.stock_batch_id)

        traced = tuple(
            sorted(
                (
                    TracedCustomer(
                        key=key,
                        customer_id=entry["customer_id"],
                        customer_name=entry["customer_name"],
                        batches=tuple(entry["lines"]),
                    )
                    for key, entry in customers.items()
                ),
                key=lambda c: (c.customer_name, c.key),
            )
        )

        result = LineageTrace(
            start_ids=start_ids,
            customers=traced,
            visited_stock_batches=tuple(visited_stock),
            visited_production_batches=tuple(visited_production),
            batch_codes={i: records[i].batch_code for i in visited_stock},
            skipped_edges=tuple(skipped),
        )

        logger.info(
            f"Traced {len(start_ids)} batch(es): {len(traced)} customer(s), "
            f"{len(visited_stock)} stock batch(es), {len(skipped)} skipped edge(s)",
            extra={
                "start_ids": list(start_ids),
                "customers": len(traced),
                "skipped_edges": len(skipped),
            },
        )
        return result

    @staticmethod
    def _record_dispatch(customers: dict, dispatch: DispatchEdge, record: StockBatchRecord):
        key = dispatch.customer_key
        entry = customers.setdefault(
            key,
            {
                "customer_id": dispatch.customer_id,
                "customer_name": dispatch.customer_name,
                "lines": [],
            },
        )
        entry["lines"].append(
            DispatchLine(
                dispatch_id=dispatch.id,
                stock_batch_id=record.id,
                batch_code=record.batch_code,
                quantity=dispatch.quantity,
                unit=dispatch.unit or record.unit,
                dispatch_date=dispatch.dispatch_date,
                delivery_note_reference=dispatch.delivery_note_reference or "",
            )
        )

    # ══════════════════════════════════════════════════════════════
    # BACKWARD
    # ══════════════════════════════════════════════════════════════

    def trace_backward(self, stock_batch_id: int, cancel=None) -> BackwardTrace:
        """
        Every stock batch a batch was made from, down to its source batches.

        Raises:
            NotFound: If stock_batch_id does not resolve
            TraceCancelled: If cancel fired before the queue drained
        """
        check = _cancel_check(cancel)

        if stock_batch_id not in self.store.stock_batches([stock_batch_id]):
            raise NotFound("stock_batch", stock_batch_id)

        skipped: list[SkippedEdge] = []
        queue = deque([stock_batch_id])
        visited_stock: dict[int, None] = {}
        visited_production: dict[int, None] = {}
        sources: list[int] = []

        while queue:
            check()
            batch_id = queue.popleft()
            if batch_id in visited_stock:
                continue
            visited_stock[batch_id] = None

            producer = self.store.production_batch_producing(batch_id)
            if producer is None:
                sources.append(batch_id)
                continue
            if producer in visited_production:
                continue
            if producer not in self.store.production_batches([producer]):
                self._skip(
                    SkippedEdge(
                        kind="producer",
                        stock_batch_id=batch_id,
                        production_batch_id=producer,
                    ),
                    skipped,
                )
                continue
            visited_production[producer] = None

            edges, resolved = self._check_inputs(producer, skipped)
            for edge in edges:
                if edge.stock_batch_id in resolved and edge.stock_batch_id not in visited_stock:
                    queue.append(edge.stock_batch_id)

        return BackwardTrace(
            stock_batch_id=stock_batch_id,
            visited_stock_batches=tuple(visited_stock),
            visited_production_batches=tuple(visited_production),
            source_batches=tuple(sources),
            skipped_edges=tuple(skipped),
        )
