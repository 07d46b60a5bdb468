"""
Mass balance.

    unaccounted = total_produced - total_recovered

Never clamped: a negative value means more was recovered than recorded as
produced, which is itself something an auditor needs to see.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Mapping

from genealogist.protocols.genealogy import (
    AffectedBatchRecord,
    GenealogyStore,
    SkippedEdge,
    StockBatchRecord,
)
from genealogist.results import MassBalance, YieldBalance

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def reconcile(
    affected: Iterable[AffectedBatchRecord],
    stock_batches: Mapping[int, StockBatchRecord],
    recovered_by_batch: Mapping[int, Decimal] | None = None,
) -> MassBalance:
    """
    Mass balance of a recall's affected batches.

    Args:
        affected: Affected-batch rows
        stock_batches: Resolved stock batches by id. Rows whose batch is
            missing contribute only what they record themselves.
        recovered_by_batch: Recovered quantity per stock batch id; overrides
            the row's quantity_recovered when present

    Returns:
        MassBalance; total_produced uses quantity_affected when recorded,
        else the batch's quantity_received
    """
    recovered_by_batch = recovered_by_batch or {}
    produced = ZERO
    recovered = ZERO

    for row in affected:
        if row.quantity_affected is not None:
            produced += row.quantity_affected
        elif row.stock_batch_id in stock_batches:
            produced += stock_batches[row.stock_batch_id].quantity_received

        if row.stock_batch_id in recovered_by_batch:
            recovered += Decimal(str(recovered_by_batch[row.stock_batch_id]))
        else:
            recovered += row.quantity_recovered

    return MassBalance(
        total_produced=produced,
        total_recovered=recovered,
        unaccounted=produced - recovered,
    )


def production_yield(store: GenealogyStore, production_batch_id: int) -> YieldBalance:
    """
    Input vs output quantities of one production batch.

    Only edges whose stock batch resolves are counted; the rest are
    returned as skipped edges.
    """
    inputs = store.inputs_of(production_batch_id)
    outputs = store.outputs_of(production_batch_id)
    resolved = store.stock_batches(
        [e.stock_batch_id for e in inputs] + [e.stock_batch_id for e in outputs]
    )

    skipped: list[SkippedEdge] = []
    total_input = ZERO
    for edge in inputs:
        if edge.stock_batch_id in resolved:
            total_input += edge.quantity
        else:
            skipped.append(SkippedEdge("input", edge.stock_batch_id, production_batch_id))

    total_output = ZERO
    for edge in outputs:
        if edge.stock_batch_id in resolved:
            total_output += resolved[edge.stock_batch_id].quantity_received
        else:
            skipped.append(SkippedEdge("output", edge.stock_batch_id, production_batch_id))

    for edge in skipped:
        logger.warning(
            f"Yield of production batch {production_batch_id}: "
            f"skipped {edge.kind} edge to stock batch {edge.stock_batch_id}",
            extra=edge.as_dict(),
        )

    return YieldBalance(
        production_batch_id=production_batch_id,
        total_input=total_input,
        total_output=total_output,
        skipped_edges=tuple(skipped),
    )
