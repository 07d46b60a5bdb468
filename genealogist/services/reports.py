"""
Recall report assembly.

Pure composition over a GenealogyStore: load the recall and its curated
affected batches, trace them forward, aggregate allergens and reconcile the
mass balance. Nothing is written and nothing is cached; the lineage only
grows, so every call reflects the latest dispatches.
"""

from __future__ import annotations

import logging
from datetime import datetime

from genealogist.conf import get_genealogy_store
from genealogist.protocols.genealogy import GenealogyStore, SkippedEdge
from genealogist.results import AffectedBatchLine, RecallReport, TimelineEntry
from genealogist.services.allergens import summarize
from genealogist.services.lineage import LineageResolver
from genealogist.services.mass_balance import reconcile

logger = logging.getLogger(__name__)


def _timeline_key(entry: TimelineEntry):
    moment = entry.date
    if isinstance(moment, datetime):
        return (moment.date(), moment.time().isoformat(), entry.label)
    return (moment, "", entry.label)


def build_recall_report(
    recall_id: int,
    store: GenealogyStore | None = None,
    cancel=None,
) -> RecallReport:
    """
    Build the report of a recall.

    Args:
        recall_id: Recall to report on
        store: Genealogy store (defaults to the configured STORE_BACKEND)
        cancel: Optional cancellation signal passed to the lineage trace

    Raises:
        NotFound: If the recall does not exist
        TraceCancelled: If cancel fired during the trace
    """
    store = store if store is not None else get_genealogy_store()

    recall = store.recall(recall_id)
    affected = store.affected_batches(recall_id)
    batches = store.stock_batches(row.stock_batch_id for row in affected)

    skipped: list[SkippedEdge] = []
    lines: list[AffectedBatchLine] = []
    timeline: list[TimelineEntry] = [TimelineEntry("Recall initiated", recall.initiated_at)]

    for row in affected:
        batch = batches.get(row.stock_batch_id)
        if batch is None:
            edge = SkippedEdge(
                kind="affected", stock_batch_id=row.stock_batch_id, recall_id=recall_id
            )
            logger.warning(
                f"Recall {recall.recall_code}: affected stock batch "
                f"{row.stock_batch_id} does not resolve",
                extra=edge.as_dict(),
            )
            skipped.append(edge)
            continue

        lines.append(
            AffectedBatchLine(
                stock_batch_id=batch.id,
                batch_code=batch.batch_code,
                batch_type=row.batch_type,
                quantity_received=batch.quantity_received,
                quantity_affected=row.quantity_affected,
                quantity_recovered=row.quantity_recovered,
                unit=batch.unit,
                action_taken=row.action_taken,
                allergens=tuple(sorted(batch.allergens)),
                added_at=row.added_at,
            )
        )
        if row.added_at is not None:
            timeline.append(TimelineEntry(f"Batch {batch.batch_code} added", row.added_at))

    resolver = LineageResolver(store)
    trace = resolver.trace([line.stock_batch_id for line in lines], cancel=cancel)
    skipped.extend(trace.skipped_edges)

    for customer in trace.customers:
        for dispatch in customer.batches:
            timeline.append(
                TimelineEntry(
                    f"Dispatched {dispatch.batch_code} to {customer.customer_name}",
                    dispatch.dispatch_date,
                )
            )

    for label, moment in (
        ("FSA notified", recall.fsa_notified_at),
        ("SALSA notified", recall.salsa_notified_at),
        ("Recall resolved", recall.resolved_at),
        ("Recall closed", recall.closed_at),
    ):
        if moment is not None:
            timeline.append(TimelineEntry(label, moment))

    summary = summarize(batches[line.stock_batch_id] for line in lines)
    balance = reconcile(affected, batches)

    report = RecallReport(
        recall=recall,
        affected_batches=tuple(lines),
        traced_customers=trace.customers,
        allergen_summary=summary.allergens,
        may_contain_summary=summary.may_contain,
        mass_balance=balance,
        timeline=tuple(sorted(timeline, key=_timeline_key)),
        downstream_batches=trace.downstream_batch_codes,
        skipped_edges=tuple(skipped),
    )

    logger.info(
        f"Recall report {recall.recall_code}: {len(lines)} affected batch(es), "
        f"{len(trace.customers)} customer(s), unaccounted {balance.unaccounted}",
        extra={
            "recall": recall_id,
            "customers": len(trace.customers),
            "skipped_edges": report.skipped_edge_count,
        },
    )
    return report


__all__ = ["build_recall_report"]
