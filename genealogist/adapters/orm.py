"""
ORM Genealogy Store.

Implements GenealogyStore over the genealogist Django models. Every value
leaving this module is a typed record from genealogist.protocols; no model
instance crosses the boundary.

Edge rows are returned as stored, even when the stock batch they reference
no longer resolves. Callers detect dangling edges by resolving ids through
stock_batches().
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


def stock_batch_record(batch) -> StockBatchRecord:
    return StockBatchRecord(
        id=batch.pk,
        batch_code=batch.batch_code,
        quantity_received=batch.quantity_received,
        quantity_remaining=batch.quantity_remaining,
        unit=batch.unit,
        status=batch.status,
        allergens=batch.allergens or (),
        may_contain_allergens=batch.may_contain_allergens or (),
        production_batch_id=batch.production_batch_id,
        tenant_id=batch.tenant_id,
    )


def production_batch_record(batch) -> ProductionBatchRecord:
    return ProductionBatchRecord(
        id=batch.pk,
        batch_code=batch.batch_code,
        status=batch.status,
        recipe_id=batch.recipe_id,
        production_date=batch.production_date,
        planned_quantity=batch.planned_quantity,
        actual_quantity=batch.actual_quantity,
        unit=batch.unit,
        allergens=batch.allergens or (),
        may_contain_allergens=batch.may_contain_allergens or (),
        completed_at=batch.completed_at,
    )


def recall_record(recall) -> RecallRecord:
    return RecallRecord(
        id=recall.pk,
        recall_code=recall.recall_code,
        status=recall.status,
        initiated_at=recall.initiated_at,
        title=recall.title,
        tenant_id=recall.tenant_id,
        root_cause=recall.root_cause,
        corrective_actions=recall.corrective_actions,
        fsa_notified_at=recall.fsa_notified_at,
        salsa_notified_at=recall.salsa_notified_at,
        resolved_at=recall.resolved_at,
        closed_at=recall.closed_at,
    )


class OrmGenealogyStore:
    """
    GenealogyStore backed by the Django ORM.

    Usage:
        from genealogist.conf import get_genealogy_store

        store = get_genealogy_store(tenant_id="bakery-1")
        store.inputs_of(production_batch_id)

    With tenant_id set, every query is restricted to that tenant; ids
    belonging to another tenant behave as if they did not exist.
    """

    def __init__(self, tenant_id: str | None = None):
        self.tenant_id = tenant_id

    def _scoped(self, queryset, lookup: str = "tenant_id"):
        if self.tenant_id is None:
            return queryset
        return queryset.filter(**{lookup: self.tenant_id})

    # ── Edges ──

    def inputs_of(self, production_batch_id: int) -> list[InputEdge]:
        from genealogist.models import ProductionBatchInput

        rows = self._scoped(
            ProductionBatchInput.objects.filter(production_batch_id=production_batch_id),
            "production_batch__tenant_id",
        ).order_by("pk")
        return [
            InputEdge(
                production_batch_id=row.production_batch_id,
                stock_batch_id=row.stock_batch_id,
                quantity=row.quantity,
                unit=row.unit,
                is_rework=row.is_rework,
            )
            for row in rows
        ]

    def outputs_of(self, production_batch_id: int) -> list[OutputEdge]:
        from genealogist.models import ProductionBatchOutput, StockBatch

        rows = self._scoped(
            ProductionBatchOutput.objects.filter(production_batch_id=production_batch_id),
            "production_batch__tenant_id",
        ).order_by("pk")
        stamped = self._scoped(
            StockBatch.objects.filter(production_batch_id=production_batch_id)
        ).order_by("pk").values_list("pk", flat=True)

        # StockBatch.production_batch is an output edge of its own
        ids = dict.fromkeys(row.stock_batch_id for row in rows)
        ids.update(dict.fromkeys(stamped))
        return [
            OutputEdge(production_batch_id=production_batch_id, stock_batch_id=stock_batch_id)
            for stock_batch_id in ids
        ]

    def production_batch_producing(self, stock_batch_id: int) -> int | None:
        from genealogist.models import ProductionBatchOutput, StockBatch

        producer = (
            self._scoped(
                ProductionBatchOutput.objects.filter(stock_batch_id=stock_batch_id),
                "production_batch__tenant_id",
            )
            .order_by("pk")
            .values_list("production_batch_id", flat=True)
            .first()
        )
        if producer is not None:
            return producer

        return (
            self._scoped(StockBatch.objects.filter(pk=stock_batch_id))
            .values_list("production_batch_id", flat=True)
            .first()
        )

    def dispatches_of(self, stock_batch_id: int) -> list[DispatchEdge]:
        from genealogist.models import DispatchRecord

        rows = self._scoped(
            DispatchRecord.objects.filter(stock_batch_id=stock_batch_id)
        ).order_by("pk")
        return [
            DispatchEdge(
                id=row.pk,
                stock_batch_id=row.stock_batch_id,
                customer_name=row.customer_name,
                quantity=row.quantity,
                dispatch_date=row.dispatch_date,
                customer_id=row.customer_id,
                unit=row.unit,
                delivery_note_reference=row.delivery_note_reference,
            )
            for row in rows
        ]

    def consuming_production_batches(self, stock_batch_id: int) -> list[int]:
        from genealogist.models import ProductionBatchInput

        ids = self._scoped(
            ProductionBatchInput.objects.filter(stock_batch_id=stock_batch_id),
            "production_batch__tenant_id",
        ).values_list("production_batch_id", flat=True)
        return sorted(set(ids))

    # ── Nodes ──

    def stock_batches(self, ids: Iterable[int]) -> dict[int, StockBatchRecord]:
        from genealogist.models import StockBatch

        ids = set(ids)
        if not ids:
            return {}
        rows = self._scoped(StockBatch.objects.filter(pk__in=ids))
        return {row.pk: stock_batch_record(row) for row in rows}

    def production_batches(self, ids: Iterable[int]) -> dict[int, ProductionBatchRecord]:
        from genealogist.models import ProductionBatch

        ids = set(ids)
        if not ids:
            return {}
        rows = self._scoped(ProductionBatch.objects.filter(pk__in=ids))
        return {row.pk: production_batch_record(row) for row in rows}

    def recall(self, recall_id: int) -> RecallRecord:
        from genealogist.models import Recall

        recall = self._scoped(Recall.objects.filter(pk=recall_id)).first()
        if recall is None:
            raise NotFound("recall", recall_id, tenant_id=self.tenant_id)
        return recall_record(recall)

    def affected_batches(self, recall_id: int) -> list[AffectedBatchRecord]:
        from genealogist.models import RecallAffectedBatch

        rows = self._scoped(
            RecallAffectedBatch.objects.filter(recall_id=recall_id),
            "recall__tenant_id",
        ).order_by("added_at", "pk")
        return [
            AffectedBatchRecord(
                recall_id=row.recall_id,
                stock_batch_id=row.stock_batch_id,
                quantity_affected=row.quantity_affected,
                quantity_recovered=row.quantity_recovered,
                batch_type=row.batch_type,
                action_taken=row.action_taken,
                added_at=row.added_at,
            )
            for row in rows
        ]
