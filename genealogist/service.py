"""
Genealogist Service - Thin wrapper over models and services.

✅ LIFECYCLE LOGIC LIVES IN THE MODELS
This class is a thin wrapper for convenience: one import for the common
operations of a recall workflow.

Usage:
    from genealogist import genealogy

    flour = genealogy.receive_batch("bakery", 25, allergens=["gluten"])

    run = genealogy.create_production_batch("bakery", recipe=sourdough)
    run.add_input(flour, 10)
    bread = run.add_output(8, unit="kg")
    run.complete()

    genealogy.dispatch(bread, "Acme Cafe", 5)

    recall = genealogy.open_recall("bakery", "Undeclared sesame", affected=[flour])
    report = genealogy.report(recall)
"""

from datetime import date
from decimal import Decimal
from typing import Iterable

from django.utils import timezone

from genealogist.conf import get_genealogy_store
from genealogist.exceptions import NotFound
from genealogist.models import (
    DispatchRecord,
    ProductionBatch,
    Recall,
    StockBatch,
)
from genealogist.results import BackwardTrace, LineageTrace, RecallReport, YieldBalance
from genealogist.services.lineage import LineageResolver
from genealogist.services.mass_balance import production_yield
from genealogist.services.reports import build_recall_report


def _pk(obj) -> int:
    return obj if isinstance(obj, int) else obj.pk


class Genealogy:
    """
    Main API for Genealogist (thin wrapper).

    Read operations take model instances or ids. Tenant scoping follows
    the instance when one is given, else the tenant_id argument.
    """

    # ══════════════════════════════════════════════════════════════
    # LEDGER
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def receive_batch(
        cls,
        tenant_id: str,
        quantity: Decimal | int | float,
        received_on: date | None = None,
        **kwargs,
    ) -> StockBatch:
        """
        Record a purchased stock batch. See StockBatch.receive.

        Example:
            genealogy.receive_batch("bakery", 25, supplier_batch_code="L8812")
        """
        return StockBatch.receive(
            tenant_id=tenant_id,
            quantity=quantity,
            received_on=received_on or timezone.now().date(),
            **kwargs,
        )

    @classmethod
    def create_production_batch(
        cls,
        tenant_id: str,
        production_date: date | None = None,
        recipe=None,
        **kwargs,
    ) -> ProductionBatch:
        """Plan a production run. See ProductionBatch.plan."""
        return ProductionBatch.plan(
            tenant_id=tenant_id,
            production_date=production_date or timezone.now().date(),
            recipe=recipe,
            **kwargs,
        )

    @classmethod
    def dispatch(
        cls,
        stock_batch: StockBatch,
        customer_name: str,
        quantity: Decimal | int | float,
        **kwargs,
    ) -> DispatchRecord:
        """Ship a quantity of a stock batch. See DispatchRecord.record."""
        return DispatchRecord.record(stock_batch, customer_name, quantity, **kwargs)

    @classmethod
    def open_recall(
        cls,
        tenant_id: str,
        title: str,
        affected: Iterable[StockBatch] = (),
        **kwargs,
    ) -> Recall:
        """
        Open a DRAFT recall and curate its affected batches.

        Args:
            tenant_id: Tenant
            title: Short description
            affected: Stock batches to add to the recall
            **kwargs: Passed to Recall.open (recall_code, severity, reason, ...)
        """
        recall = Recall.open(tenant_id, title, **kwargs)
        for stock_batch in affected:
            recall.add_affected_batch(stock_batch)
        return recall

    @classmethod
    def get_batch(cls, tenant_id: str, batch_code: str) -> StockBatch:
        """Stock batch by code. Raises NotFound."""
        try:
            return StockBatch.objects.get(tenant_id=tenant_id, batch_code=batch_code)
        except StockBatch.DoesNotExist:
            raise NotFound("stock_batch", batch_code, tenant_id=tenant_id)

    # ══════════════════════════════════════════════════════════════
    # TRACING
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def trace(
        cls,
        stock_batches: Iterable,
        tenant_id: str | None = None,
        cancel=None,
    ) -> LineageTrace:
        """
        Forward trace from stock batches (instances or ids) to customers.

        Without tenant_id, the tenant of the first instance scopes the trace.

        Example:
            trace = genealogy.trace([flour])
            trace.customer("Acme Cafe").total_quantity
        """
        stock_batches = list(stock_batches)
        if tenant_id is None:
            tenant_id = next(
                (b.tenant_id for b in stock_batches if isinstance(b, StockBatch)), None
            )
        resolver = LineageResolver(get_genealogy_store(tenant_id))
        return resolver.trace([_pk(b) for b in stock_batches], cancel=cancel)

    @classmethod
    def trace_backward(
        cls,
        stock_batch,
        tenant_id: str | None = None,
        cancel=None,
    ) -> BackwardTrace:
        """Backward trace from a stock batch to its source batches."""
        if tenant_id is None and isinstance(stock_batch, StockBatch):
            tenant_id = stock_batch.tenant_id
        resolver = LineageResolver(get_genealogy_store(tenant_id))
        return resolver.trace_backward(_pk(stock_batch), cancel=cancel)

    @classmethod
    def production_yield(cls, production_batch, tenant_id: str | None = None) -> YieldBalance:
        """Input vs output quantities of a production run."""
        if tenant_id is None and isinstance(production_batch, ProductionBatch):
            tenant_id = production_batch.tenant_id
        return production_yield(get_genealogy_store(tenant_id), _pk(production_batch))

    @classmethod
    def report(cls, recall, tenant_id: str | None = None, cancel=None) -> RecallReport:
        """
        Build the recall report. Never cached.

        Raises:
            NotFound: If the recall does not exist (in the tenant, when given)
        """
        if tenant_id is None and isinstance(recall, Recall):
            tenant_id = recall.tenant_id
        return build_recall_report(
            _pk(recall), store=get_genealogy_store(tenant_id), cancel=cancel
        )


# Alias for convenience
genealogy = Genealogy
