"""
DispatchRecord model.

DispatchRecord = Edge: a stock batch shipped to a customer. Terminal in the
lineage graph.
"""

import logging
from datetime import date
from decimal import Decimal

from django.db import models, transaction
from django.utils.translation import gettext_lazy as _

from genealogist.exceptions import GenealogyError

logger = logging.getLogger(__name__)


class DispatchRecord(models.Model):
    """
    Shipment of a quantity of a stock batch to a customer.

    customer_id is the registered customer, when known. customer_name is
    always stored; free-text names are never merged with registered ids.
    """

    tenant_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_("Tenant"),
    )

    stock_batch = models.ForeignKey(
        "genealogist.StockBatch",
        on_delete=models.PROTECT,
        related_name="dispatches",
        verbose_name=_("Stock batch"),
    )

    customer_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_("Customer ID"),
    )
    customer_name = models.CharField(
        max_length=200,
        verbose_name=_("Customer name"),
    )

    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_("Quantity"),
    )
    unit = models.CharField(max_length=20, blank=True, verbose_name=_("Unit"))

    dispatch_date = models.DateField(
        default=date.today,
        db_index=True,
        verbose_name=_("Dispatch date"),
    )
    delivery_note_reference = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_("Delivery note"),
    )

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))

    class Meta:
        db_table = "genealogist_dispatch_record"
        verbose_name = _("Dispatch record")
        verbose_name_plural = _("Dispatch records")
        ordering = ["-dispatch_date", "-pk"]
        indexes = [
            models.Index(fields=["stock_batch", "dispatch_date"], name="genealogist_dr_batch_date"),
        ]

    def __str__(self) -> str:
        return f"{self.stock_batch_id} → {self.customer_name} x {self.quantity}"

    def delete(self, *args, **kwargs):
        raise GenealogyError("APPEND_ONLY", model="DispatchRecord", pk=self.pk)

    @property
    def customer_key(self) -> str:
        return str(self.customer_id) if self.customer_id else self.customer_name

    @classmethod
    def record(
        cls,
        stock_batch,
        customer_name: str,
        quantity: Decimal | int | float,
        dispatch_date: date | None = None,
        customer_id: str | None = None,
        delivery_note_reference: str = "",
        consume: bool = True,
    ) -> "DispatchRecord":
        """
        Record a dispatch, decrementing the batch unless consume=False.

        Raises:
            GenealogyError: INVALID_QUANTITY, INVALID_STATUS or
                INSUFFICIENT_QUANTITY from the stock batch
        """
        from genealogist.models.stock_batch import StockBatch

        if not isinstance(quantity, Decimal):
            quantity = Decimal(str(quantity))
        if quantity <= 0:
            raise GenealogyError("INVALID_QUANTITY", quantity=str(quantity))

        customer_name = (customer_name or "").strip()
        if not customer_name:
            raise GenealogyError("CUSTOMER_REQUIRED", stock_batch=stock_batch.batch_code)

        with transaction.atomic():
            source = StockBatch.objects.select_for_update().get(pk=stock_batch.pk)
            if consume:
                source.consume(quantity)

            dispatch = cls.objects.create(
                tenant_id=source.tenant_id,
                stock_batch=source,
                customer_id=customer_id or None,
                customer_name=customer_name,
                quantity=quantity,
                unit=source.unit,
                dispatch_date=dispatch_date or date.today(),
                delivery_note_reference=delivery_note_reference,
            )

        stock_batch.refresh_from_db()

        logger.info(
            f"Dispatched {quantity} {source.unit} of {source.batch_code} to {customer_name}",
            extra={
                "dispatch": dispatch.pk,
                "stock_batch": source.pk,
                "customer_id": customer_id,
                "quantity": float(quantity),
            },
        )

        from genealogist.signals import batch_dispatched

        batch_dispatched.send(sender=cls, dispatch=dispatch)
        return dispatch
