"""
StockBatch model.

StockBatch = A physically trackable quantity of one stock item, received
from a supplier or produced by a production run.

Rows are never deleted, only status-transitioned (append-only ledger).
"""

import logging
import uuid
from datetime import date
from decimal import Decimal

from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from genealogist.exceptions import GenealogyError
from genealogist.protocols.genealogy import normalize_tags

logger = logging.getLogger(__name__)


class StockBatchStatus(models.TextChoices):
    """StockBatch lifecycle status."""

    ACTIVE = "active", _("Active")
    EXHAUSTED = "exhausted", _("Exhausted")
    QUARANTINED = "quarantined", _("Quarantined")
    RECALLED = "recalled", _("Recalled")
    DISPOSED = "disposed", _("Disposed")


class StockBatch(models.Model):
    """
    Stock batch, uniquely identified within a tenant by batch_code.

    Status: ACTIVE → EXHAUSTED | QUARANTINED | RECALLED → DISPOSED

    production_batch is set when the batch is itself the output of a
    production run.
    """

    uuid = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        verbose_name=_("UUID"),
    )

    tenant_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_("Tenant"),
    )

    batch_code = models.CharField(
        max_length=64,
        verbose_name=_("Batch code"),
    )
    supplier_batch_code = models.CharField(
        max_length=64,
        blank=True,
        verbose_name=_("Supplier batch code"),
    )

    # Stock item (generic, any catalog model)
    item_type = models.ForeignKey(
        ContentType,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
        verbose_name=_("Item type"),
    )
    item_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_("Item ID"),
    )
    item = GenericForeignKey("item_type", "item_id")

    # Quantities
    quantity_received = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_("Quantity received"),
    )
    quantity_remaining = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_("Quantity remaining"),
    )
    unit = models.CharField(
        max_length=20,
        default="kg",
        verbose_name=_("Unit"),
    )

    status = models.CharField(
        max_length=20,
        choices=StockBatchStatus.choices,
        default=StockBatchStatus.ACTIVE,
        db_index=True,
        verbose_name=_("Status"),
    )

    allergens = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_("Allergens"),
    )
    may_contain_allergens = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_("May contain"),
    )

    # Lineage: set when this batch is a production output
    production_batch = models.ForeignKey(
        "genealogist.ProductionBatch",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="produced_stock_batches",
        verbose_name=_("Production batch"),
    )

    use_by_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_("Use by"),
    )
    best_before_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_("Best before"),
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_("Metadata"),
    )

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("updated at"))

    history = HistoricalRecords()

    class Meta:
        db_table = "genealogist_stock_batch"
        verbose_name = _("Stock batch")
        verbose_name_plural = _("Stock batches")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "batch_code"],
                name="genealogist_stock_batch_code_uniq",
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__lte=F("quantity_received")),
                name="genealogist_stock_batch_remaining_lte_received",
            ),
            models.CheckConstraint(
                condition=Q(quantity_remaining__gte=0),
                name="genealogist_stock_batch_remaining_gte_0",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "status"], name="genealogist_sb_tenant_status"),
        ]

    def __str__(self) -> str:
        return self.batch_code

    def delete(self, *args, **kwargs):
        raise GenealogyError("APPEND_ONLY", model="StockBatch", batch_code=self.batch_code)

    # ══════════════════════════════════════════════════════════════
    # BUSINESS LOGIC
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def receive(
        cls,
        tenant_id: str,
        quantity: Decimal | int | float,
        received_on: date,
        unit: str = "kg",
        batch_code: str | None = None,
        site: str | None = None,
        item=None,
        allergens: list[str] | None = None,
        may_contain_allergens: list[str] | None = None,
        **fields,
    ) -> "StockBatch":
        """
        Record a purchased batch on intake.

        The batch code is allocated from BATCH_CODE_FORMAT unless given.

        Raises:
            DuplicateBatchCode: If batch_code is given and already exists
            AllocationExhausted: If code allocation kept colliding
        """
        from genealogist.services.allocation import stock_batch_allocator

        if not isinstance(quantity, Decimal):
            quantity = Decimal(str(quantity))
        if quantity <= 0:
            raise GenealogyError("INVALID_QUANTITY", quantity=str(quantity))

        if item is not None:
            fields["item_type"] = ContentType.objects.get_for_model(item)
            fields["item_id"] = item.pk

        def create(code: str) -> "StockBatch":
            return cls.objects.create(
                tenant_id=tenant_id,
                batch_code=code,
                quantity_received=quantity,
                quantity_remaining=quantity,
                unit=unit,
                allergens=sorted(normalize_tags(allergens)),
                may_contain_allergens=sorted(normalize_tags(may_contain_allergens)),
                **fields,
            )

        allocator = stock_batch_allocator()
        if batch_code:
            allocation = allocator.claim(tenant_id, batch_code, create)
        else:
            allocation = allocator.allocate(tenant_id, received_on, create, site=site)

        return allocation.instance

    def consume(self, quantity: Decimal | int | float):
        """
        Decrement quantity_remaining.

        Moves the batch to EXHAUSTED when nothing is left.
        """
        if not isinstance(quantity, Decimal):
            quantity = Decimal(str(quantity))

        if quantity <= 0:
            raise GenealogyError("INVALID_QUANTITY", quantity=str(quantity))

        if self.status != StockBatchStatus.ACTIVE:
            raise GenealogyError(
                "INVALID_STATUS",
                batch_code=self.batch_code,
                current=self.status,
                expected=StockBatchStatus.ACTIVE,
            )

        if quantity > self.quantity_remaining:
            raise GenealogyError(
                "INSUFFICIENT_QUANTITY",
                batch_code=self.batch_code,
                required=str(quantity),
                available=str(self.quantity_remaining),
            )

        self.quantity_remaining -= quantity
        if self.quantity_remaining == 0:
            self.status = StockBatchStatus.EXHAUSTED

        self.save(update_fields=["quantity_remaining", "status", "updated_at"])

        logger.info(
            f"StockBatch {self.batch_code}: consumed {quantity} {self.unit}",
            extra={
                "stock_batch": self.pk,
                "batch_code": self.batch_code,
                "quantity": float(quantity),
                "remaining": float(self.quantity_remaining),
            },
        )

    def _transition(self, status: str):
        if self.status == StockBatchStatus.DISPOSED:
            raise GenealogyError(
                "INVALID_STATUS",
                batch_code=self.batch_code,
                current=self.status,
                target=status,
            )
        if self.status == status:
            return

        previous = self.status
        self.status = status
        self.save(update_fields=["status", "updated_at"])

        logger.info(
            f"StockBatch {self.batch_code}: {previous} → {status}",
            extra={"stock_batch": self.pk, "batch_code": self.batch_code},
        )

    def quarantine(self):
        """Hold the batch pending investigation."""
        self._transition(StockBatchStatus.QUARANTINED)

    def mark_recalled(self):
        """Mark the batch as subject to a recall."""
        self._transition(StockBatchStatus.RECALLED)

    def dispose(self):
        """Terminal: the batch was destroyed."""
        self._transition(StockBatchStatus.DISPOSED)
