"""
ProductionBatch model and its lineage edges.

ProductionBatch = One manufacturing run.
ProductionBatchInput = Edge: the run consumed a stock batch.
ProductionBatchOutput = Edge: the run yielded a new stock batch.

✅ BUSINESS LOGIC ENCAPSULATED IN MODEL

Edges are append-only. Their stock batch reference carries no database
constraint, so a reference that does not resolve is kept and reported by
the genealogy store instead of silently vanishing.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal

from django.db import models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from genealogist.exceptions import GenealogyError
from genealogist.protocols.genealogy import normalize_tags

logger = logging.getLogger(__name__)


class ProductionBatchStatus(models.TextChoices):
    """ProductionBatch lifecycle status."""

    PLANNED = "planned", _("Planned")
    IN_PROGRESS = "in_progress", _("In progress")
    COMPLETED = "completed", _("Completed")
    CANCELLED = "cancelled", _("Cancelled")


OPEN_STATUSES = (ProductionBatchStatus.PLANNED, ProductionBatchStatus.IN_PROGRESS)


class ProductionBatch(models.Model):
    """
    Production run with lineage tracking.

    Status: PLANNED → IN_PROGRESS → COMPLETED
                 ↘            ↘
                   CANCELLED

    allergens / may_contain_allergens are finalized at completion from the
    recipe, the batch's own declarations and every consumed input batch.
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

    recipe = models.ForeignKey(
        "genealogist.Recipe",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="production_batches",
        verbose_name=_("Recipe"),
    )

    production_date = models.DateField(
        default=date.today,
        db_index=True,
        verbose_name=_("Production date"),
    )

    status = models.CharField(
        max_length=20,
        choices=ProductionBatchStatus.choices,
        default=ProductionBatchStatus.PLANNED,
        db_index=True,
        verbose_name=_("Status"),
    )

    planned_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_("Planned quantity"),
    )
    actual_quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_("Actual quantity"),
    )
    unit = models.CharField(
        max_length=20,
        blank=True,
        verbose_name=_("Unit"),
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

    started_at = models.DateTimeField(null=True, blank=True, verbose_name=_("started at"))
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name=_("completed at"))

    notes = models.TextField(blank=True, verbose_name=_("Notes"))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_("Metadata"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("updated at"))

    history = HistoricalRecords()

    class Meta:
        db_table = "genealogist_production_batch"
        verbose_name = _("Production batch")
        verbose_name_plural = _("Production batches")
        ordering = ["-production_date", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "batch_code"],
                name="genealogist_production_batch_code_uniq",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "status"], name="genealogist_pb_tenant_status"),
        ]

    def __str__(self) -> str:
        return self.batch_code

    def delete(self, *args, **kwargs):
        raise GenealogyError("APPEND_ONLY", model="ProductionBatch", batch_code=self.batch_code)

    # ══════════════════════════════════════════════════════════════
    # BUSINESS LOGIC (encapsulated in model!)
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def plan(
        cls,
        tenant_id: str,
        production_date: date,
        recipe=None,
        planned_quantity: Decimal | int | float | None = None,
        unit: str = "",
        batch_code: str | None = None,
        site: str | None = None,
        **fields,
    ) -> "ProductionBatch":
        """
        Create a PLANNED production batch with an allocated code.

        Raises:
            DuplicateBatchCode: If batch_code is given and already exists
            AllocationExhausted: If code allocation kept colliding
        """
        from genealogist.services.allocation import production_batch_allocator

        if planned_quantity is not None and not isinstance(planned_quantity, Decimal):
            planned_quantity = Decimal(str(planned_quantity))

        def create(code: str) -> "ProductionBatch":
            return cls.objects.create(
                tenant_id=tenant_id,
                batch_code=code,
                production_date=production_date,
                recipe=recipe,
                planned_quantity=planned_quantity,
                unit=unit,
                **fields,
            )

        allocator = production_batch_allocator()
        if batch_code:
            allocation = allocator.claim(tenant_id, batch_code, create)
        else:
            allocation = allocator.allocate(tenant_id, production_date, create, site=site)

        batch = allocation.instance
        logger.info(
            f"ProductionBatch {batch.batch_code} planned",
            extra={
                "production_batch": batch.pk,
                "tenant_id": tenant_id,
                "production_date": str(production_date),
            },
        )
        return batch

    def _require_open(self, action: str):
        if self.status not in OPEN_STATUSES:
            raise GenealogyError(
                "INVALID_STATUS",
                batch_code=self.batch_code,
                action=action,
                current=self.status,
                expected=[s.value for s in OPEN_STATUSES],
            )

    def start(self):
        """Move PLANNED → IN_PROGRESS."""
        if self.status != ProductionBatchStatus.PLANNED:
            raise GenealogyError(
                "INVALID_STATUS",
                batch_code=self.batch_code,
                current=self.status,
                expected=ProductionBatchStatus.PLANNED,
            )

        self.status = ProductionBatchStatus.IN_PROGRESS
        self.started_at = timezone.now()
        self.save(update_fields=["status", "started_at", "updated_at"])

        logger.info(f"ProductionBatch {self.batch_code} started")

    def add_input(
        self,
        stock_batch,
        quantity: Decimal | int | float,
        is_rework: bool = False,
    ) -> "ProductionBatchInput":
        """
        Record that this run consumed quantity from a stock batch.

        Starts the batch if still PLANNED. Decrements the stock batch.
        """
        from genealogist.models.stock_batch import StockBatch

        if not isinstance(quantity, Decimal):
            quantity = Decimal(str(quantity))

        self._require_open("add_input")

        with transaction.atomic():
            # Lock the source row so concurrent consumers see each other
            source = StockBatch.objects.select_for_update().get(pk=stock_batch.pk)
            source.consume(quantity)

            if self.status == ProductionBatchStatus.PLANNED:
                self.start()

            edge = ProductionBatchInput.objects.create(
                production_batch=self,
                stock_batch_id=source.pk,
                quantity=quantity,
                unit=source.unit,
                is_rework=is_rework,
            )

        stock_batch.refresh_from_db()

        logger.info(
            f"ProductionBatch {self.batch_code}: input {source.batch_code} x {quantity}",
            extra={
                "production_batch": self.pk,
                "stock_batch": source.pk,
                "quantity": float(quantity),
                "is_rework": is_rework,
            },
        )
        return edge

    def add_output(
        self,
        quantity: Decimal | int | float,
        unit: str | None = None,
        batch_code: str | None = None,
        site: str | None = None,
        item=None,
        **fields,
    ):
        """
        Record a stock batch yielded by this run.

        The new batch inherits the allergens aggregated so far; they are
        re-stamped with the final sets at completion.

        Returns:
            The created StockBatch
        """
        from genealogist.models.stock_batch import StockBatch

        self._require_open("add_output")
        preview = self.aggregate_allergens()

        with transaction.atomic():
            output = StockBatch.receive(
                tenant_id=self.tenant_id,
                quantity=quantity,
                received_on=self.production_date,
                unit=unit or self.unit or "kg",
                batch_code=batch_code,
                site=site,
                item=item,
                allergens=list(preview.allergens),
                may_contain_allergens=list(preview.may_contain),
                production_batch=self,
                **fields,
            )
            ProductionBatchOutput.objects.create(
                production_batch=self,
                stock_batch_id=output.pk,
            )

        logger.info(
            f"ProductionBatch {self.batch_code}: output {output.batch_code} x {output.quantity_received}",
            extra={
                "production_batch": self.pk,
                "stock_batch": output.pk,
                "quantity": float(output.quantity_received),
            },
        )
        return output

    def input_stock_batches(self):
        """Resolvable stock batches consumed by this run."""
        from genealogist.models.stock_batch import StockBatch

        ids = self.inputs.values_list("stock_batch_id", flat=True)
        return StockBatch.objects.filter(pk__in=list(ids)).order_by("pk")

    def output_stock_batches(self):
        """Resolvable stock batches produced by this run."""
        from genealogist.models.stock_batch import StockBatch

        ids = self.outputs.values_list("stock_batch_id", flat=True)
        return StockBatch.objects.filter(pk__in=list(ids)).order_by("pk")

    def aggregate_allergens(self):
        """Recipe ∪ own ∪ inputs, as an AllergenSummary."""
        from genealogist.services.allergens import finalize_production_allergens

        return finalize_production_allergens(
            self.allergens,
            self.may_contain_allergens,
            self.input_stock_batches(),
            recipe=self.recipe,
        )

    def complete(self, actual_quantity: Decimal | int | float | None = None):
        """
        Finalize production.

        Behavior:
            - Marks as 'completed'
            - actual_quantity defaults to the sum of outputs, else planned
            - Finalizes allergens and re-stamps output batches
            - Emits signal 'production_completed'
        """
        if self.status != ProductionBatchStatus.IN_PROGRESS:
            raise GenealogyError(
                "INVALID_STATUS",
                batch_code=self.batch_code,
                current=self.status,
                expected=ProductionBatchStatus.IN_PROGRESS,
            )

        outputs = list(self.output_stock_batches())

        if actual_quantity is not None:
            if not isinstance(actual_quantity, Decimal):
                actual_quantity = Decimal(str(actual_quantity))
        elif outputs:
            actual_quantity = sum((o.quantity_received for o in outputs), Decimal("0"))
        else:
            actual_quantity = self.planned_quantity

        final = self.aggregate_allergens()

        with transaction.atomic():
            self.status = ProductionBatchStatus.COMPLETED
            self.actual_quantity = actual_quantity
            self.completed_at = timezone.now()
            self.allergens = list(final.allergens)
            self.may_contain_allergens = list(final.may_contain)
            self.save(
                update_fields=[
                    "status",
                    "actual_quantity",
                    "completed_at",
                    "allergens",
                    "may_contain_allergens",
                    "updated_at",
                ]
            )

            for output in outputs:
                output.allergens = sorted(normalize_tags(output.allergens) | set(final.allergens))
                output.may_contain_allergens = sorted(
                    normalize_tags(output.may_contain_allergens) | set(final.may_contain)
                )
                output.save(update_fields=["allergens", "may_contain_allergens", "updated_at"])

        logger.info(
            f"ProductionBatch {self.batch_code} completed: {actual_quantity} {self.unit}",
            extra={
                "production_batch": self.pk,
                "batch_code": self.batch_code,
                "actual_quantity": float(actual_quantity) if actual_quantity is not None else None,
                "allergens": list(final.allergens),
            },
        )

        from genealogist.signals import production_completed

        production_completed.send(
            sender=self.__class__,
            production_batch=self,
            outputs=outputs,
        )

    def cancel(self, reason: str = ""):
        """Cancel the run. Recorded inputs and outputs stay in the lineage."""
        self._require_open("cancel")

        self.status = ProductionBatchStatus.CANCELLED
        if reason:
            self.notes = f"{self.notes}\n[CANCELLED] {reason}".strip()

        self.save(update_fields=["status", "notes", "updated_at"])
        logger.info(f"ProductionBatch {self.batch_code} cancelled: {reason}")

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def is_finalized(self) -> bool:
        return self.status == ProductionBatchStatus.COMPLETED

    @property
    def yield_percentage(self) -> Decimal | None:
        """actual / planned × 100."""
        if self.actual_quantity is not None and self.planned_quantity:
            return (self.actual_quantity / self.planned_quantity * 100).quantize(Decimal("0.01"))
        return None


class ProductionBatchInput(models.Model):
    """Edge: production batch consumed a stock batch."""

    production_batch = models.ForeignKey(
        ProductionBatch,
        on_delete=models.PROTECT,
        related_name="inputs",
        verbose_name=_("Production batch"),
    )
    stock_batch = models.ForeignKey(
        "genealogist.StockBatch",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="consumed_by",
        verbose_name=_("Stock batch"),
    )
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        verbose_name=_("Quantity consumed"),
    )
    unit = models.CharField(max_length=20, blank=True, verbose_name=_("Unit"))
    is_rework = models.BooleanField(default=False, verbose_name=_("Rework"))
    added_at = models.DateTimeField(auto_now_add=True, verbose_name=_("added at"))

    class Meta:
        db_table = "genealogist_production_batch_input"
        verbose_name = _("Production input")
        verbose_name_plural = _("Production inputs")
        ordering = ["pk"]

    def __str__(self) -> str:
        return f"{self.production_batch_id} ← {self.stock_batch_id} x {self.quantity}"

    def delete(self, *args, **kwargs):
        raise GenealogyError("APPEND_ONLY", model="ProductionBatchInput", pk=self.pk)


class ProductionBatchOutput(models.Model):
    """Edge: production batch yielded a stock batch."""

    production_batch = models.ForeignKey(
        ProductionBatch,
        on_delete=models.PROTECT,
        related_name="outputs",
        verbose_name=_("Production batch"),
    )
    stock_batch = models.ForeignKey(
        "genealogist.StockBatch",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="produced_by",
        verbose_name=_("Stock batch"),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))

    class Meta:
        db_table = "genealogist_production_batch_output"
        verbose_name = _("Production output")
        verbose_name_plural = _("Production outputs")
        ordering = ["pk"]
        constraints = [
            models.UniqueConstraint(
                fields=["production_batch", "stock_batch"],
                name="genealogist_production_output_uniq",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.production_batch_id} → {self.stock_batch_id}"

    def delete(self, *args, **kwargs):
        raise GenealogyError("APPEND_ONLY", model="ProductionBatchOutput", pk=self.pk)
