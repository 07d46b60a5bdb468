"""
Recall models.

Recall = A recall or withdrawal case.
RecallAffectedBatch = A stock batch curated onto a recall, with the
quantity recovered so far.

✅ BUSINESS LOGIC ENCAPSULATED IN MODEL

Status: DRAFT → ACTIVE → RESOLVED → CLOSED
           ↘        ↘
             CANCELLED

CLOSED and CANCELLED are terminal and freeze the affected-batch set. The
recall report can still be rebuilt for a frozen recall.
"""

import logging
import uuid
from datetime import timedelta
from decimal import Decimal

from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from genealogist.conf import get_setting
from genealogist.exceptions import GenealogyError

logger = logging.getLogger(__name__)


class RecallStatus(models.TextChoices):
    DRAFT = "draft", _("Draft")
    ACTIVE = "active", _("Active")
    RESOLVED = "resolved", _("Resolved")
    CLOSED = "closed", _("Closed")
    CANCELLED = "cancelled", _("Cancelled")


class RecallType(models.TextChoices):
    RECALL = "recall", _("Recall")
    WITHDRAWAL = "withdrawal", _("Withdrawal")


class RecallSeverity(models.TextChoices):
    CLASS_1 = "class_1", _("Class 1")
    CLASS_2 = "class_2", _("Class 2")
    CLASS_3 = "class_3", _("Class 3")


class BatchType(models.TextChoices):
    RAW_MATERIAL = "raw_material", _("Raw material")
    FINISHED_PRODUCT = "finished_product", _("Finished product")


class RecallAction(models.TextChoices):
    PENDING = "pending", _("Pending")
    QUARANTINED = "quarantined", _("Quarantined")
    DESTROYED = "destroyed", _("Destroyed")
    RETURNED = "returned", _("Returned")
    RELEASED = "released", _("Released")


TERMINAL_STATUSES = (RecallStatus.CLOSED, RecallStatus.CANCELLED)


class Recall(models.Model):
    """
    Recall case.

    Usage:
        recall = Recall.open("tenant-1", "Undeclared sesame in rye")
        recall.add_affected_batch(flour_batch)
        recall.activate()
        recall.record_recovery(bread_batch, 40)
        recall.resolve(root_cause="Supplier mislabelled sack")
        recall.close()
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

    recall_code = models.CharField(
        max_length=64,
        verbose_name=_("Recall code"),
    )
    title = models.CharField(max_length=200, verbose_name=_("Title"))

    recall_type = models.CharField(
        max_length=20,
        choices=RecallType.choices,
        default=RecallType.RECALL,
        verbose_name=_("Type"),
    )
    severity = models.CharField(
        max_length=20,
        choices=RecallSeverity.choices,
        default=RecallSeverity.CLASS_2,
        verbose_name=_("Severity"),
    )
    status = models.CharField(
        max_length=20,
        choices=RecallStatus.choices,
        default=RecallStatus.DRAFT,
        db_index=True,
        verbose_name=_("Status"),
    )

    reason = models.TextField(blank=True, verbose_name=_("Reason"))
    root_cause = models.TextField(blank=True, verbose_name=_("Root cause"))
    corrective_actions = models.TextField(blank=True, verbose_name=_("Corrective actions"))

    initiated_at = models.DateTimeField(default=timezone.now, verbose_name=_("initiated at"))
    fsa_notified_at = models.DateTimeField(null=True, blank=True, verbose_name=_("FSA notified at"))
    fsa_reference = models.CharField(max_length=100, blank=True, verbose_name=_("FSA reference"))
    salsa_notified_at = models.DateTimeField(
        null=True, blank=True, verbose_name=_("SALSA notified at")
    )
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name=_("resolved at"))
    closed_at = models.DateTimeField(null=True, blank=True, verbose_name=_("closed at"))

    notes = models.TextField(blank=True, verbose_name=_("Notes"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("updated at"))

    history = HistoricalRecords()

    class Meta:
        db_table = "genealogist_recall"
        verbose_name = _("Recall")
        verbose_name_plural = _("Recalls")
        ordering = ["-initiated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "recall_code"],
                name="genealogist_recall_code_uniq",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant_id", "status"], name="genealogist_rc_tenant_status"),
        ]

    def __str__(self) -> str:
        return f"{self.recall_code}: {self.title}"

    # ══════════════════════════════════════════════════════════════
    # BUSINESS LOGIC (encapsulated in model!)
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def open(
        cls,
        tenant_id: str,
        title: str,
        recall_code: str | None = None,
        recall_type: str = RecallType.RECALL,
        severity: str = RecallSeverity.CLASS_2,
        reason: str = "",
        **fields,
    ) -> "Recall":
        """
        Create a DRAFT recall. The code is allocated from RECALL_CODE_FORMAT
        unless given.
        """
        from genealogist.services.allocation import recall_allocator

        def create(code: str) -> "Recall":
            return cls.objects.create(
                tenant_id=tenant_id,
                recall_code=code,
                title=title,
                recall_type=recall_type,
                severity=severity,
                reason=reason,
                **fields,
            )

        allocator = recall_allocator()
        if recall_code:
            allocation = allocator.claim(tenant_id, recall_code, create)
        else:
            allocation = allocator.allocate(tenant_id, timezone.now().date(), create)

        recall = allocation.instance
        logger.info(
            f"Recall {recall.recall_code} opened: {title}",
            extra={"recall": recall.pk, "tenant_id": tenant_id, "severity": severity},
        )
        return recall

    def _require_status(self, *expected: str):
        if self.status not in expected:
            raise GenealogyError(
                "INVALID_STATUS",
                recall_code=self.recall_code,
                current=self.status,
                expected=list(expected),
            )

    @property
    def is_frozen(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def add_affected_batch(
        self,
        stock_batch,
        batch_type: str | None = None,
        quantity_affected: Decimal | int | float | None = None,
        notes: str = "",
    ) -> "RecallAffectedBatch":
        """
        Curate a stock batch onto this recall.

        batch_type defaults to finished_product for production outputs and
        raw_material otherwise. Adding a batch twice returns the existing row.

        Raises:
            GenealogyError: RECALL_FROZEN if the recall is closed or cancelled
        """
        if self.is_frozen:
            raise GenealogyError(
                "RECALL_FROZEN", recall_code=self.recall_code, status=self.status
            )

        if quantity_affected is not None and not isinstance(quantity_affected, Decimal):
            quantity_affected = Decimal(str(quantity_affected))

        if batch_type is None:
            batch_type = (
                BatchType.FINISHED_PRODUCT
                if stock_batch.production_batch_id
                else BatchType.RAW_MATERIAL
            )

        row, created = RecallAffectedBatch.objects.get_or_create(
            recall=self,
            stock_batch_id=stock_batch.pk,
            defaults={
                "batch_type": batch_type,
                "quantity_affected": quantity_affected,
                "notes": notes,
            },
        )

        if created:
            logger.info(
                f"Recall {self.recall_code}: added {stock_batch.batch_code}",
                extra={
                    "recall": self.pk,
                    "stock_batch": stock_batch.pk,
                    "batch_type": batch_type,
                },
            )
        return row

    def activate(self):
        """
        DRAFT → ACTIVE.

        Emits signal 'recall_activated'; the built-in handler marks the
        affected stock batches as recalled.
        """
        self._require_status(RecallStatus.DRAFT)

        if not self.affected.exists():
            raise GenealogyError("NO_AFFECTED_BATCHES", recall_code=self.recall_code)

        self.status = RecallStatus.ACTIVE
        self.save(update_fields=["status", "updated_at"])

        logger.info(
            f"Recall {self.recall_code} activated",
            extra={"recall": self.pk, "affected": self.affected.count()},
        )

        from genealogist.signals import recall_activated

        recall_activated.send(sender=self.__class__, recall=self)

    def resolve(self, root_cause: str | None = None, corrective_actions: str | None = None):
        """ACTIVE → RESOLVED. A root cause must be recorded."""
        self._require_status(RecallStatus.ACTIVE)

        if root_cause is not None:
            self.root_cause = root_cause
        if corrective_actions is not None:
            self.corrective_actions = corrective_actions

        if not (self.root_cause or "").strip():
            raise GenealogyError("ROOT_CAUSE_REQUIRED", recall_code=self.recall_code)

        self.status = RecallStatus.RESOLVED
        self.resolved_at = timezone.now()
        self.save(
            update_fields=[
                "status",
                "root_cause",
                "corrective_actions",
                "resolved_at",
                "updated_at",
            ]
        )
        logger.info(f"Recall {self.recall_code} resolved", extra={"recall": self.pk})

    def close(self):
        """RESOLVED → CLOSED. Terminal."""
        self._require_status(RecallStatus.RESOLVED)

        self.status = RecallStatus.CLOSED
        self.closed_at = timezone.now()
        self.save(update_fields=["status", "closed_at", "updated_at"])

        logger.info(f"Recall {self.recall_code} closed", extra={"recall": self.pk})

        from genealogist.signals import recall_closed

        recall_closed.send(sender=self.__class__, recall=self)

    def cancel(self, reason: str = ""):
        """DRAFT | ACTIVE → CANCELLED. Terminal."""
        self._require_status(RecallStatus.DRAFT, RecallStatus.ACTIVE)

        self.status = RecallStatus.CANCELLED
        if reason:
            self.notes = f"{self.notes}\n[CANCELLED] {reason}".strip()
        self.save(update_fields=["status", "notes", "updated_at"])

        logger.info(f"Recall {self.recall_code} cancelled: {reason}", extra={"recall": self.pk})

    def record_recovery(self, stock_batch, quantity: Decimal | int | float) -> "RecallAffectedBatch":
        """
        Add quantity to the recovered total of an affected batch.

        Raises:
            GenealogyError: RECALL_FROZEN once closed or cancelled,
                INVALID_QUANTITY, NOT_AFFECTED
        """
        if self.is_frozen:
            raise GenealogyError(
                "RECALL_FROZEN", recall_code=self.recall_code, status=self.status
            )

        if not isinstance(quantity, Decimal):
            quantity = Decimal(str(quantity))
        if quantity <= 0:
            raise GenealogyError("INVALID_QUANTITY", quantity=str(quantity))

        with transaction.atomic():
            updated = RecallAffectedBatch.objects.filter(
                recall=self, stock_batch_id=stock_batch.pk
            ).update(quantity_recovered=F("quantity_recovered") + quantity)
            if not updated:
                raise GenealogyError(
                    "NOT_AFFECTED",
                    recall_code=self.recall_code,
                    stock_batch=stock_batch.batch_code,
                )
            row = RecallAffectedBatch.objects.get(recall=self, stock_batch_id=stock_batch.pk)

        logger.info(
            f"Recall {self.recall_code}: recovered {quantity} of {stock_batch.batch_code}",
            extra={
                "recall": self.pk,
                "stock_batch": stock_batch.pk,
                "quantity": float(quantity),
                "total_recovered": float(row.quantity_recovered),
            },
        )
        return row

    def notify_fsa(self, reference: str = ""):
        """Stamp the Food Standards Agency notification."""
        self.fsa_notified_at = timezone.now()
        if reference:
            self.fsa_reference = reference
        self.save(update_fields=["fsa_notified_at", "fsa_reference", "updated_at"])
        logger.info(f"Recall {self.recall_code}: FSA notified", extra={"recall": self.pk})

    def notify_salsa(self):
        """Stamp the SALSA notification."""
        self.salsa_notified_at = timezone.now()
        self.save(update_fields=["salsa_notified_at", "updated_at"])
        logger.info(f"Recall {self.recall_code}: SALSA notified", extra={"recall": self.pk})

    @property
    def is_salsa_overdue(self) -> bool:
        """SALSA must hear about a live recall within SALSA_NOTIFICATION_DAYS."""
        if self.salsa_notified_at or self.status == RecallStatus.DRAFT:
            return False
        deadline = self.initiated_at + timedelta(days=get_setting("SALSA_NOTIFICATION_DAYS"))
        return timezone.now() > deadline


class RecallAffectedBatch(models.Model):
    """A stock batch on a recall, and what happened to it."""

    recall = models.ForeignKey(
        Recall,
        on_delete=models.PROTECT,
        related_name="affected",
        verbose_name=_("Recall"),
    )
    stock_batch = models.ForeignKey(
        "genealogist.StockBatch",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="recall_entries",
        verbose_name=_("Stock batch"),
    )
    batch_type = models.CharField(
        max_length=20,
        choices=BatchType.choices,
        default=BatchType.RAW_MATERIAL,
        verbose_name=_("Batch type"),
    )
    quantity_affected = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_("Quantity affected"),
    )
    quantity_recovered = models.DecimalField(
        max_digits=12,
        decimal_places=3,
        default=Decimal("0"),
        verbose_name=_("Quantity recovered"),
    )
    action_taken = models.CharField(
        max_length=20,
        choices=RecallAction.choices,
        default=RecallAction.PENDING,
        verbose_name=_("Action taken"),
    )
    notes = models.TextField(blank=True, verbose_name=_("Notes"))
    added_at = models.DateTimeField(auto_now_add=True, verbose_name=_("added at"))

    class Meta:
        db_table = "genealogist_recall_affected_batch"
        verbose_name = _("Affected batch")
        verbose_name_plural = _("Affected batches")
        ordering = ["added_at", "pk"]
        constraints = [
            models.UniqueConstraint(
                fields=["recall", "stock_batch"],
                name="genealogist_recall_affected_uniq",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.recall_id}: {self.stock_batch_id} ({self.action_taken})"

    def delete(self, *args, **kwargs):
        raise GenealogyError("APPEND_ONLY", model="RecallAffectedBatch", pk=self.pk)
