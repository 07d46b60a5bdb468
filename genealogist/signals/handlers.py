"""
Genealogist Signal Handlers.

Built-in reactions to lifecycle signals.

This module is imported in apps.py to register handlers.
"""

import logging

from django.db import transaction
from django.dispatch import receiver

from genealogist.signals import recall_activated

logger = logging.getLogger(__name__)


@receiver(recall_activated)
def hold_affected_batches(sender, recall, **kwargs):
    """
    When a recall goes live, take its affected batches out of circulation.

    Every resolvable affected stock batch that is not disposed moves to
    RECALLED; affected rows still PENDING become QUARANTINED. Rows whose
    stock batch does not resolve are left untouched.
    """
    from genealogist.models import RecallAction, StockBatch, StockBatchStatus

    held = 0

    with transaction.atomic():
        for row in recall.affected.order_by("pk"):
            stock_batch = StockBatch.objects.filter(pk=row.stock_batch_id).first()
            if stock_batch is None:
                logger.warning(
                    f"Recall {recall.recall_code}: cannot hold missing stock batch "
                    f"{row.stock_batch_id}",
                    extra={"recall": recall.pk, "stock_batch_id": row.stock_batch_id},
                )
                continue

            if stock_batch.status != StockBatchStatus.DISPOSED:
                stock_batch.mark_recalled()
                held += 1

            if row.action_taken == RecallAction.PENDING:
                row.action_taken = RecallAction.QUARANTINED
                row.save(update_fields=["action_taken"])

    logger.info(
        f"Recall {recall.recall_code}: held {held} batch(es)",
        extra={"recall": recall.pk, "held": held},
    )
