"""
Genealogist Signals.

Lifecycle events of the lineage ledger, for integrations (stock, notifying
customers, dashboards) to hook into without coupling.

Signals:
    production_completed: Production batch finished, allergens finalized
    batch_dispatched: Stock batch shipped to a customer
    recall_activated: Recall went live, affected batches must be held
    recall_closed: Recall closed, affected-batch set frozen
"""

from django.dispatch import Signal

# Sent by ProductionBatch.complete()
# Args: production_batch, outputs (list of StockBatch)
production_completed = Signal()

# Sent by DispatchRecord.record()
# Args: dispatch
batch_dispatched = Signal()

# Sent by Recall.activate()
# Args: recall
recall_activated = Signal()

# Sent by Recall.close()
# Args: recall
recall_closed = Signal()

__all__ = ["production_completed", "batch_dispatched", "recall_activated", "recall_closed"]
