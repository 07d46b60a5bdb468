"""
Tests for Genealogist signals and handlers (genealogist.signals).

Verifies that:
- Lifecycle methods emit their signals with the documented arguments
- hold_affected_batches takes a live recall's batches out of circulation
- Missing affected batches are logged and skipped, not fatal
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from genealogist.exceptions import GenealogyError
from genealogist.models import (
    DispatchRecord,
    ProductionBatch,
    Recall,
    RecallAction,
    RecallAffectedBatch,
    StockBatch,
    StockBatchStatus,
)
from genealogist.signals import (
    batch_dispatched,
    production_completed,
    recall_activated,
    recall_closed,
)
from genealogist.signals.handlers import hold_affected_batches

TENANT = "bakery"
DAY = date(2024, 1, 1)


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def flour(db):
    return StockBatch.receive(TENANT, 10, DAY, batch_code="FLR-001", allergens=["gluten"])


@pytest.fixture
def recall(flour):
    recall = Recall.open(TENANT, "Undeclared sesame")
    recall.add_affected_batch(flour)
    return recall


@pytest.fixture
def receiver():
    """Connect a mock to a signal for the duration of a test."""
    connected = []

    def connect(signal):
        mock = MagicMock()
        signal.connect(mock, weak=False)
        connected.append((signal, mock))
        return mock

    yield connect

    for signal, mock in connected:
        signal.disconnect(mock)


# ═══════════════════════════════════════════════════════════════════
# Signals
# ═══════════════════════════════════════════════════════════════════


class TestSignals:
    """Lifecycle methods emit signals."""

    def test_production_completed(self, flour, receiver):
        handler = receiver(production_completed)
        run = ProductionBatch.plan(TENANT, DAY)
        run.add_input(flour, 10)
        bread = run.add_output(8)

        run.complete()

        handler.assert_called_once()
        kwargs = handler.call_args.kwargs
        assert kwargs["sender"] is ProductionBatch
        assert kwargs["production_batch"] == run
        assert kwargs["outputs"] == [bread]

    def test_batch_dispatched(self, flour, receiver):
        handler = receiver(batch_dispatched)

        dispatch = DispatchRecord.record(flour, "Acme Cafe", 2)

        handler.assert_called_once()
        assert handler.call_args.kwargs["dispatch"] == dispatch

    def test_recall_activated(self, recall, receiver):
        handler = receiver(recall_activated)

        recall.activate()

        handler.assert_called_once()
        assert handler.call_args.kwargs["recall"] == recall

    def test_recall_closed(self, recall, receiver):
        handler = receiver(recall_closed)
        recall.activate()
        recall.resolve(root_cause="Mislabelled")

        recall.close()

        handler.assert_called_once()

    def test_failed_activation_sends_nothing(self, db, receiver):
        handler = receiver(recall_activated)
        recall = Recall.open(TENANT, "Empty")

        with pytest.raises(GenealogyError):
            recall.activate()

        handler.assert_not_called()


# ═══════════════════════════════════════════════════════════════════
# hold_affected_batches
# ═══════════════════════════════════════════════════════════════════


class TestHoldAffectedBatches:
    """Tests for the built-in recall_activated handler."""

    def test_activation_marks_batches_recalled(self, recall, flour):
        recall.activate()

        flour.refresh_from_db()
        assert flour.status == StockBatchStatus.RECALLED
        assert recall.affected.get().action_taken == RecallAction.QUARANTINED

    def test_exhausted_batch_marked_recalled(self, recall, flour):
        """Batches already used up are still flagged."""
        flour.consume(10)

        recall.activate()

        flour.refresh_from_db()
        assert flour.status == StockBatchStatus.RECALLED

    def test_disposed_batch_left_alone(self, recall, flour):
        flour.dispose()

        recall.activate()

        flour.refresh_from_db()
        assert flour.status == StockBatchStatus.DISPOSED

    def test_recorded_action_kept(self, recall):
        RecallAffectedBatch.objects.filter(recall=recall).update(action_taken=RecallAction.DESTROYED)

        recall.activate()

        assert recall.affected.get().action_taken == RecallAction.DESTROYED

    def test_missing_batch_skipped(self, recall, flour):
        RecallAffectedBatch.objects.create(recall=recall, stock_batch_id=999999)

        with patch("genealogist.signals.handlers.logger") as mock_logger:
            hold_affected_batches(sender=Recall, recall=recall)

        mock_logger.warning.assert_called_once()
        flour.refresh_from_db()
        assert flour.status == StockBatchStatus.RECALLED

    def test_other_batches_untouched(self, recall):
        other = StockBatch.receive(TENANT, Decimal("5"), DAY)

        recall.activate()

        other.refresh_from_db()
        assert other.status == StockBatchStatus.ACTIVE
