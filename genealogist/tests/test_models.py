"""
Tests for the lineage ledger models.

Verifies that:
- Stock batches are consumed, transitioned and never deleted
- Production runs record inputs and outputs through their lifecycle
- Dispatches decrement stock and require a customer
- Recalls follow DRAFT → ACTIVE → RESOLVED → CLOSED (or CANCELLED)
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from genealogist.exceptions import DuplicateBatchCode, GenealogyError, NotFound
from genealogist.models import (
    BatchType,
    DispatchRecord,
    ProductionBatch,
    ProductionBatchInput,
    ProductionBatchStatus,
    Recall,
    RecallStatus,
    StockBatch,
    StockBatchStatus,
)
from genealogist.service import Genealogy

TENANT = "bakery"
DAY = date(2024, 1, 1)


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def flour(db):
    return StockBatch.receive(TENANT, 10, DAY, batch_code="FLR-001", allergens=["gluten"])


@pytest.fixture
def bread(flour):
    run = ProductionBatch.plan(TENANT, DAY)
    run.add_input(flour, 10)
    bread = run.add_output(8, batch_code="BRD-001")
    run.complete()
    return bread


@pytest.fixture
def recall(flour):
    recall = Recall.open(TENANT, "Undeclared sesame")
    recall.add_affected_batch(flour)
    return recall


# ═══════════════════════════════════════════════════════════════════
# StockBatch
# ═══════════════════════════════════════════════════════════════════


class TestStockBatch:
    """Tests for StockBatch business logic."""

    def test_consume(self, flour):
        flour.consume(4)

        flour.refresh_from_db()
        assert flour.quantity_remaining == Decimal("6")
        assert flour.status == StockBatchStatus.ACTIVE

    def test_consume_all_exhausts(self, flour):
        flour.consume(10)

        assert flour.status == StockBatchStatus.EXHAUSTED

    def test_consume_more_than_remaining(self, flour):
        with pytest.raises(GenealogyError) as exc:
            flour.consume(11)

        assert exc.value.code == "INSUFFICIENT_QUANTITY"

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_consume_non_positive(self, flour, quantity):
        with pytest.raises(GenealogyError) as exc:
            flour.consume(quantity)

        assert exc.value.code == "INVALID_QUANTITY"

    def test_consume_quarantined(self, flour):
        flour.quarantine()

        with pytest.raises(GenealogyError) as exc:
            flour.consume(1)

        assert exc.value.code == "INVALID_STATUS"

    def test_disposed_is_terminal(self, flour):
        flour.dispose()

        with pytest.raises(GenealogyError) as exc:
            flour.mark_recalled()

        assert exc.value.code == "INVALID_STATUS"

    def test_receive_non_positive(self, db):
        with pytest.raises(GenealogyError) as exc:
            StockBatch.receive(TENANT, 0, DAY)

        assert exc.value.code == "INVALID_QUANTITY"

    def test_never_deleted(self, flour):
        with pytest.raises(GenealogyError) as exc:
            flour.delete()

        assert exc.value.code == "APPEND_ONLY"
        assert StockBatch.objects.filter(pk=flour.pk).exists()

    def test_history_recorded(self, flour):
        flour.quarantine()

        assert flour.history.count() == 2
        assert flour.history.first().status == StockBatchStatus.QUARANTINED

    def test_get_batch(self, flour):
        assert Genealogy.get_batch(TENANT, "FLR-001") == flour

        with pytest.raises(NotFound):
            Genealogy.get_batch("brewery", "FLR-001")


# ═══════════════════════════════════════════════════════════════════
# ProductionBatch
# ═══════════════════════════════════════════════════════════════════


class TestProductionBatch:
    """Tests for ProductionBatch lifecycle."""

    def test_plan(self, db):
        run = Genealogy.create_production_batch(TENANT, DAY, planned_quantity=20, unit="kg")

        assert run.status == ProductionBatchStatus.PLANNED
        assert run.planned_quantity == Decimal("20")
        assert run.batch_code == "PB-2024-0101-001"

    def test_add_input_starts_run(self, flour):
        run = ProductionBatch.plan(TENANT, DAY)

        edge = run.add_input(flour, 4)

        assert run.status == ProductionBatchStatus.IN_PROGRESS
        assert run.started_at is not None
        assert edge.quantity == Decimal("4")
        assert edge.unit == "kg"
        assert flour.quantity_remaining == Decimal("6")

    def test_failed_input_leaves_no_edge(self, flour):
        run = ProductionBatch.plan(TENANT, DAY)

        with pytest.raises(GenealogyError):
            run.add_input(flour, 50)

        assert not ProductionBatchInput.objects.filter(production_batch=run).exists()
        flour.refresh_from_db()
        assert flour.quantity_remaining == Decimal("10")

    def test_rework_input(self, flour, bread):
        run = ProductionBatch.plan(TENANT, DAY)

        edge = run.add_input(bread, 1, is_rework=True)

        assert edge.is_rework is True

    def test_output_is_linked(self, flour, bread):
        run = bread.production_batch

        assert list(run.output_stock_batches()) == [bread]
        assert list(run.input_stock_batches()) == [flour]
        assert run.outputs.get().stock_batch_id == bread.pk

    def test_complete_sums_outputs(self, bread):
        run = bread.production_batch

        assert run.status == ProductionBatchStatus.COMPLETED
        assert run.is_finalized
        assert run.actual_quantity == Decimal("8")
        assert run.completed_at is not None

    def test_complete_without_outputs_uses_planned(self, flour):
        run = ProductionBatch.plan(TENANT, DAY, planned_quantity=5)
        run.add_input(flour, 5)

        run.complete()

        assert run.actual_quantity == Decimal("5")

    def test_complete_planned_run(self, db):
        run = ProductionBatch.plan(TENANT, DAY)

        with pytest.raises(GenealogyError) as exc:
            run.complete()

        assert exc.value.code == "INVALID_STATUS"

    def test_no_inputs_after_completion(self, flour, bread):
        run = bread.production_batch
        salt = StockBatch.receive(TENANT, 1, DAY)

        with pytest.raises(GenealogyError) as exc:
            run.add_input(salt, 1)

        assert exc.value.code == "INVALID_STATUS"

    def test_cancel(self, flour):
        run = ProductionBatch.plan(TENANT, DAY)
        run.add_input(flour, 2)

        run.cancel("Oven failure")

        assert run.status == ProductionBatchStatus.CANCELLED
        assert "Oven failure" in run.notes
        # Lineage of a cancelled run is kept
        assert run.inputs.count() == 1

    def test_never_deleted(self, bread):
        with pytest.raises(GenealogyError) as exc:
            bread.production_batch.delete()

        assert exc.value.code == "APPEND_ONLY"


# ═══════════════════════════════════════════════════════════════════
# DispatchRecord
# ═══════════════════════════════════════════════════════════════════


class TestDispatchRecord:
    """Tests for DispatchRecord.record()."""

    def test_record_consumes(self, bread):
        dispatch = Genealogy.dispatch(bread, "Acme Cafe", 5, delivery_note_reference="DN-1")

        assert bread.quantity_remaining == Decimal("3")
        assert dispatch.unit == "kg"
        assert dispatch.tenant_id == TENANT
        assert dispatch.customer_key == "Acme Cafe"

    def test_record_without_consuming(self, bread):
        DispatchRecord.record(bread, "Acme Cafe", 5, consume=False)

        assert bread.quantity_remaining == Decimal("8")

    def test_customer_id_key(self, bread):
        dispatch = DispatchRecord.record(bread, "Acme Cafe", 1, customer_id="C-1")

        assert dispatch.customer_key == "C-1"

    def test_customer_required(self, bread):
        with pytest.raises(GenealogyError) as exc:
            DispatchRecord.record(bread, "  ", 1)

        assert exc.value.code == "CUSTOMER_REQUIRED"

    def test_over_dispatch(self, bread):
        with pytest.raises(GenealogyError) as exc:
            DispatchRecord.record(bread, "Acme Cafe", 9)

        assert exc.value.code == "INSUFFICIENT_QUANTITY"
        assert not DispatchRecord.objects.exists()

    def test_never_deleted(self, bread):
        dispatch = DispatchRecord.record(bread, "Acme Cafe", 1)

        with pytest.raises(GenealogyError):
            dispatch.delete()


# ═══════════════════════════════════════════════════════════════════
# Recall
# ═══════════════════════════════════════════════════════════════════


class TestRecallLifecycle:
    """Tests for the recall state machine."""

    def test_open(self, db):
        recall = Recall.open(TENANT, "Undeclared sesame")

        assert recall.status == RecallStatus.DRAFT
        assert recall.recall_code == f"RC-{timezone.now().year}-001"
        assert recall.severity == "class_2"

    def test_manual_code_collision(self, db):
        Recall.open(TENANT, "First", recall_code="RC-MANUAL")

        with pytest.raises(DuplicateBatchCode):
            Recall.open(TENANT, "Second", recall_code="RC-MANUAL")

    def test_full_lifecycle(self, recall):
        recall.activate()
        assert recall.status == RecallStatus.ACTIVE

        recall.resolve(root_cause="Supplier mislabelled sack", corrective_actions="New supplier")
        assert recall.status == RecallStatus.RESOLVED
        assert recall.resolved_at is not None

        recall.close()
        assert recall.status == RecallStatus.CLOSED
        assert recall.closed_at is not None
        assert recall.is_frozen

    def test_activate_needs_affected_batches(self, db):
        recall = Recall.open(TENANT, "Empty")

        with pytest.raises(GenealogyError) as exc:
            recall.activate()

        assert exc.value.code == "NO_AFFECTED_BATCHES"
        assert recall.status == RecallStatus.DRAFT

    def test_activate_twice(self, recall):
        recall.activate()

        with pytest.raises(GenealogyError) as exc:
            recall.activate()

        assert exc.value.code == "INVALID_STATUS"

    def test_resolve_needs_root_cause(self, recall):
        recall.activate()

        with pytest.raises(GenealogyError) as exc:
            recall.resolve(root_cause="  ")

        assert exc.value.code == "ROOT_CAUSE_REQUIRED"
        recall.refresh_from_db()
        assert recall.status == RecallStatus.ACTIVE

    def test_resolve_draft(self, recall):
        with pytest.raises(GenealogyError) as exc:
            recall.resolve(root_cause="Mislabelled")

        assert exc.value.code == "INVALID_STATUS"

    def test_close_active(self, recall):
        recall.activate()

        with pytest.raises(GenealogyError) as exc:
            recall.close()

        assert exc.value.code == "INVALID_STATUS"

    @pytest.mark.parametrize("activate", [False, True])
    def test_cancel(self, recall, activate):
        if activate:
            recall.activate()

        recall.cancel("False alarm")

        assert recall.status == RecallStatus.CANCELLED
        assert recall.is_frozen

    def test_cancel_resolved(self, recall):
        recall.activate()
        recall.resolve(root_cause="Mislabelled")

        with pytest.raises(GenealogyError) as exc:
            recall.cancel()

        assert exc.value.code == "INVALID_STATUS"

    def test_history_recorded(self, recall):
        recall.activate()

        statuses = list(recall.history.values_list("status", flat=True))
        assert statuses[0] == RecallStatus.ACTIVE
        assert RecallStatus.DRAFT in statuses


class TestAffectedBatches:
    """Tests for curating and recovering affected batches."""

    def test_add_is_idempotent(self, recall, flour):
        again = recall.add_affected_batch(flour)

        assert recall.affected.count() == 1
        assert again.batch_type == BatchType.RAW_MATERIAL

    def test_finished_product_type(self, recall, bread):
        row = recall.add_affected_batch(bread, quantity_affected=6)

        assert row.batch_type == BatchType.FINISHED_PRODUCT
        assert row.quantity_affected == Decimal("6")

    def test_frozen_after_close(self, recall, bread):
        recall.activate()
        recall.resolve(root_cause="Mislabelled")
        recall.close()

        with pytest.raises(GenealogyError) as exc:
            recall.add_affected_batch(bread)

        assert exc.value.code == "RECALL_FROZEN"

    def test_frozen_after_cancel(self, recall, bread):
        recall.cancel()

        with pytest.raises(GenealogyError) as exc:
            recall.add_affected_batch(bread)

        assert exc.value.code == "RECALL_FROZEN"

    def test_record_recovery_accumulates(self, recall, flour):
        recall.activate()

        recall.record_recovery(flour, 3)
        row = recall.record_recovery(flour, "1.5")

        assert row.quantity_recovered == Decimal("4.5")

    def test_recovery_of_unlisted_batch(self, recall, bread):
        with pytest.raises(GenealogyError) as exc:
            recall.record_recovery(bread, 1)

        assert exc.value.code == "NOT_AFFECTED"

    def test_recovery_non_positive(self, recall, flour):
        with pytest.raises(GenealogyError) as exc:
            recall.record_recovery(flour, 0)

        assert exc.value.code == "INVALID_QUANTITY"

    def test_recovery_after_close(self, recall, flour):
        recall.activate()
        recall.resolve(root_cause="Mislabelled")
        recall.close()

        with pytest.raises(GenealogyError) as exc:
            recall.record_recovery(flour, 1)

        assert exc.value.code == "RECALL_FROZEN"

    def test_row_never_deleted(self, recall):
        with pytest.raises(GenealogyError):
            recall.affected.get().delete()

    def test_open_recall_with_batches(self, flour, bread):
        recall = Genealogy.open_recall(TENANT, "Sesame", affected=[flour, bread], severity="class_1")

        assert recall.affected.count() == 2
        assert recall.severity == "class_1"


class TestNotifications:
    """Tests for FSA / SALSA notification stamps."""

    def test_notify_fsa(self, recall):
        recall.notify_fsa("FSA-2024-17")

        recall.refresh_from_db()
        assert recall.fsa_notified_at is not None
        assert recall.fsa_reference == "FSA-2024-17"

    def test_salsa_not_overdue_in_draft(self, recall):
        recall.initiated_at = timezone.now() - timedelta(days=10)

        assert recall.is_salsa_overdue is False

    def test_salsa_overdue(self, recall):
        recall.activate()
        recall.initiated_at = timezone.now() - timedelta(days=4)

        assert recall.is_salsa_overdue is True

        recall.notify_salsa()
        assert recall.is_salsa_overdue is False

    def test_salsa_within_window(self, recall):
        recall.activate()

        assert recall.is_salsa_overdue is False

    def test_salsa_window_setting(self, recall, settings):
        settings.GENEALOGIST = {"SALSA_NOTIFICATION_DAYS": 1}
        recall.activate()
        recall.initiated_at = timezone.now() - timedelta(days=2)

        assert recall.is_salsa_overdue is True
