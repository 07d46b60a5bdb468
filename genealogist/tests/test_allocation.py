"""
Tests for batch code allocation (genealogist.services.allocation).

Verifies that:
- Codes render from the configured format and sequence per tenant/date/site
- A lost insert race is retried with a fresh read, up to the retry budget
- Unrelated integrity errors are not mistaken for collisions
- Manual codes never retry and report duplicates
"""

import threading
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import IntegrityError, connection

from genealogist.exceptions import AllocationExhausted, DuplicateBatchCode, GenealogyError
from genealogist.models import ProductionBatch, Recall, StockBatch
from genealogist.services.allocation import (
    BatchCodeAllocator,
    CodePattern,
    compile_format,
    render_tokens,
)

TENANT = "bakery"
DAY = date(2024, 1, 1)


def _stock(code, tenant=TENANT, quantity=Decimal("10")):
    return StockBatch.objects.create(
        tenant_id=tenant,
        batch_code=code,
        quantity_received=quantity,
        quantity_remaining=quantity,
    )


def _create_for(tenant=TENANT):
    return lambda code: _stock(code, tenant=tenant)


# ═══════════════════════════════════════════════════════════════════
# Format rendering
# ═══════════════════════════════════════════════════════════════════


class TestFormat:
    """Tests for token rendering and pattern parsing."""

    def test_render_all_tokens(self):
        """Date and site tokens render; {SEQ} is kept."""
        rendered = render_tokens("{SITE}/{YYYY}/{YY}/{MM}/{DD}/{MMDD}/{SEQ}", date(2024, 3, 7), "LDN")

        assert rendered == "LDN/2024/24/03/07/0307/{SEQ}"

    def test_compile_splits_around_seq(self):
        """Pattern keeps the rendered text on both sides of {SEQ}."""
        pattern = compile_format("B{SEQ}-{YY}", DAY, "HQ", 3)

        assert pattern == CodePattern(head="B", tail="-24", width=3)
        assert pattern.render(7) == "B007-24"

    def test_missing_seq_rejected(self):
        """A format without {SEQ} cannot produce unique codes."""
        with pytest.raises(GenealogyError) as exc:
            compile_format("{SITE}-{YYYY}", DAY, "HQ", 3)

        assert exc.value.code == "INVALID_CODE_FORMAT"

    def test_repeated_seq_rejected(self):
        with pytest.raises(GenealogyError) as exc:
            compile_format("{SEQ}-{SEQ}", DAY, "HQ", 3)

        assert exc.value.code == "INVALID_CODE_FORMAT"

    def test_wide_sequence_not_truncated(self):
        """Numbers wider than the padding are rendered in full."""
        pattern = CodePattern(head="HQ-", tail="", width=3)

        assert pattern.render(1234) == "HQ-1234"

    def test_parse_ignores_foreign_codes(self):
        """Only codes matching head + digits + tail carry a sequence."""
        pattern = CodePattern(head="HQ-2024-0101-", tail="", width=3)

        assert pattern.parse("HQ-2024-0101-042") == 42
        assert pattern.parse("HQ-2024-0101-manual") is None
        assert pattern.parse("HQ-2024-0102-001") is None


# ═══════════════════════════════════════════════════════════════════
# Sequencing
# ═══════════════════════════════════════════════════════════════════


class TestAllocate:
    """Tests for BatchCodeAllocator.allocate()."""

    def test_first_code(self, db):
        """First code of the day is 001."""
        allocation = BatchCodeAllocator(StockBatch).allocate(TENANT, DAY, _create_for())

        assert allocation.code == "HQ-2024-0101-001"
        assert allocation.sequence == 1
        assert allocation.attempts == 1
        assert allocation.instance.batch_code == allocation.code

    def test_sequential_codes(self, db):
        allocator = BatchCodeAllocator(StockBatch)

        codes = [allocator.allocate(TENANT, DAY, _create_for()).code for _ in range(3)]

        assert codes == ["HQ-2024-0101-001", "HQ-2024-0101-002", "HQ-2024-0101-003"]

    def test_gaps_are_allowed(self, db):
        """Next code follows the highest existing number, gaps stay gaps."""
        _stock("HQ-2024-0101-001")
        _stock("HQ-2024-0101-005")

        allocation = BatchCodeAllocator(StockBatch).allocate(TENANT, DAY, _create_for())

        assert allocation.code == "HQ-2024-0101-006"

    def test_sequence_past_padding(self, db):
        _stock("HQ-2024-0101-999")

        allocation = BatchCodeAllocator(StockBatch).allocate(TENANT, DAY, _create_for())

        assert allocation.code == "HQ-2024-0101-1000"

    def test_sequence_scoped_by_date_site_and_tenant(self, db):
        """Each rendered prefix and tenant has its own sequence."""
        allocator = BatchCodeAllocator(StockBatch)
        allocator.allocate(TENANT, DAY, _create_for())
        allocator.allocate(TENANT, DAY, _create_for())

        next_day = allocator.allocate(TENANT, date(2024, 1, 2), _create_for())
        other_site = allocator.allocate(TENANT, DAY, _create_for(), site="MAN")
        other_tenant = allocator.allocate("cafe", DAY, _create_for("cafe"))

        assert next_day.code == "HQ-2024-0102-001"
        assert other_site.code == "MAN-2024-0101-001"
        assert other_tenant.code == "HQ-2024-0101-001"

    def test_manual_codes_do_not_disturb_sequence(self, db):
        _stock("HQ-2024-0101-manual")

        allocation = BatchCodeAllocator(StockBatch).allocate(TENANT, DAY, _create_for())

        assert allocation.code == "HQ-2024-0101-001"

    def test_format_override(self, db):
        allocator = BatchCodeAllocator(StockBatch, fmt="FLR-{SEQ}")

        assert allocator.allocate(TENANT, DAY, _create_for()).code == "FLR-001"

    @pytest.mark.parametrize("setting", ["GENEALOGIST_SEQUENCE_WIDTH"])
    def test_width_from_settings(self, db, settings, setting):
        settings.GENEALOGIST = {}
        setattr(settings, setting, 5)

        allocation = BatchCodeAllocator(StockBatch).allocate(TENANT, DAY, _create_for())

        assert allocation.code == "HQ-2024-0101-00001"


# ═══════════════════════════════════════════════════════════════════
# Conflicts
# ═══════════════════════════════════════════════════════════════════


class TestConflicts:
    """Tests for retry on a lost insert race."""

    def test_retries_with_fresh_read(self, db):
        """A stale max read collides once, then the next number is used."""
        _stock("HQ-2024-0101-001")  # inserted by a concurrent allocator
        allocator = BatchCodeAllocator(StockBatch)

        with patch.object(
            BatchCodeAllocator, "current_max", side_effect=[0, 1]
        ) as current_max:
            allocation = allocator.allocate(TENANT, DAY, _create_for())

        assert allocation.code == "HQ-2024-0101-002"
        assert allocation.attempts == 2
        assert current_max.call_count == 2
        assert StockBatch.objects.filter(tenant_id=TENANT).count() == 2

    def test_interleaved_allocator_collides_on_constraint(self, db):
        """A competitor commits the same code between our read and our insert."""
        real_current_max = BatchCodeAllocator.current_max
        competitor = BatchCodeAllocator(StockBatch)
        competing = []

        def read_then_interleave(allocator, tenant_id, pattern):
            highest = real_current_max(allocator, tenant_id, pattern)
            if allocator is not competitor and not competing:
                competing.append(competitor.allocate(TENANT, DAY, _create_for()))
            return highest

        with patch.object(
            BatchCodeAllocator, "current_max", autospec=True, side_effect=read_then_interleave
        ):
            ours = BatchCodeAllocator(StockBatch).allocate(TENANT, DAY, _create_for())

        assert competing[0].code == "HQ-2024-0101-001"
        assert competing[0].attempts == 1
        assert ours.code == "HQ-2024-0101-002"
        assert ours.attempts == 2
        codes = StockBatch.objects.filter(tenant_id=TENANT).values_list("batch_code", flat=True)
        assert sorted(codes) == ["HQ-2024-0101-001", "HQ-2024-0101-002"]

    def test_exhausted_after_max_retries(self, db):
        _stock("HQ-2024-0101-001")
        allocator = BatchCodeAllocator(StockBatch, max_retries=3)

        with patch.object(BatchCodeAllocator, "current_max", return_value=0) as current_max:
            with pytest.raises(AllocationExhausted) as exc:
                allocator.allocate(TENANT, DAY, _create_for())

        assert exc.value.code == "ALLOCATION_EXHAUSTED"
        assert exc.value.details["attempts"] == 3
        assert current_max.call_count == 3

    def test_default_retry_budget(self, db):
        _stock("HQ-2024-0101-001")

        with patch.object(BatchCodeAllocator, "current_max", return_value=0) as current_max:
            with pytest.raises(AllocationExhausted):
                BatchCodeAllocator(StockBatch).allocate(TENANT, DAY, _create_for())

        assert current_max.call_count == 5

    def test_unrelated_integrity_error_propagates(self, db):
        """An IntegrityError that is not a code collision is not retried."""
        calls = []

        def create(code):
            calls.append(code)
            raise IntegrityError("NOT NULL constraint failed: genealogist_stock_batch.unit")

        with pytest.raises(IntegrityError):
            BatchCodeAllocator(StockBatch).allocate(TENANT, DAY, create)

        assert calls == ["HQ-2024-0101-001"]


# ═══════════════════════════════════════════════════════════════════
# Manual codes
# ═══════════════════════════════════════════════════════════════════


class TestClaim:
    """Tests for BatchCodeAllocator.claim()."""

    def test_claim_manual_code(self, db):
        allocation = BatchCodeAllocator(StockBatch).claim(TENANT, "SUP-8812", _create_for())

        assert allocation.code == "SUP-8812"
        assert allocation.sequence is None
        assert allocation.instance.pk is not None

    def test_duplicate_manual_code(self, db):
        """A collision on a manual code is reported, never retried."""
        _stock("SUP-8812")

        with pytest.raises(DuplicateBatchCode) as exc:
            BatchCodeAllocator(StockBatch).claim(TENANT, "SUP-8812", _create_for())

        assert exc.value.code == "DUPLICATE_BATCH_CODE"
        assert exc.value.details["batch_code"] == "SUP-8812"

    def test_same_manual_code_other_tenant(self, db):
        _stock("SUP-8812", tenant="cafe")

        allocation = BatchCodeAllocator(StockBatch).claim(TENANT, "SUP-8812", _create_for())

        assert allocation.code == "SUP-8812"

    def test_blank_manual_code(self, db):
        with pytest.raises(GenealogyError) as exc:
            BatchCodeAllocator(StockBatch).claim(TENANT, "  ", _create_for())

        assert exc.value.code == "INVALID_CODE_FORMAT"


# ═══════════════════════════════════════════════════════════════════
# Model entry points
# ═══════════════════════════════════════════════════════════════════


class TestModelAllocation:
    """Tests for allocation through the model constructors."""

    def test_receive_allocates_code(self, db):
        batch = StockBatch.receive(TENANT, 25, DAY, allergens=[" Gluten ", "gluten"])

        assert batch.batch_code == "HQ-2024-0101-001"
        assert batch.quantity_remaining == Decimal("25")
        assert batch.allergens == ["gluten"]

    def test_receive_with_manual_code(self, db):
        StockBatch.receive(TENANT, 25, DAY, batch_code="FLR-001")

        with pytest.raises(DuplicateBatchCode):
            StockBatch.receive(TENANT, 10, DAY, batch_code="FLR-001")

    def test_production_batch_uses_own_format(self, db):
        batch = ProductionBatch.plan(TENANT, DAY)

        assert batch.batch_code == "PB-2024-0101-001"

    def test_recall_code(self, db):
        recall = Recall.open(TENANT, "Undeclared sesame")

        assert recall.recall_code.startswith("RC-")
        assert recall.recall_code.endswith("-001")


# ═══════════════════════════════════════════════════════════════════
# Real concurrency
# ═══════════════════════════════════════════════════════════════════


@pytest.mark.django_db(transaction=True)
class TestConcurrentAllocation:
    """N concurrent allocations yield N distinct codes."""

    def test_concurrent_receive(self):
        if connection.vendor == "sqlite":
            pytest.skip("SQLite serializes writers; needs a server database")

        workers = 8
        barrier = threading.Barrier(workers)
        codes, errors = [], []
        lock = threading.Lock()

        def work():
            from django.db import connections

            try:
                barrier.wait()
                batch = StockBatch.receive(TENANT, 1, DAY)
                with lock:
                    codes.append(batch.batch_code)
            except Exception as e:  # collected and asserted below
                with lock:
                    errors.append(e)
            finally:
                connections.close_all()

        threads = [threading.Thread(target=work) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(codes) == workers
        assert len(set(codes)) == workers
