"""
Batch code allocation.

Issues human-readable batch codes with a per-tenant, per-day sequence:

    HQ-2024-0101-001, HQ-2024-0101-002, ...

The sequence is read optimistically (max existing + 1) and the row carrying
the code is inserted under the (tenant_id, batch_code) uniqueness
constraint. Losing a race surfaces as IntegrityError; the allocator then
re-reads and retries, up to ALLOCATION_MAX_RETRIES attempts. Gaps are
allowed: an aborted insert burns its number.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable

from django.db import IntegrityError, transaction

from genealogist.conf import get_setting
from genealogist.exceptions import AllocationExhausted, DuplicateBatchCode, GenealogyError
from genealogist.results import Allocation

logger = logging.getLogger(__name__)

SEQ_TOKEN = "{SEQ}"


@dataclass(frozen=True)
class CodePattern:
    """A batch code format with every token but {SEQ} rendered."""

    head: str
    tail: str
    width: int

    def render(self, sequence: int) -> str:
        return f"{self.head}{sequence:0{self.width}d}{self.tail}"

    def parse(self, code: str) -> int | None:
        """Return the sequence number of a code in this pattern, or None."""
        match = re.fullmatch(
            f"{re.escape(self.head)}(\\d+){re.escape(self.tail)}", code
        )
        return int(match.group(1)) if match else None


def render_tokens(fmt: str, on_date: date, site: str) -> str:
    """Render date and site tokens; {SEQ} is left in place."""
    return (
        fmt.replace("{SITE}", site)
        .replace("{YYYY}", f"{on_date.year:04d}")
        .replace("{YY}", f"{on_date.year % 100:02d}")
        .replace("{MMDD}", f"{on_date.month:02d}{on_date.day:02d}")
        .replace("{MM}", f"{on_date.month:02d}")
        .replace("{DD}", f"{on_date.day:02d}")
    )


def compile_format(fmt: str, on_date: date, site: str, width: int) -> CodePattern:
    """
    Build the CodePattern for a format on a given date and site.

    Raises:
        GenealogyError: INVALID_CODE_FORMAT if {SEQ} is missing or repeated
    """
    if fmt.count(SEQ_TOKEN) != 1:
        raise GenealogyError("INVALID_CODE_FORMAT", format=fmt)
    head, tail = render_tokens(fmt, on_date, site).split(SEQ_TOKEN)
    return CodePattern(head=head, tail=tail, width=width)


class BatchCodeAllocator:
    """
    Allocates unique codes for a model with a per-tenant code field.

    The model must have a unique constraint on (tenant_id, code_field).

    Usage:
        allocator = BatchCodeAllocator(StockBatch)
        allocation = allocator.allocate(
            "tenant-1",
            date(2024, 1, 1),
            create=lambda code: StockBatch.objects.create(batch_code=code, ...),
        )
        allocation.code  # "HQ-2024-0101-001"
    """

    def __init__(
        self,
        model,
        fmt: str | None = None,
        width: int | None = None,
        max_retries: int | None = None,
        code_field: str = "batch_code",
    ):
        self.model = model
        self.code_field = code_field
        self.fmt = fmt or get_setting("BATCH_CODE_FORMAT")
        self.width = width or get_setting("SEQUENCE_WIDTH")
        self.max_retries = max_retries or get_setting("ALLOCATION_MAX_RETRIES")

    def pattern(self, on_date: date, site: str | None = None, fmt: str | None = None) -> CodePattern:
        site = site if site is not None else get_setting("DEFAULT_SITE")
        return compile_format(fmt or self.fmt, on_date, site, self.width)

    def current_max(self, tenant_id: str, pattern: CodePattern) -> int:
        """Highest sequence number already used in this pattern (0 if none)."""
        codes = self.model._base_manager.filter(
            **{"tenant_id": tenant_id, f"{self.code_field}__startswith": pattern.head}
        ).values_list(self.code_field, flat=True)

        highest = 0
        for code in codes:
            seq = pattern.parse(code)
            if seq is not None and seq > highest:
                highest = seq
        return highest

    def code_taken(self, tenant_id: str, code: str) -> bool:
        return self.model._base_manager.filter(
            **{"tenant_id": tenant_id, self.code_field: code}
        ).exists()

    def allocate(
        self,
        tenant_id: str,
        on_date: date,
        create: Callable[[str], object],
        fmt: str | None = None,
        site: str | None = None,
    ) -> Allocation:
        """
        Allocate the next code and insert the row carrying it.

        Args:
            tenant_id: Tenant the code is unique within
            on_date: Date rendered into the code
            create: Callable that inserts the row for a code and returns it
            fmt: Format override (defaults to the allocator's format)
            site: Site abbreviation for {SITE}

        Returns:
            Allocation with the code, its sequence and the created instance

        Raises:
            AllocationExhausted: Every attempt collided with a concurrent insert
        """
        pattern = self.pattern(on_date, site=site, fmt=fmt)

        for attempt in range(1, self.max_retries + 1):
            sequence = self.current_max(tenant_id, pattern) + 1
            code = pattern.render(sequence)

            try:
                with transaction.atomic():
                    instance = create(code)
            except IntegrityError:
                if not self.code_taken(tenant_id, code):
                    raise
                logger.warning(
                    f"Batch code {code} taken concurrently, retrying",
                    extra={
                        "tenant_id": tenant_id,
                        "code": code,
                        "attempt": attempt,
                    },
                )
                continue

            logger.info(
                f"Allocated batch code {code}",
                extra={
                    "tenant_id": tenant_id,
                    "code": code,
                    "sequence": sequence,
                    "attempt": attempt,
                },
            )
            return Allocation(
                code=code, sequence=sequence, attempts=attempt, instance=instance
            )

        logger.error(
            f"Batch code allocation exhausted after {self.max_retries} attempts",
            extra={"tenant_id": tenant_id, "prefix": pattern.head},
        )
        raise AllocationExhausted(
            tenant_id=tenant_id, prefix=pattern.head, attempts=self.max_retries
        )

    def claim(
        self, tenant_id: str, code: str, create: Callable[[str], object]
    ) -> Allocation:
        """
        Insert a row carrying a manually supplied code.

        Raises:
            DuplicateBatchCode: The code already exists for the tenant
        """
        code = (code or "").strip()
        if not code:
            raise GenealogyError("INVALID_CODE_FORMAT", format=code)

        try:
            with transaction.atomic():
                instance = create(code)
        except IntegrityError:
            if self.code_taken(tenant_id, code):
                raise DuplicateBatchCode(tenant_id=tenant_id, batch_code=code)
            raise

        logger.info(
            f"Claimed manual batch code {code}",
            extra={"tenant_id": tenant_id, "code": code},
        )
        return Allocation(code=code, sequence=None, attempts=1, instance=instance)


def stock_batch_allocator() -> BatchCodeAllocator:
    """Allocator for StockBatch codes (BATCH_CODE_FORMAT)."""
    from genealogist.models import StockBatch

    return BatchCodeAllocator(StockBatch, fmt=get_setting("BATCH_CODE_FORMAT"))


def production_batch_allocator() -> BatchCodeAllocator:
    """Allocator for ProductionBatch codes (PRODUCTION_CODE_FORMAT)."""
    from genealogist.models import ProductionBatch

    return BatchCodeAllocator(ProductionBatch, fmt=get_setting("PRODUCTION_CODE_FORMAT"))


def recall_allocator() -> BatchCodeAllocator:
    """Allocator for Recall codes (RECALL_CODE_FORMAT)."""
    from genealogist.models import Recall

    return BatchCodeAllocator(
        Recall, fmt=get_setting("RECALL_CODE_FORMAT"), code_field="recall_code"
    )
