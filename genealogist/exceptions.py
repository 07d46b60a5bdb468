"""
Genealogist Exceptions.

All genealogist errors derive from GenealogyError for consistent handling.
"""

from typing import Any


class GenealogyError(Exception):
    """
    Base exception for all Genealogist errors.

    Usage:
        raise GenealogyError('INVALID_STATUS', current='completed', expected='in_progress')

    Attributes:
        code: Error code (INVALID_STATUS, RECALL_FROZEN, etc.)
        details: Additional context as keyword arguments
    """

    default_code = "GENEALOGY_ERROR"

    def __init__(self, code: str | None = None, **details: Any):
        self.code = code or self.default_code
        self.details = details
        message = f"{self.code}: {details}" if details else self.code
        super().__init__(message)

    def as_dict(self) -> dict:
        """Return error as dictionary for API responses."""
        return {"code": self.code, **self.details}

    def __str__(self) -> str:
        name = type(self).__name__
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{name}({self.code}: {details_str})"
        return f"{name}({self.code})"


class NotFound(GenealogyError):
    """A recall, stock batch or production batch id does not resolve."""

    default_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any, **details: Any):
        super().__init__(None, resource=resource, identifier=identifier, **details)


class AllocationExhausted(GenealogyError):
    """Batch code allocation lost the race more times than allowed."""

    default_code = "ALLOCATION_EXHAUSTED"

    def __init__(self, **details: Any):
        super().__init__(None, **details)


class DuplicateBatchCode(GenealogyError):
    """A manually supplied batch code already exists for the tenant."""

    default_code = "DUPLICATE_BATCH_CODE"

    def __init__(self, **details: Any):
        super().__init__(None, **details)


class TraceCancelled(GenealogyError):
    """A lineage trace was cancelled by its caller."""

    default_code = "TRACE_CANCELLED"

    def __init__(self, **details: Any):
        super().__init__(None, **details)


# Common error codes
# INVALID_STATUS: Status transition not allowed
# INVALID_QUANTITY: Quantity must be positive
# INSUFFICIENT_QUANTITY: Stock batch has less remaining than requested
# INVALID_CODE_FORMAT: Batch code format has no {SEQ} token
# RECALL_FROZEN: Affected-batch set of a closed/cancelled recall
# NO_AFFECTED_BATCHES: Recall cannot be activated without affected batches
# ROOT_CAUSE_REQUIRED: Recall cannot be resolved without a root cause
# APPEND_ONLY: Lineage rows are never deleted
# CUSTOMER_REQUIRED: Dispatch needs a customer name
# NOT_AFFECTED: Recovery logged for a batch not on the recall
