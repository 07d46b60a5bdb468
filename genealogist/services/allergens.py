"""
Allergen aggregation.

Pure set unions over batches. Confirmed allergens and "may contain" tags
are aggregated separately and never merged: a cross-contamination warning
is not a confirmed allergen claim.
"""

from __future__ import annotations

from typing import Iterable

from genealogist.protocols.genealogy import normalize_tags
from genealogist.results import AllergenSummary


def _tags(batch, attr: str) -> frozenset[str]:
    value = batch.get(attr) if isinstance(batch, dict) else getattr(batch, attr, None)
    return normalize_tags(value)


def aggregate_allergens(batches: Iterable) -> frozenset[str]:
    """
    Union of confirmed allergens across batches.

    Accepts StockBatchRecord, StockBatch instances or dicts with an
    "allergens" key.
    """
    result: set[str] = set()
    for batch in batches:
        result |= _tags(batch, "allergens")
    return frozenset(result)


def aggregate_may_contain(batches: Iterable) -> frozenset[str]:
    """Union of "may contain" tags across batches."""
    result: set[str] = set()
    for batch in batches:
        result |= _tags(batch, "may_contain_allergens")
    return frozenset(result)


def summarize(batches: Iterable) -> AllergenSummary:
    """Both unions, sorted for stable output."""
    batches = list(batches)
    return AllergenSummary(
        allergens=tuple(sorted(aggregate_allergens(batches))),
        may_contain=tuple(sorted(aggregate_may_contain(batches))),
    )


def finalize_production_allergens(
    own_allergens: Iterable[str] | None,
    own_may_contain: Iterable[str] | None,
    input_batches: Iterable,
    recipe=None,
) -> AllergenSummary:
    """
    Allergen sets of a completed production batch.

        allergens   = own ∪ recipe.allergens ∪ inputs' allergens
        may_contain = own ∪ recipe.may_contain ∪ inputs' may_contain
    """
    input_batches = list(input_batches)

    allergens = set(normalize_tags(own_allergens)) | aggregate_allergens(input_batches)
    may_contain = set(normalize_tags(own_may_contain)) | aggregate_may_contain(input_batches)

    if recipe is not None:
        allergens |= _tags(recipe, "allergens")
        may_contain |= _tags(recipe, "may_contain_allergens")

    return AllergenSummary(
        allergens=tuple(sorted(allergens)),
        may_contain=tuple(sorted(may_contain)),
    )
