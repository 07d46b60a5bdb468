"""
Recipe model.

Recipe = What a production run makes, and the allergen declarations
("contains" and "may contain") carried into every batch made from it.
"""

import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords


class Recipe(models.Model):
    """
    Production recipe.

    Only the allergen declarations matter for genealogy; quantities and
    steps live in the planning system.
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

    code = models.SlugField(
        max_length=50,
        verbose_name=_("Code"),
        help_text=_("Unique per tenant (e.g. sourdough-v1)"),
    )
    name = models.CharField(
        max_length=200,
        verbose_name=_("Name"),
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
        help_text=_("Cross-contamination risks, never confirmed allergens"),
    )

    is_active = models.BooleanField(
        default=True,
        verbose_name=_("Active"),
    )

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("updated at"))

    history = HistoricalRecords()

    class Meta:
        db_table = "genealogist_recipe"
        verbose_name = _("Recipe")
        verbose_name_plural = _("Recipes")
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant_id", "code"],
                name="genealogist_recipe_code_uniq",
            ),
        ]

    def __str__(self) -> str:
        return self.name
