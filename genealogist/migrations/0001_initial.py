"""
Initial migration for Genealogist.

Creates:
- Recipe, ProductionBatch, StockBatch
- ProductionBatchInput / ProductionBatchOutput lineage edges
- DispatchRecord
- Recall / RecallAffectedBatch
- History tracking for StockBatch, Recipe, ProductionBatch and Recall
"""

import datetime
import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
import simple_history.models
from django.conf import settings
from django.db import migrations, models


HISTORY_TYPE_CHOICES = [("+", "Created"), ("~", "Changed"), ("-", "Deleted")]

HISTORICAL_OPTIONS = {
    "ordering": ("-history_date", "-history_id"),
    "get_latest_by": ("history_date", "history_id"),
}


def history_fields():
    return [
        ("history_id", models.AutoField(primary_key=True, serialize=False)),
        ("history_date", models.DateTimeField(db_index=True)),
        ("history_change_reason", models.CharField(max_length=100, null=True)),
        (
            "history_type",
            models.CharField(choices=HISTORY_TYPE_CHOICES, max_length=1),
        ),
        (
            "history_user",
            models.ForeignKey(
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


STOCK_BATCH_STATUS_CHOICES = [
    ("active", "Active"),
    ("exhausted", "Exhausted"),
    ("quarantined", "Quarantined"),
    ("recalled", "Recalled"),
    ("disposed", "Disposed"),
]

PRODUCTION_BATCH_STATUS_CHOICES = [
    ("planned", "Planned"),
    ("in_progress", "In progress"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]

RECALL_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("active", "Active"),
    ("resolved", "Resolved"),
    ("closed", "Closed"),
    ("cancelled", "Cancelled"),
]

RECALL_TYPE_CHOICES = [("recall", "Recall"), ("withdrawal", "Withdrawal")]

RECALL_SEVERITY_CHOICES = [
    ("class_1", "Class 1"),
    ("class_2", "Class 2"),
    ("class_3", "Class 3"),
]

BATCH_TYPE_CHOICES = [
    ("raw_material", "Raw material"),
    ("finished_product", "Finished product"),
]

RECALL_ACTION_CHOICES = [
    ("pending", "Pending"),
    ("quarantined", "Quarantined"),
    ("destroyed", "Destroyed"),
    ("returned", "Returned"),
    ("released", "Released"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("contenttypes", "0002_remove_content_type_name"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        # ══════════════════════════════════════════════════════════════
        # RECIPE
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="Recipe",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID"
                    ),
                ),
                (
                    "tenant_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Tenant"),
                ),
                (
                    "code",
                    models.SlugField(
                        help_text="Unique per tenant (e.g. sourdough-v1)",
                        verbose_name="Code",
                    ),
                ),
                ("name", models.CharField(max_length=200, verbose_name="Name")),
                (
                    "allergens",
                    models.JSONField(blank=True, default=list, verbose_name="Allergens"),
                ),
                (
                    "may_contain_allergens",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Cross-contamination risks, never confirmed allergens",
                        verbose_name="May contain",
                    ),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, verbose_name="created at"),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, verbose_name="updated at"),
                ),
            ],
            options={
                "verbose_name": "Recipe",
                "verbose_name_plural": "Recipes",
                "db_table": "genealogist_recipe",
                "ordering": ["name"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant_id", "code"),
                        name="genealogist_recipe_code_uniq",
                    )
                ],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # PRODUCTION BATCH
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="ProductionBatch",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID"
                    ),
                ),
                (
                    "tenant_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Tenant"),
                ),
                ("batch_code", models.CharField(max_length=64, verbose_name="Batch code")),
                (
                    "production_date",
                    models.DateField(
                        db_index=True,
                        default=datetime.date.today,
                        verbose_name="Production date",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=PRODUCTION_BATCH_STATUS_CHOICES,
                        db_index=True,
                        default="planned",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "planned_quantity",
                    models.DecimalField(
                        blank=True,
                        decimal_places=3,
                        max_digits=12,
                        null=True,
                        verbose_name="Planned quantity",
                    ),
                ),
                (
                    "actual_quantity",
                    models.DecimalField(
                        blank=True,
                        decimal_places=3,
                        max_digits=12,
                        null=True,
                        verbose_name="Actual quantity",
                    ),
                ),
                ("unit", models.CharField(blank=True, max_length=20, verbose_name="Unit")),
                (
                    "allergens",
                    models.JSONField(blank=True, default=list, verbose_name="Allergens"),
                ),
                (
                    "may_contain_allergens",
                    models.JSONField(blank=True, default=list, verbose_name="May contain"),
                ),
                (
                    "started_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="started at"),
                ),
                (
                    "completed_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="completed at"),
                ),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                (
                    "metadata",
                    models.JSONField(blank=True, default=dict, verbose_name="Metadata"),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, verbose_name="created at"),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, verbose_name="updated at"),
                ),
                (
                    "recipe",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="production_batches",
                        to="genealogist.recipe",
                        verbose_name="Recipe",
                    ),
                ),
            ],
            options={
                "verbose_name": "Production batch",
                "verbose_name_plural": "Production batches",
                "db_table": "genealogist_production_batch",
                "ordering": ["-production_date", "-created_at"],
                "indexes": [
                    models.Index(
                        fields=["tenant_id", "status"],
                        name="genealogist_pb_tenant_status",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant_id", "batch_code"),
                        name="genealogist_production_batch_code_uniq",
                    )
                ],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # STOCK BATCH
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="StockBatch",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID"
                    ),
                ),
                (
                    "tenant_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Tenant"),
                ),
                ("batch_code", models.CharField(max_length=64, verbose_name="Batch code")),
                (
                    "supplier_batch_code",
                    models.CharField(
                        blank=True, max_length=64, verbose_name="Supplier batch code"
                    ),
                ),
                (
                    "item_id",
                    models.PositiveIntegerField(blank=True, null=True, verbose_name="Item ID"),
                ),
                (
                    "quantity_received",
                    models.DecimalField(
                        decimal_places=3, max_digits=12, verbose_name="Quantity received"
                    ),
                ),
                (
                    "quantity_remaining",
                    models.DecimalField(
                        decimal_places=3, max_digits=12, verbose_name="Quantity remaining"
                    ),
                ),
                ("unit", models.CharField(default="kg", max_length=20, verbose_name="Unit")),
                (
                    "status",
                    models.CharField(
                        choices=STOCK_BATCH_STATUS_CHOICES,
                        db_index=True,
                        default="active",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "allergens",
                    models.JSONField(blank=True, default=list, verbose_name="Allergens"),
                ),
                (
                    "may_contain_allergens",
                    models.JSONField(blank=True, default=list, verbose_name="May contain"),
                ),
                (
                    "use_by_date",
                    models.DateField(blank=True, null=True, verbose_name="Use by"),
                ),
                (
                    "best_before_date",
                    models.DateField(blank=True, null=True, verbose_name="Best before"),
                ),
                (
                    "metadata",
                    models.JSONField(blank=True, default=dict, verbose_name="Metadata"),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, verbose_name="created at"),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, verbose_name="updated at"),
                ),
                (
                    "item_type",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="contenttypes.contenttype",
                        verbose_name="Item type",
                    ),
                ),
                (
                    "production_batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="produced_stock_batches",
                        to="genealogist.productionbatch",
                        verbose_name="Production batch",
                    ),
                ),
            ],
            options={
                "verbose_name": "Stock batch",
                "verbose_name_plural": "Stock batches",
                "db_table": "genealogist_stock_batch",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["tenant_id", "status"],
                        name="genealogist_sb_tenant_status",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant_id", "batch_code"),
                        name="genealogist_stock_batch_code_uniq",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("quantity_remaining__lte", models.F("quantity_received"))
                        ),
                        name="genealogist_stock_batch_remaining_lte_received",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity_remaining__gte", 0)),
                        name="genealogist_stock_batch_remaining_gte_0",
                    ),
                ],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # LINEAGE EDGES
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="ProductionBatchInput",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "quantity",
                    models.DecimalField(
                        decimal_places=3, max_digits=12, verbose_name="Quantity consumed"
                    ),
                ),
                ("unit", models.CharField(blank=True, max_length=20, verbose_name="Unit")),
                ("is_rework", models.BooleanField(default=False, verbose_name="Rework")),
                (
                    "added_at",
                    models.DateTimeField(auto_now_add=True, verbose_name="added at"),
                ),
                (
                    "production_batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inputs",
                        to="genealogist.productionbatch",
                        verbose_name="Production batch",
                    ),
                ),
                (
                    "stock_batch",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="consumed_by",
                        to="genealogist.stockbatch",
                        verbose_name="Stock batch",
                    ),
                ),
            ],
            options={
                "verbose_name": "Production input",
                "verbose_name_plural": "Production inputs",
                "db_table": "genealogist_production_batch_input",
                "ordering": ["pk"],
            },
        ),
        migrations.CreateModel(
            name="ProductionBatchOutput",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, verbose_name="created at"),
                ),
                (
                    "production_batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="outputs",
                        to="genealogist.productionbatch",
                        verbose_name="Production batch",
                    ),
                ),
                (
                    "stock_batch",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="produced_by",
                        to="genealogist.stockbatch",
                        verbose_name="Stock batch",
                    ),
                ),
            ],
            options={
                "verbose_name": "Production output",
                "verbose_name_plural": "Production outputs",
                "db_table": "genealogist_production_batch_output",
                "ordering": ["pk"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("production_batch", "stock_batch"),
                        name="genealogist_production_output_uniq",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="DispatchRecord",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "tenant_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Tenant"),
                ),
                (
                    "customer_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        max_length=64,
                        null=True,
                        verbose_name="Customer ID",
                    ),
                ),
                (
                    "customer_name",
                    models.CharField(max_length=200, verbose_name="Customer name"),
                ),
                (
                    "quantity",
                    models.DecimalField(decimal_places=3, max_digits=12, verbose_name="Quantity"),
                ),
                ("unit", models.CharField(blank=True, max_length=20, verbose_name="Unit")),
                (
                    "dispatch_date",
                    models.DateField(
                        db_index=True,
                        default=datetime.date.today,
                        verbose_name="Dispatch date",
                    ),
                ),
                (
                    "delivery_note_reference",
                    models.CharField(blank=True, max_length=100, verbose_name="Delivery note"),
                ),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, verbose_name="created at"),
                ),
                (
                    "stock_batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="dispatches",
                        to="genealogist.stockbatch",
                        verbose_name="Stock batch",
                    ),
                ),
            ],
            options={
                "verbose_name": "Dispatch record",
                "verbose_name_plural": "Dispatch records",
                "db_table": "genealogist_dispatch_record",
                "ordering": ["-dispatch_date", "-pk"],
                "indexes": [
                    models.Index(
                        fields=["stock_batch", "dispatch_date"],
                        name="genealogist_dr_batch_date",
                    )
                ],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # RECALL
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="Recall",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "uuid",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID"
                    ),
                ),
                (
                    "tenant_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Tenant"),
                ),
                ("recall_code", models.CharField(max_length=64, verbose_name="Recall code")),
                ("title", models.CharField(max_length=200, verbose_name="Title")),
                (
                    "recall_type",
                    models.CharField(
                        choices=RECALL_TYPE_CHOICES,
                        default="recall",
                        max_length=20,
                        verbose_name="Type",
                    ),
                ),
                (
                    "severity",
                    models.CharField(
                        choices=RECALL_SEVERITY_CHOICES,
                        default="class_2",
                        max_length=20,
                        verbose_name="Severity",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=RECALL_STATUS_CHOICES,
                        db_index=True,
                        default="draft",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("reason", models.TextField(blank=True, verbose_name="Reason")),
                ("root_cause", models.TextField(blank=True, verbose_name="Root cause")),
                (
                    "corrective_actions",
                    models.TextField(blank=True, verbose_name="Corrective actions"),
                ),
                (
                    "initiated_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now, verbose_name="initiated at"
                    ),
                ),
                (
                    "fsa_notified_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="FSA notified at"),
                ),
                (
                    "fsa_reference",
                    models.CharField(blank=True, max_length=100, verbose_name="FSA reference"),
                ),
                (
                    "salsa_notified_at",
                    models.DateTimeField(
                        blank=True, null=True, verbose_name="SALSA notified at"
                    ),
                ),
                (
                    "resolved_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="resolved at"),
                ),
                (
                    "closed_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="closed at"),
                ),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                (
                    "created_at",
                    models.DateTimeField(auto_now_add=True, verbose_name="created at"),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, verbose_name="updated at"),
                ),
            ],
            options={
                "verbose_name": "Recall",
                "verbose_name_plural": "Recalls",
                "db_table": "genealogist_recall",
                "ordering": ["-initiated_at"],
                "indexes": [
                    models.Index(
                        fields=["tenant_id", "status"],
                        name="genealogist_rc_tenant_status",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant_id", "recall_code"),
                        name="genealogist_recall_code_uniq",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="RecallAffectedBatch",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "batch_type",
                    models.CharField(
                        choices=BATCH_TYPE_CHOICES,
                        default="raw_material",
                        max_length=20,
                        verbose_name="Batch type",
                    ),
                ),
                (
                    "quantity_affected",
                    models.DecimalField(
                        blank=True,
                        decimal_places=3,
                        max_digits=12,
                        null=True,
                        verbose_name="Quantity affected",
                    ),
                ),
                (
                    "quantity_recovered",
                    models.DecimalField(
                        decimal_places=3,
                        default=Decimal("0"),
                        max_digits=12,
                        verbose_name="Quantity recovered",
                    ),
                ),
                (
                    "action_taken",
                    models.CharField(
                        choices=RECALL_ACTION_CHOICES,
                        default="pending",
                        max_length=20,
                        verbose_name="Action taken",
                    ),
                ),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                (
                    "added_at",
                    models.DateTimeField(auto_now_add=True, verbose_name="added at"),
                ),
                (
                    "recall",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="affected",
                        to="genealogist.recall",
                        verbose_name="Recall",
                    ),
                ),
                (
                    "stock_batch",
                    models.ForeignKey(
                        db_constraint=False,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="recall_entries",
                        to="genealogist.stockbatch",
                        verbose_name="Stock batch",
                    ),
                ),
            ],
            options={
                "verbose_name": "Affected batch",
                "verbose_name_plural": "Affected batches",
                "db_table": "genealogist_recall_affected_batch",
                "ordering": ["added_at", "pk"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("recall", "stock_batch"),
                        name="genealogist_recall_affected_uniq",
                    )
                ],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # HISTORICAL RECORDS
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="HistoricalRecipe",
            fields=[
                (
                    "id",
                    models.BigIntegerField(
                        auto_created=True, blank=True, db_index=True, verbose_name="ID"
                    ),
                ),
                (
                    "uuid",
                    models.UUIDField(
                        db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID"
                    ),
                ),
                (
                    "tenant_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Tenant"),
                ),
                (
                    "code",
                    models.SlugField(
                        help_text="Unique per tenant (e.g. sourdough-v1)",
                        verbose_name="Code",
                    ),
                ),
                ("name", models.CharField(max_length=200, verbose_name="Name")),
                (
                    "allergens",
                    models.JSONField(blank=True, default=list, verbose_name="Allergens"),
                ),
                (
                    "may_contain_allergens",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Cross-contamination risks, never confirmed allergens",
                        verbose_name="May contain",
                    ),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                (
                    "created_at",
                    models.DateTimeField(blank=True, editable=False, verbose_name="created at"),
                ),
                (
                    "updated_at",
                    models.DateTimeField(blank=True, editable=False, verbose_name="updated at"),
                ),
                *history_fields(),
            ],
            options={
                "verbose_name": "historical Recipe",
                "verbose_name_plural": "historical Recipes",
                **HISTORICAL_OPTIONS,
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalProductionBatch",
            fields=[
                (
                    "id",
                    models.BigIntegerField(
                        auto_created=True, blank=True, db_index=True, verbose_name="ID"
                    ),
                ),
                (
                    "uuid",
                    models.UUIDField(
                        db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID"
                    ),
                ),
                (
                    "tenant_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Tenant"),
                ),
                ("batch_code", models.CharField(max_length=64, verbose_name="Batch code")),
                (
                    "production_date",
                    models.DateField(
                        db_index=True,
                        default=datetime.date.today,
                        verbose_name="Production date",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=PRODUCTION_BATCH_STATUS_CHOICES,
                        db_index=True,
                        default="planned",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "planned_quantity",
                    models.DecimalField(
                        blank=True,
                        decimal_places=3,
                        max_digits=12,
                        null=True,
                        verbose_name="Planned quantity",
                    ),
                ),
                (
                    "actual_quantity",
                    models.DecimalField(
                        blank=True,
                        decimal_places=3,
                        max_digits=12,
                        null=True,
                        verbose_name="Actual quantity",
                    ),
                ),
                ("unit", models.CharField(blank=True, max_length=20, verbose_name="Unit")),
                (
                    "allergens",
                    models.JSONField(blank=True, default=list, verbose_name="Allergens"),
                ),
                (
                    "may_contain_allergens",
                    models.JSONField(blank=True, default=list, verbose_name="May contain"),
                ),
                (
                    "started_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="started at"),
                ),
                (
                    "completed_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="completed at"),
                ),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                (
                    "metadata",
                    models.JSONField(blank=True, default=dict, verbose_name="Metadata"),
                ),
                (
                    "created_at",
                    models.DateTimeField(blank=True, editable=False, verbose_name="created at"),
                ),
                (
                    "updated_at",
                    models.DateTimeField(blank=True, editable=False, verbose_name="updated at"),
                ),
                *history_fields(),
                (
                    "recipe",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="genealogist.recipe",
                        verbose_name="Recipe",
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Production batch",
                "verbose_name_plural": "historical Production batches",
                **HISTORICAL_OPTIONS,
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalStockBatch",
            fields=[
                (
                    "id",
                    models.BigIntegerField(
                        auto_created=True, blank=True, db_index=True, verbose_name="ID"
                    ),
                ),
                (
                    "uuid",
                    models.UUIDField(
                        db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID"
                    ),
                ),
                (
                    "tenant_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Tenant"),
                ),
                ("batch_code", models.CharField(max_length=64, verbose_name="Batch code")),
                (
                    "supplier_batch_code",
                    models.CharField(
                        blank=True, max_length=64, verbose_name="Supplier batch code"
                    ),
                ),
                (
                    "item_id",
                    models.PositiveIntegerField(blank=True, null=True, verbose_name="Item ID"),
                ),
                (
                    "quantity_received",
                    models.DecimalField(
                        decimal_places=3, max_digits=12, verbose_name="Quantity received"
                    ),
                ),
                (
                    "quantity_remaining",
                    models.DecimalField(
                        decimal_places=3, max_digits=12, verbose_name="Quantity remaining"
                    ),
                ),
                ("unit", models.CharField(default="kg", max_length=20, verbose_name="Unit")),
                (
                    "status",
                    models.CharField(
                        choices=STOCK_BATCH_STATUS_CHOICES,
                        db_index=True,
                        default="active",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "allergens",
                    models.JSONField(blank=True, default=list, verbose_name="Allergens"),
                ),
                (
                    "may_contain_allergens",
                    models.JSONField(blank=True, default=list, verbose_name="May contain"),
                ),
                (
                    "use_by_date",
                    models.DateField(blank=True, null=True, verbose_name="Use by"),
                ),
                (
                    "best_before_date",
                    models.DateField(blank=True, null=True, verbose_name="Best before"),
                ),
                (
                    "metadata",
                    models.JSONField(blank=True, default=dict, verbose_name="Metadata"),
                ),
                (
                    "created_at",
                    models.DateTimeField(blank=True, editable=False, verbose_name="created at"),
                ),
                (
                    "updated_at",
                    models.DateTimeField(blank=True, editable=False, verbose_name="updated at"),
                ),
                *history_fields(),
                (
                    "item_type",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="contenttypes.contenttype",
                        verbose_name="Item type",
                    ),
                ),
                (
                    "production_batch",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="genealogist.productionbatch",
                        verbose_name="Production batch",
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Stock batch",
                "verbose_name_plural": "historical Stock batches",
                **HISTORICAL_OPTIONS,
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalRecall",
            fields=[
                (
                    "id",
                    models.BigIntegerField(
                        auto_created=True, blank=True, db_index=True, verbose_name="ID"
                    ),
                ),
                (
                    "uuid",
                    models.UUIDField(
                        db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID"
                    ),
                ),
                (
                    "tenant_id",
                    models.CharField(db_index=True, max_length=64, verbose_name="Tenant"),
                ),
                ("recall_code", models.CharField(max_length=64, verbose_name="Recall code")),
                ("title", models.CharField(max_length=200, verbose_name="Title")),
                (
                    "recall_type",
                    models.CharField(
                        choices=RECALL_TYPE_CHOICES,
                        default="recall",
                        max_length=20,
                        verbose_name="Type",
                    ),
                ),
                (
                    "severity",
                    models.CharField(
                        choices=RECALL_SEVERITY_CHOICES,
                        default="class_2",
                        max_length=20,
                        verbose_name="Severity",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=RECALL_STATUS_CHOICES,
                        db_index=True,
                        default="draft",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("reason", models.TextField(blank=True, verbose_name="Reason")),
                ("root_cause", models.TextField(blank=True, verbose_name="Root cause")),
                (
                    "corrective_actions",
                    models.TextField(blank=True, verbose_name="Corrective actions"),
                ),
                (
                    "initiated_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now, verbose_name="initiated at"
                    ),
                ),
                (
                    "fsa_notified_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="FSA notified at"),
                ),
                (
                    "fsa_reference",
                    models.CharField(blank=True, max_length=100, verbose_name="FSA reference"),
                ),
                (
                    "salsa_notified_at",
                    models.DateTimeField(
                        blank=True, null=True, verbose_name="SALSA notified at"
                    ),
                ),
                (
                    "resolved_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="resolved at"),
                ),
                (
                    "closed_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="closed at"),
                ),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                (
                    "created_at",
                    models.DateTimeField(blank=True, editable=False, verbose_name="created at"),
                ),
                (
                    "updated_at",
                    models.DateTimeField(blank=True, editable=False, verbose_name="updated at"),
                ),
                *history_fields(),
            ],
            options={
                "verbose_name": "historical Recall",
                "verbose_name_plural": "historical Recalls",
                **HISTORICAL_OPTIONS,
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
