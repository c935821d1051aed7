import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Vendor",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "vendor_name",
                    models.CharField(
                        help_text="Vendor display name", max_length=255, unique=True
                    ),
                ),
                (
                    "paypal_email",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="PayPal e-mail that receives payouts",
                        max_length=254,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "available_credits",
                    models.BigIntegerField(
                        default=0,
                        help_text="Cached credit counter; the ledger is the balance of record",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        help_text="Login linked to this vendor",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="vendor_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["vendor_name"],
            },
        ),
        migrations.CreateModel(
            name="AppreciationRun",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "started_at",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now),
                ),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("running", "Running"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("skipped", "Skipped"),
                        ],
                        db_index=True,
                        default="running",
                        max_length=20,
                    ),
                ),
                (
                    "trigger",
                    models.CharField(
                        choices=[
                            ("beat", "Celery Beat"),
                            ("http", "HTTP Endpoint"),
                            ("manual", "Manual"),
                        ],
                        default="beat",
                        max_length=20,
                    ),
                ),
                ("processed", models.PositiveIntegerField(default=0)),
                ("appreciated", models.PositiveIntegerField(default=0)),
                ("bonus_total", models.BigIntegerField(default=0)),
                ("errors", models.JSONField(blank=True, default=list)),
            ],
            options={
                "ordering": ["-started_at"],
            },
        ),
        migrations.CreateModel(
            name="FulfilledLineItem",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("line_item_id", models.CharField(max_length=64, unique=True)),
                ("order_id", models.CharField(db_index=True, max_length=64)),
                ("order_name", models.CharField(blank=True, default="", max_length=64)),
                ("product_id", models.CharField(blank=True, default="", max_length=64)),
                ("price_cents", models.PositiveBigIntegerField()),
                (
                    "payout_cents",
                    models.PositiveBigIntegerField(
                        default=0, help_text="Vendor share credited when fulfilled"
                    ),
                ),
                (
                    "fulfillment_status",
                    models.CharField(
                        choices=[
                            ("unfulfilled", "Unfulfilled"),
                            ("fulfilled", "Fulfilled"),
                            ("restocked", "Restocked"),
                        ],
                        db_index=True,
                        default="unfulfilled",
                        max_length=20,
                    ),
                ),
                ("fulfilled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "vendor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="line_items",
                        to="earnings.vendor",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["vendor", "fulfillment_status"],
                        name="line_item_vendor_status_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this entry was appended",
                    ),
                ),
                (
                    "identifier",
                    models.CharField(
                        db_index=True,
                        help_text="Vendor/collector key this entry belongs to",
                        max_length=255,
                    ),
                ),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("deposit", "Deposit"),
                            ("withdrawal", "Withdrawal"),
                            ("appreciation", "Appreciation"),
                        ],
                        help_text="Kind of entry",
                        max_length=20,
                    ),
                ),
                (
                    "credits_amount",
                    models.BigIntegerField(
                        help_text="Signed amount in credits (1 credit = 1 US cent)"
                    ),
                ),
                (
                    "usd_amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Signed USD value of this entry",
                        max_digits=14,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("subscription", "Subscription"),
                            ("purchase", "Purchase"),
                            ("payout", "Payout"),
                            ("appreciation", "Appreciation"),
                            ("refund", "Refund"),
                            ("adjustment", "Adjustment"),
                        ],
                        help_text="Where this entry originated",
                        max_length=20,
                    ),
                ),
                (
                    "reference_type",
                    models.CharField(
                        blank=True,
                        help_text="Type of related entity (e.g., 'payout_request', 'line_item')",
                        max_length=50,
                        null=True,
                    ),
                ),
                (
                    "reference_id",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of the related entity",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(
                        blank=True,
                        help_text="Unique key to prevent duplicate entries",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "last_appreciation_tier_months",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Highest appreciation tier (months) already credited for this deposit",
                        null=True,
                    ),
                ),
                (
                    "description",
                    models.TextField(
                        blank=True,
                        help_text="Human-readable description of this entry",
                        null=True,
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(blank=True, default=dict, help_text="Free-form audit data"),
                ),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of service/user that created this entry",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "vendor",
                    models.ForeignKey(
                        blank=True,
                        help_text="Vendor the identifier resolved to when the entry was appended",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="earnings.vendor",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "ledger entries",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["identifier", "created_at"],
                        name="ledger_identifier_created_idx",
                    ),
                    models.Index(
                        fields=["reference_type", "reference_id"],
                        name="ledger_reference_idx",
                    ),
                    models.Index(
                        fields=["transaction_type", "source", "created_at"],
                        name="ledger_type_source_created_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("credits_amount", 0), _negated=True),
                        name="ledger_entry_credits_non_zero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("credits_amount__lt", 0), ("transaction_type", "withdrawal")),
                            models.Q(
                                models.Q(("transaction_type", "withdrawal"), _negated=True),
                                ("credits_amount__gt", 0),
                            ),
                            _connector="OR",
                        ),
                        name="ledger_entry_sign_matches_type",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("last_appreciation_tier_months__isnull", True),
                            ("transaction_type", "deposit"),
                            _connector="OR",
                        ),
                        name="ledger_entry_marker_only_on_deposits",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayoutRequest",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "vendor_identifier",
                    models.CharField(
                        db_index=True,
                        help_text="Ledger key of the vendor when the request was created",
                        max_length=255,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Payout amount in cents, snapshotted at request time"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="USD", help_text="ISO 4217 currency code", max_length=3
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("requested", "Requested"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="requested",
                        help_text="Current status of the payout request (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "destination",
                    models.CharField(
                        help_text="Payout address (PayPal e-mail)", max_length=254
                    ),
                ),
                ("reference", models.CharField(max_length=32, unique=True)),
                ("invoice_number", models.CharField(max_length=32, unique=True)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "processor_batch_id",
                    models.CharField(
                        blank=True,
                        help_text="Processor payout batch id",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "processor_status",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Last batch status reported by the processor",
                        max_length=32,
                    ),
                ),
                ("rejected_reason", models.TextField(blank=True, default="")),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                (
                    "processed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="processed_payout_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "vendor",
                    models.ForeignKey(
                        help_text="Vendor requesting the payout",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payout_requests",
                        to="earnings.vendor",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["vendor", "status"], name="payout_req_vendor_status_idx"
                    ),
                    models.Index(
                        fields=["status", "created_at"], name="payout_req_status_created_idx"
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount_cents__gt", 0)),
                        name="payout_request_amount_positive",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("status", "requested")),
                        fields=("vendor",),
                        name="payout_request_one_requested_per_vendor",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PayoutItemAudit",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "payout_cents",
                    models.PositiveBigIntegerField(
                        help_text="Vendor share of the item at request time"
                    ),
                ),
                (
                    "manually_marked_paid",
                    models.BooleanField(
                        default=False,
                        help_text="Operator confirmed this item was paid outside the flow",
                    ),
                ),
                (
                    "line_item",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payout_audit",
                        to="earnings.fulfilledlineitem",
                    ),
                ),
                (
                    "payout_request",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="audit_items",
                        to="earnings.payoutrequest",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
    ]
