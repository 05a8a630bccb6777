import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Discount",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(db_index=True, max_length=64, unique=True)),
                ("name", models.CharField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("percentage", "Percentage"),
                            ("fixed_amount", "Fixed amount"),
                            ("free_shipping", "Free shipping"),
                            ("buy_x_get_y", "Buy X get Y"),
                            ("bulk_discount", "Bulk discount"),
                        ],
                        default="percentage",
                        max_length=32,
                    ),
                ),
                (
                    "value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Percent (e.g. 10.00) for percentage/bulk; currency amount for fixed_amount.",
                        max_digits=12,
                    ),
                ),
                ("minimum_order_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("maximum_discount_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("minimum_quantity", models.PositiveIntegerField(blank=True, null=True)),
                ("buy_quantity", models.PositiveIntegerField(blank=True, null=True)),
                ("get_quantity", models.PositiveIntegerField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("is_stackable", models.BooleanField(default=False)),
                (
                    "is_seasonal",
                    models.BooleanField(
                        default=False,
                        help_text="Seasonal discounts apply automatically (no code needed) while valid.",
                    ),
                ),
                ("valid_from", models.DateTimeField(default=django.utils.timezone.now)),
                ("valid_to", models.DateTimeField(blank=True, null=True)),
                ("usage_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("usage_count", models.PositiveIntegerField(default=0)),
                ("applicable_products", models.JSONField(blank=True, default=list)),
                ("applicable_categories", models.JSONField(blank=True, default=list)),
                ("applicable_users", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["type", "is_active"], name="discount_type_active_idx")],
            },
        ),
        migrations.CreateModel(
            name="Promotion",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("coupon", "Coupon"),
                            ("seasonal", "Seasonal"),
                            ("loyalty", "Loyalty"),
                            ("bulk", "Bulk"),
                            ("first_time", "First time"),
                            ("birthday", "Birthday"),
                            ("referral", "Referral"),
                        ],
                        default="coupon",
                        max_length=32,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("valid_from", models.DateTimeField(default=django.utils.timezone.now)),
                ("valid_to", models.DateTimeField(blank=True, null=True)),
                ("conditions", models.JSONField(blank=True, default=list)),
                ("rewards", models.JSONField(blank=True, default=list)),
                ("usage_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("usage_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="TaxRate",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("region", models.CharField(blank=True, max_length=128)),
                ("country", models.CharField(db_index=True, max_length=64)),
                ("state", models.CharField(blank=True, max_length=64, null=True)),
                ("city", models.CharField(blank=True, max_length=128, null=True)),
                ("postal_code", models.CharField(blank=True, max_length=32, null=True)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("vat", "Value Added Tax"),
                            ("gst", "Goods and Services Tax"),
                            ("sales_tax", "Sales Tax"),
                            ("consumption_tax", "Consumption Tax"),
                        ],
                        default="sales_tax",
                        max_length=32,
                    ),
                ),
                ("rate", models.DecimalField(decimal_places=3, help_text="Percent, e.g. 8.875", max_digits=6)),
                ("is_inclusive", models.BooleanField(default=False)),
                ("applicable_products", models.JSONField(blank=True, default=list)),
                ("applicable_categories", models.JSONField(blank=True, default=list)),
                ("is_active", models.BooleanField(default=True)),
                ("valid_from", models.DateTimeField(default=django.utils.timezone.now)),
                ("valid_to", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["country", "state", "city", "postal_code"],
                "indexes": [models.Index(fields=["country", "state", "city"], name="taxrate_location_idx")],
            },
        ),
        migrations.CreateModel(
            name="DiscountUsage",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_id", models.CharField(blank=True, max_length=128, null=True)),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        help_text="Cart / checkout session / order reference the discount was used for.",
                        max_length=128,
                    ),
                ),
                ("savings", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("used_at", models.DateTimeField(auto_now_add=True)),
                (
                    "discount",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usages",
                        to="pricing.discount",
                    ),
                ),
            ],
            options={
                "ordering": ["-used_at"],
            },
        ),
        migrations.CreateModel(
            name="PromotionUsage",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_id", models.CharField(blank=True, max_length=128, null=True)),
                ("reference", models.CharField(blank=True, max_length=128)),
                ("item_count", models.PositiveIntegerField(default=0)),
                ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("applied_at", models.DateTimeField(auto_now_add=True)),
                (
                    "promotion",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usages",
                        to="pricing.promotion",
                    ),
                ),
            ],
            options={
                "ordering": ["-applied_at"],
            },
        ),
    ]
