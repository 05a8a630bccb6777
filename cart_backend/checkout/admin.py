from django.contrib import admin

from .models import CheckoutSession


@admin.register(CheckoutSession)
class CheckoutSessionAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "user_id", "status", "currency", "total", "expires_at", "created_at")
    list_filter = ("status", "currency", "created_at")
    search_fields = ("id", "cart__id", "user_id", "session_id")

    readonly_fields = (
        "id",
        "cart",
        "user_id",
        "session_id",
        "coupon_codes",
        "promotion_ids",
        "shipping_address",
        "currency",
        "subtotal",
        "discount_total",
        "tax_total",
        "shipping",
        "total",
        "pricing_snapshot",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False
