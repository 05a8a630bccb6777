from django.contrib import admin

from .models import Discount, DiscountUsage, Promotion, PromotionUsage, TaxRate

# =====================================================
# DISCOUNTS
# =====================================================


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "type",
        "value",
        "is_active",
        "is_stackable",
        "is_seasonal",
        "valid_from",
        "valid_to",
        "usage_count",
        "usage_limit",
    )
    list_filter = ("type", "is_active", "is_stackable", "is_seasonal")
    search_fields = ("code", "name")

    # counter is owned by the redemption path (F() increments)
    readonly_fields = ("usage_count", "created_at", "updated_at")


@admin.register(DiscountUsage)
class DiscountUsageAdmin(admin.ModelAdmin):
    list_display = ("discount", "user_id", "reference", "savings", "used_at")
    search_fields = ("discount__code", "user_id", "reference")
    readonly_fields = ("discount", "user_id", "reference", "savings", "used_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


# =====================================================
# PROMOTIONS
# =====================================================


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ("name", "type", "is_active", "valid_from", "valid_to", "usage_count", "usage_limit")
    list_filter = ("type", "is_active")
    search_fields = ("name",)
    readonly_fields = ("usage_count", "created_at", "updated_at")


@admin.register(PromotionUsage)
class PromotionUsageAdmin(admin.ModelAdmin):
    list_display = ("promotion", "user_id", "reference", "item_count", "subtotal", "applied_at")
    readonly_fields = ("promotion", "user_id", "reference", "item_count", "subtotal", "applied_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


# =====================================================
# TAX RATES
# =====================================================


@admin.register(TaxRate)
class TaxRateAdmin(admin.ModelAdmin):
    list_display = ("country", "state", "city", "postal_code", "type", "rate", "is_inclusive", "is_active")
    list_filter = ("country", "type", "is_active", "is_inclusive")
    search_fields = ("region", "country", "state", "city", "postal_code")
