from django.contrib import admin

from .models import Cart, CartItem, CartMetadata

# =====================================================
# INLINES
# =====================================================


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "product_id",
        "variant_id",
        "quantity",
        "price",
        "original_price",
        "line_total",
        "added_at",
    )

    def has_add_permission(self, request, obj=None):
        return False


class CartMetadataInline(admin.TabularInline):
    model = CartMetadata
    extra = 0
    readonly_fields = ("created_at", "updated_at")


# =====================================================
# CART ADMIN
# =====================================================


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "user_id",
        "session_id",
        "status",
        "currency",
        "item_count",
        "subtotal_amount",
        "updated_at",
    )

    readonly_fields = (
        "id",
        "created_at",
        "updated_at",
        "subtotal_amount",
        "item_count",
    )

    search_fields = ("id", "user_id", "session_id")
    list_filter = ("status", "currency", "created_at")

    inlines = [CartItemInline, CartMetadataInline]


# =====================================================
# CART ITEM ADMIN (READ-ONLY)
# =====================================================


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "product_id", "variant_id", "quantity", "price", "line_total")
    search_fields = ("product_id", "cart__id")
    readonly_fields = (
        "id",
        "cart",
        "product_id",
        "variant_id",
        "quantity",
        "price",
        "original_price",
        "line_total",
        "category",
        "metadata",
        "added_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
