from django.contrib import admin

from .models import InventoryRecord, RoomType, SpecialDay


@admin.register(RoomType)
class RoomTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "base_price", "currency", "total_rooms", "is_active")
    list_filter = ("is_active", "currency")
    search_fields = ("name",)


@admin.register(InventoryRecord)
class InventoryRecordAdmin(admin.ModelAdmin):
    list_display = ("room_type", "date", "available_rooms", "updated_at")
    list_filter = ("room_type",)
    date_hierarchy = "date"
    # Counts change only through the inventory ledger.
    readonly_fields = ("room_type", "date", "available_rooms", "updated_at")

    def has_add_permission(self, request):  # type: ignore
        return False


@admin.register(SpecialDay)
class SpecialDayAdmin(admin.ModelAdmin):
    list_display = ("date", "room_type", "rule_type", "rate_type", "rate_value", "is_active")
    list_filter = ("rule_type", "is_active", "room_type")
    date_hierarchy = "date"
