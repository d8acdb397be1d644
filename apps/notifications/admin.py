from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "type", "channel", "status", "attempts", "is_read", "created_at")
    list_filter = ("channel", "status", "type", "is_read")
    search_fields = ("title", "user__email")
    readonly_fields = ("dispatch_key", "attempts", "sent_at", "created_at")
