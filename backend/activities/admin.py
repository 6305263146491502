from django.contrib import admin

from .models import Activity


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "is_base_due", "deleted_at")
    list_filter = ("is_base_due",)
    search_fields = ("name",)
