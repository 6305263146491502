from django.contrib import admin

from .models import Attendance


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ("member", "entered_at", "deleted_at")
    list_filter = ("entered_at",)
    search_fields = ("member__member_number", "member__dni", "member__last_name")
    date_hierarchy = "entered_at"
