from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from .models import Membership, MembershipActivity


class MembershipActivityInline(admin.TabularInline):
    model = MembershipActivity
    extra = 0
    readonly_fields = ("activity", "price_at_attachment", "created_at")
    can_delete = False


@admin.register(Membership)
class MembershipAdmin(SimpleHistoryAdmin):
    list_display = ("member", "period_year", "period_month", "period_start", "period_end", "deleted_at")
    list_filter = ("period_year", "period_month")
    search_fields = ("member__first_name", "member__last_name", "member__member_number")
    readonly_fields = ("period_start", "period_end", "created_at", "updated_at")
    inlines = [MembershipActivityInline]
