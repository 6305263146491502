from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from .models import Payment, PaymentMethod


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active")


@admin.register(Payment)
class PaymentAdmin(SimpleHistoryAdmin):
    list_display = ("id", "membership", "payment_method", "amount", "paid_at", "deleted_at")
    list_filter = ("payment_method", "paid_at")
    search_fields = ("membership__member__member_number", "membership__member__last_name")
    readonly_fields = ("membership", "amount", "created_at", "updated_at")
