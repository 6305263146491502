from django.contrib import admin

from .models import Member, MemberNumberCounter


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ("member_number", "first_name", "last_name", "dni", "is_active", "deleted_at")
    list_filter = ("is_active",)
    search_fields = ("member_number", "first_name", "last_name", "email", "dni")


@admin.register(MemberNumberCounter)
class MemberNumberCounterAdmin(admin.ModelAdmin):
    list_display = ("prefix", "next_value", "updated_at")
