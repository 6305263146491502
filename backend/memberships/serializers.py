from django.utils import timezone
from rest_framework import serializers

from .ledger import MembershipTotals, get_membership_totals
from .models import Membership, MembershipActivity

EXPIRING_SOON_DAYS = 7

money_field = serializers.DecimalField(max_digits=12, decimal_places=2)


class MembershipActivityLineSerializer(serializers.ModelSerializer):
    activity_id = serializers.IntegerField(source="activity.id", read_only=True)
    name = serializers.CharField(source="activity.name", read_only=True)
    is_base_due = serializers.BooleanField(source="activity.is_base_due", read_only=True)

    class Meta:
        model = MembershipActivity
        fields = ["activity_id", "name", "price_at_attachment", "is_base_due"]


class MembershipSerializer(serializers.ModelSerializer):
    member_id = serializers.IntegerField(source="member.id", read_only=True)
    member_number = serializers.CharField(source="member.member_number", read_only=True)
    member_name = serializers.CharField(source="member.display_name", read_only=True)
    activities = MembershipActivityLineSerializer(source="lines", many=True, read_only=True)
    total_charged = serializers.SerializerMethodField()
    total_paid = serializers.SerializerMethodField()
    balance = serializers.SerializerMethodField()
    is_settled = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()

    class Meta:
        model = Membership
        fields = [
            "id",
            "member_id",
            "member_number",
            "member_name",
            "period_year",
            "period_month",
            "period_start",
            "period_end",
            "total_charged",
            "total_paid",
            "balance",
            "is_settled",
            "status",
            "activities",
            "created_at",
            "updated_at",
        ]

    def _totals(self, obj: Membership) -> MembershipTotals:
        cache = self.context.setdefault("_totals", {})
        if obj.pk not in cache:
            if hasattr(obj, "total_charged") and hasattr(obj, "total_paid"):
                cache[obj.pk] = MembershipTotals(obj.total_charged, obj.total_paid)
            else:
                cache[obj.pk] = get_membership_totals(obj)
        return cache[obj.pk]

    def get_total_charged(self, obj):
        return money_field.to_representation(self._totals(obj).total_charged)

    def get_total_paid(self, obj):
        return money_field.to_representation(self._totals(obj).total_paid)

    def get_balance(self, obj):
        return money_field.to_representation(self._totals(obj).balance)

    def get_is_settled(self, obj) -> bool:
        return self._totals(obj).is_settled

    def get_status(self, obj) -> str:
        today = self.context.get("today") or timezone.localdate()
        if obj.period_end < today:
            return "expired"
        if self._totals(obj).is_settled:
            return "active"
        return "payment_pending"


class MembershipCreateSerializer(serializers.Serializer):
    member_id = serializers.IntegerField()
    period_year = serializers.IntegerField()
    period_month = serializers.IntegerField()
    activity_ids = serializers.ListField(
        child=serializers.IntegerField(),
        allow_empty=True,
        default=list,
    )


class MembershipUpdateSerializer(serializers.Serializer):
    activity_ids = serializers.ListField(
        child=serializers.IntegerField(),
        allow_empty=True,
    )


class ActivityAssignmentSerializer(serializers.Serializer):
    membership_id = serializers.IntegerField()
    activity_id = serializers.IntegerField()


class MembershipHistorySerializer(serializers.Serializer):
    history_id = serializers.IntegerField()
    history_date = serializers.DateTimeField()
    history_type = serializers.CharField()
    history_user = serializers.CharField(allow_null=True)
    deleted_at = serializers.DateTimeField(allow_null=True)


class MembershipListQuerySerializer(serializers.Serializer):
    member_id = serializers.IntegerField(required=False, min_value=1)
    year = serializers.IntegerField(required=False, min_value=2000, max_value=2100)
    month = serializers.IntegerField(required=False, min_value=1, max_value=12)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    q = serializers.CharField(required=False, allow_blank=True)
    validity = serializers.ChoiceField(
        choices=["current", "expiring", "expired"],
        required=False,
        allow_blank=True,
    )
    only_unpaid = serializers.BooleanField(required=False, default=False)
