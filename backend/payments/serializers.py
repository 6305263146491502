from rest_framework import serializers

from .models import Payment, PaymentMethod


class PaymentMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = ["id", "name", "is_active"]


class PaymentSerializer(serializers.ModelSerializer):
    receipt_number = serializers.CharField(read_only=True)
    member_id = serializers.IntegerField(source="membership.member_id", read_only=True)
    member_number = serializers.CharField(source="membership.member.member_number", read_only=True)
    member_name = serializers.CharField(source="membership.member.display_name", read_only=True)
    payment_method_name = serializers.CharField(source="payment_method.name", read_only=True)
    processed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            "id",
            "receipt_number",
            "membership",
            "member_id",
            "member_number",
            "member_name",
            "payment_method",
            "payment_method_name",
            "amount",
            "paid_at",
            "processed_by",
            "processed_by_name",
            "created_at",
        ]
        read_only_fields = fields

    def get_processed_by_name(self, obj) -> str:
        return obj.processed_by.display_name if obj.processed_by else "Sistema"


class PaymentCreateSerializer(serializers.Serializer):
    membership_id = serializers.IntegerField()
    payment_method_id = serializers.IntegerField()
    # Sign and balance checks live in the register so the messages stay consistent.
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    paid_at = serializers.DateTimeField(required=False, allow_null=True)


class ReceiptLineSerializer(serializers.Serializer):
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)


class ReceiptSerializer(serializers.Serializer):
    payment_id = serializers.IntegerField()
    receipt_number = serializers.CharField()
    issued_at = serializers.DateTimeField()
    member_id = serializers.IntegerField()
    member_number = serializers.CharField()
    member_name = serializers.CharField()
    membership_id = serializers.IntegerField()
    period_label = serializers.CharField()
    total_charged = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_paid_before = serializers.DecimalField(max_digits=12, decimal_places=2)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    new_balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_settled = serializers.BooleanField()
    payment_method = serializers.CharField()
    paid_at = serializers.DateTimeField()
    processed_by = serializers.CharField()
    activities = ReceiptLineSerializer(many=True)


class MethodBreakdownSerializer(serializers.Serializer):
    method = serializers.CharField()
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    count = serializers.IntegerField()


class DayBreakdownSerializer(serializers.Serializer):
    date = serializers.DateField()
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    count = serializers.IntegerField()


class PaymentStatisticsSerializer(serializers.Serializer):
    date_from = serializers.DateField(allow_null=True)
    date_to = serializers.DateField(allow_null=True)
    total_collected = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_count = serializers.IntegerField()
    collected_today = serializers.DecimalField(max_digits=14, decimal_places=2)
    collected_this_month = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_pending = serializers.DecimalField(max_digits=14, decimal_places=2)
    by_method = MethodBreakdownSerializer(many=True)
    by_day = DayBreakdownSerializer(many=True)


class StatisticsQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError("La fecha desde no puede ser posterior a la fecha hasta")
        return attrs
