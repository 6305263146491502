from rest_framework import serializers

from .models import Attendance


class DecisionSerializer(serializers.Serializer):
    member_id = serializers.IntegerField()
    member_number = serializers.CharField()
    member_name = serializers.CharField()
    dni = serializers.CharField()
    access_granted = serializers.BooleanField()
    message = serializers.CharField()
    status = serializers.CharField()
    balance_due = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    valid_until = serializers.DateField(allow_null=True)
    activities = serializers.ListField(child=serializers.CharField())


class AttendanceSerializer(serializers.ModelSerializer):
    member_id = serializers.IntegerField(source="member.id", read_only=True)
    member_number = serializers.CharField(source="member.member_number", read_only=True)
    member_name = serializers.CharField(source="member.display_name", read_only=True)
    dni = serializers.CharField(source="member.dni", read_only=True)

    class Meta:
        model = Attendance
        fields = ["id", "member_id", "member_number", "member_name", "dni", "entered_at"]
        read_only_fields = fields


class AttendanceQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    member_id = serializers.IntegerField(required=False, min_value=1)
