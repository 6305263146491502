from rest_framework import serializers

from .models import Member


class MemberSerializer(serializers.ModelSerializer):
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = Member
        fields = [
            "id",
            "member_number",
            "first_name",
            "last_name",
            "display_name",
            "email",
            "dni",
            "date_of_birth",
            "is_active",
            "joined_at",
            "left_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "member_number",
            "is_active",
            "joined_at",
            "left_at",
            "created_at",
            "updated_at",
        ]
        # Uniqueness among live rows is checked by the service layer.
        validators = []

    def validate_first_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("El nombre debe tener al menos 2 caracteres")
        return value

    def validate_last_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("El apellido debe tener al menos 2 caracteres")
        return value

    def validate_dni(self, value):
        value = str(value or "").strip()
        if value and not value.isdigit():
            raise serializers.ValidationError("El DNI solo puede contener números")
        return value
