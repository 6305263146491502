from rest_framework import serializers

from .models import AuditLog


class AuditLogSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source="actor.username", read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = [
            "id",
            "action",
            "message",
            "metadata",
            "actor",
            "actor_username",
            "member",
            "membership",
            "payment",
            "created_at",
        ]
        read_only_fields = fields


class AuditLogQuerySerializer(serializers.Serializer):
    action = serializers.CharField(required=False, allow_blank=True)
    actor_id = serializers.IntegerField(required=False, min_value=1)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)


class BackupFileSerializer(serializers.Serializer):
    name = serializers.CharField()
    size_bytes = serializers.IntegerField()
    created_at = serializers.DateTimeField()
