from rest_framework import serializers

from .models import Activity


class ActivitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Activity
        fields = [
            "id",
            "name",
            "description",
            "price",
            "is_base_due",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["created_at", "updated_at"]
        validators = []
        extra_kwargs = {
            "name": {"min_length": 3, "max_length": 100},
            "description": {"max_length": 500, "required": False},
            # Negative prices are rejected by the service with a business message.
            "price": {"min_value": None},
        }
