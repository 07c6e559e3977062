"""
Serializers for notifications.
"""

from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """Serializer for notification list/detail."""

    notification_type_display = serializers.CharField(
        source='get_notification_type_display',
        read_only=True
    )
    incident_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Notification
        fields = [
            'id',
            'title',
            'message',
            'notification_type',
            'notification_type_display',
            'incident_id',
            'is_read',
            'read_at',
            'created_at',
        ]
        read_only_fields = fields
