from rest_framework import serializers
from .models import Notification, ActivityLog

# Keyword -> activity type, first match wins.
ACTIVITY_TYPES = [
    ("login", "auth"),
    ("logout", "auth"),
    ("registered", "auth"),
    ("password", "auth"),
    ("consultation", "consultation"),
    ("call", "call"),
    ("offer", "match"),
    ("request", "match"),
    ("assigned", "match"),
    ("document", "document"),
    ("chat", "chat"),
    ("message", "chat"),
    ("connection", "chat"),
    ("case", "case"),
]


def activity_type(action):
    action = action.lower()
    for keyword, kind in ACTIVITY_TYPES:
        if keyword in action:
            return kind
    return "other"


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'kind', 'message', 'data', 'created_at', 'is_read']


class ActivityLogSerializer(serializers.ModelSerializer):
    type = serializers.SerializerMethodField()

    class Meta:
        model = ActivityLog
        fields = ['id', 'action', 'timestamp', 'details', 'type']

    def get_type(self, obj):
        return activity_type(obj.action)
