from rest_framework import serializers

from .models import Call


class CallParticipantSerializer(serializers.Serializer):
    id = serializers.IntegerField(source='user.id')
    name = serializers.CharField(source='user.name')
    role = serializers.CharField()
    joined_at = serializers.DateTimeField()
    left_at = serializers.DateTimeField()


class CallSerializer(serializers.ModelSerializer):
    callId = serializers.UUIDField(source='call_id', read_only=True)
    chatId = serializers.CharField(source='room.chat_id', read_only=True)
    initiator_id = serializers.IntegerField(source='initiator.id', read_only=True)
    initiator_name = serializers.CharField(source='initiator.name', read_only=True)
    participants = CallParticipantSerializer(source='memberships', many=True, read_only=True)

    class Meta:
        model = Call
        fields = [
            'callId', 'chatId', 'call_type', 'status', 'initiator_id', 'initiator_name', 'participants',
            'started_at', 'answered_at', 'ended_at', 'duration', 'end_reason',
        ]


class InitiateCallSerializer(serializers.Serializer):
    target_user_id = serializers.IntegerField()
    call_type = serializers.ChoiceField(choices=Call.TYPE_CHOICES)
    chat_id = serializers.CharField(max_length=64)


class EndCallSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=Call.END_REASON_CHOICES, required=False)
