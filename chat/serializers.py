from rest_framework import serializers

from .models import ChatRoom, DirectConnection, Message


class ParticipantSerializer(serializers.Serializer):
    id = serializers.IntegerField(source='user.id')
    name = serializers.CharField(source='user.name')
    role = serializers.CharField()
    last_read_at = serializers.DateTimeField()


class MessageSerializer(serializers.ModelSerializer):
    sender_id = serializers.IntegerField(source='sender.id', read_only=True)
    sender_name = serializers.CharField(source='sender.name', read_only=True)

    class Meta:
        model = Message
        fields = ['id', 'sender_id', 'sender_name', 'content', 'message_type', 'created_at']
        read_only_fields = ['id', 'sender_id', 'sender_name', 'message_type', 'created_at']

    def validate_content(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Message cannot be empty")
        return value


class ChatRoomSerializer(serializers.ModelSerializer):
    chatId = serializers.CharField(source='chat_id', read_only=True)
    participants = ParticipantSerializer(source='memberships', many=True, read_only=True)
    case_id = serializers.IntegerField(read_only=True)
    last_message = serializers.SerializerMethodField()

    class Meta:
        model = ChatRoom
        fields = ['chatId', 'chat_type', 'status', 'case_id', 'participants', 'last_message', 'last_message_at', 'created_at']

    def get_last_message(self, obj):
        message = obj.messages.filter(is_deleted=False).order_by('-created_at', '-id').first()
        return MessageSerializer(message).data if message else None


class DirectConnectionSerializer(serializers.ModelSerializer):
    citizen_name = serializers.CharField(source='citizen.name', read_only=True)
    lawyer_name = serializers.CharField(source='lawyer.name', read_only=True)
    chatId = serializers.CharField(source='room.chat_id', read_only=True, default=None)

    class Meta:
        model = DirectConnection
        fields = ['id', 'citizen', 'citizen_name', 'lawyer', 'lawyer_name', 'message', 'status', 'chatId', 'created_at', 'responded_at']
        read_only_fields = ['id', 'citizen', 'status', 'created_at', 'responded_at']


class CreateDirectConnectionSerializer(serializers.Serializer):
    lawyer_id = serializers.IntegerField()
    message = serializers.CharField(required=False, allow_blank=True, max_length=500)
