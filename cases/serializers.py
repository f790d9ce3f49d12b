from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import Case, CaseEvent, MatchEntry

User = get_user_model()


class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'role']


class CaseEventSerializer(serializers.ModelSerializer):
    performed_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = CaseEvent
        fields = ['action', 'description', 'performed_by', 'created_at']


class CaseSerializer(serializers.ModelSerializer):
    created_by = UserSummarySerializer(read_only=True)
    assigned_lawyer = UserSummarySerializer(read_only=True)
    chatRoom = serializers.SerializerMethodField()

    class Meta:
        model = Case
        fields = [
            'id',
            'case_type',
            'title',
            'description',
            'category',
            'priority',
            'status',
            'dispute_value',
            'created_by',
            'assigned_lawyer',
            'chatRoom',
            'resolution_summary',
            'resolved_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'status', 'created_by', 'assigned_lawyer', 'resolution_summary', 'resolved_at', 'created_at', 'updated_at',
        ]

    def get_chatRoom(self, obj):
        return obj.chat_room

    def validate(self, attrs):
        if attrs.get('dispute_value') is not None and attrs.get('case_type') != Case.TYPE_DISPUTE:
            raise serializers.ValidationError({"dispute_value": "Only disputes carry a value"})
        return attrs


class CaseDetailSerializer(CaseSerializer):
    timeline = CaseEventSerializer(many=True, read_only=True)

    class Meta(CaseSerializer.Meta):
        fields = CaseSerializer.Meta.fields + ['timeline']


class CaseStatusSerializer(serializers.Serializer):
    SETTABLE = [
        Case.STATUS_IN_PROGRESS,
        Case.STATUS_MEDIATION,
        Case.STATUS_ARBITRATION,
        Case.STATUS_RESOLVED,
        Case.STATUS_CLOSED,
        Case.STATUS_CANCELLED,
    ]

    status = serializers.ChoiceField(choices=SETTABLE)
    resolution_summary = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class MatchEntrySerializer(serializers.ModelSerializer):
    requestId = serializers.UUIDField(source='id', read_only=True)
    lawyer = UserSummarySerializer(read_only=True)
    case = serializers.SerializerMethodField()

    class Meta:
        model = MatchEntry
        fields = [
            'requestId',
            'kind',
            'case',
            'lawyer',
            'message',
            'proposed_fee',
            'estimated_duration',
            'status',
            'response',
            'created_at',
            'responded_at',
        ]

    def get_case(self, obj):
        return {"id": obj.case_id, "case_type": obj.case.case_type, "title": obj.case.title}


class CreateRequestSerializer(serializers.Serializer):
    lawyer_id = serializers.IntegerField()
    message = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    proposed_fee = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True, min_value=0)


class CreateOfferSerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    proposed_fee = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True, min_value=0)
    estimated_duration = serializers.CharField(required=False, allow_blank=True, max_length=100)


class RespondSerializer(serializers.Serializer):
    response = serializers.CharField(required=False, allow_blank=True, max_length=1000)
