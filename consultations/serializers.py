from rest_framework import serializers

from cases.serializers import UserSummarySerializer

from .models import Consultation


class ConsultationSerializer(serializers.ModelSerializer):
    citizen = UserSummarySerializer(read_only=True)
    lawyer = UserSummarySerializer(read_only=True)
    case_id = serializers.IntegerField(source='case.id', read_only=True, default=None)

    class Meta:
        model = Consultation
        fields = [
            'id', 'title', 'description', 'citizen', 'lawyer', 'case_id', 'consultation_type', 'status',
            'scheduled_at', 'duration_minutes', 'fee', 'currency', 'meeting_link', 'lawyer_notes',
            'cancellation_reason', 'cancelled_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ConsultationRequestSerializer(serializers.Serializer):
    lawyer_id = serializers.IntegerField()
    scheduled_at = serializers.DateTimeField()
    consultation_type = serializers.ChoiceField(choices=Consultation.TYPE_CHOICES, default='video')
    duration_minutes = serializers.IntegerField(min_value=15, max_value=180, default=30)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    case_id = serializers.IntegerField(required=False, allow_null=True)


class ConsultationStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Consultation.LAWYER_STATUSES)
    meeting_link = serializers.URLField(required=False, allow_blank=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)


class ConsultationCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True)
