import os

from django.conf import settings
from rest_framework import serializers

from cases.models import Case

from .models import Document

ALLOWED_EXTENSIONS = {
    '.pdf': 'application/pdf',
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    '.txt': 'text/plain',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
}


class DocumentSerializer(serializers.ModelSerializer):
    uploaded_by = serializers.IntegerField(source='uploaded_by.id', read_only=True)
    uploaded_by_name = serializers.CharField(source='uploaded_by.name', read_only=True)

    class Meta:
        model = Document
        fields = [
            'id', 'title', 'filename', 'mime_type', 'size', 'document_type', 'description',
            'case', 'uploaded_by', 'uploaded_by_name', 'uploaded_at',
        ]
        read_only_fields = fields


class DocumentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    title = serializers.CharField(required=False, allow_blank=True, max_length=255)
    document_type = serializers.ChoiceField(choices=Document.TYPE_CHOICES, default='other')
    description = serializers.CharField(required=False, allow_blank=True, max_length=500)
    case = serializers.PrimaryKeyRelatedField(queryset=Case.objects.all(), required=False, allow_null=True)

    def validate_file(self, value):
        extension = os.path.splitext(value.name)[1].lower()
        if extension not in ALLOWED_EXTENSIONS:
            raise serializers.ValidationError("Unsupported file type")
        if value.size > settings.MAX_UPLOAD_SIZE:
            raise serializers.ValidationError(
                f"File too large (max {settings.MAX_UPLOAD_SIZE // (1024 * 1024)} MB)"
            )
        return value

    def validate_case(self, value):
        user = self.context['request'].user
        if value is not None and not value.is_participant(user):
            raise serializers.ValidationError("You can only attach documents to your own cases")
        return value
