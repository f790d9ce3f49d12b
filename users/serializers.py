from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.db import transaction
from rest_framework import serializers

from .gate import verification_info
from .models import LawyerProfile

User = get_user_model()


class LawyerProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = LawyerProfile
        fields = [
            'bar_registration_number',
            'specialization',
            'experience',
            'education',
            'verification_status',
            'verification_notes',
            'consultation_fee',
            'bio',
        ]
        read_only_fields = ['verification_status', 'verification_notes']

    def validate_specialization(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) and item.strip() for item in value):
            raise serializers.ValidationError("Specialization must be a list of non-empty strings")
        return [item.strip() for item in value]


class UserSerializer(serializers.ModelSerializer):
    lawyer_details = LawyerProfileSerializer(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'name', 'phone', 'role', 'is_verified', 'is_active', 'lawyer_details', 'date_joined']
        read_only_fields = fields


class ProfileSerializer(serializers.ModelSerializer):
    """Current user's own view: editable contact fields plus verification info."""

    lawyer_details = LawyerProfileSerializer(required=False)
    verification = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'name', 'phone', 'role', 'is_verified', 'is_active', 'lawyer_details', 'verification']
        read_only_fields = ['id', 'username', 'email', 'role', 'is_verified', 'is_active']

    def get_verification(self, obj):
        if not obj.is_lawyer:
            return None
        return verification_info(obj)

    def update(self, instance, validated_data):
        details = validated_data.pop('lawyer_details', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if details and instance.is_lawyer:
            profile, _ = LawyerProfile.objects.get_or_create(user=instance)
            for attr, value in details.items():
                setattr(profile, attr, value)
            profile.save()
        return instance


class LawyerListSerializer(serializers.ModelSerializer):
    specialization = serializers.JSONField(source='lawyer_details.specialization', read_only=True)
    experience = serializers.IntegerField(source='lawyer_details.experience', read_only=True)
    education = serializers.CharField(source='lawyer_details.education', read_only=True)
    consultation_fee = serializers.DecimalField(source='lawyer_details.consultation_fee', max_digits=10, decimal_places=2, read_only=True)
    bio = serializers.CharField(source='lawyer_details.bio', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'specialization', 'experience', 'education', 'consultation_fee', 'bio']


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(
        choices=[User.ROLE_CITIZEN, User.ROLE_LAWYER, User.ROLE_LAW_STUDENT],
        default=User.ROLE_CITIZEN,
    )
    lawyer_details = LawyerProfileSerializer(required=False)

    class Meta:
        model = User
        fields = ['username', 'email', 'name', 'phone', 'password', 'role', 'lawyer_details']
        extra_kwargs = {'email': {'required': True}}

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists")
        return value

    def validate_password(self, value):
        validate_password(value)
        return value

    def validate(self, attrs):
        if attrs.get('role') == User.ROLE_LAWYER:
            details = attrs.get('lawyer_details') or {}
            if not details.get('bar_registration_number'):
                raise serializers.ValidationError(
                    {"lawyer_details": "Bar registration number is required for lawyers"}
                )
        elif attrs.get('lawyer_details'):
            raise serializers.ValidationError({"lawyer_details": "Only lawyers can provide lawyer details"})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        details = validated_data.pop('lawyer_details', None)
        password = validated_data.pop('password')
        user = User(**validated_data)
        user.set_password(password)
        user.save()

        if user.is_lawyer:
            LawyerProfile.objects.create(user=user, **(details or {}))
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField(required=False)
    username = serializers.CharField(required=False)
    password = serializers.CharField(write_only=True)


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    def validate_new_password(self, value):
        validate_password(value, self.context['request'].user)
        return value


class PasswordResetRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()


class PasswordResetConfirmSerializer(serializers.Serializer):
    uidb64 = serializers.CharField()
    token = serializers.CharField()
    password = serializers.CharField(write_only=True)


class LawyerVerificationSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[LawyerProfile.STATUS_VERIFIED, LawyerProfile.STATUS_REJECTED], required=False)
    action = serializers.ChoiceField(choices=['approve', 'reject'], required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate(self, attrs):
        if attrs.get('status'):
            return attrs
        if attrs.get('action'):
            attrs['status'] = LawyerProfile.STATUS_VERIFIED if attrs['action'] == 'approve' else LawyerProfile.STATUS_REJECTED
            return attrs
        raise serializers.ValidationError(
            "Use 'verified'/'rejected' for status or 'approve'/'reject' for action"
        )


class UserStatusSerializer(serializers.Serializer):
    is_active = serializers.BooleanField()
