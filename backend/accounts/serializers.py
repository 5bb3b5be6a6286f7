from datetime import date

from django.conf import settings
from rest_framework import serializers

from .models import User

PHONE_REGEX = r'^\+?[0-9]{7,15}$'
USERNAME_REGEX = r'^[a-zA-Z0-9_.]{3,30}$'


class SendOtpSerializer(serializers.Serializer):
    phone_number = serializers.RegexField(PHONE_REGEX, error_messages={'invalid': 'Enter a valid phone number.'})
    country_code = serializers.RegexField(r'^\+[0-9]{1,4}$', required=False)


class VerifyOtpSerializer(serializers.Serializer):
    phone_number = serializers.RegexField(PHONE_REGEX, error_messages={'invalid': 'Enter a valid phone number.'})
    otp = serializers.RegexField(r'^[0-9]{6}$', error_messages={'invalid': 'OTP must be 6 digits.'})


class UserPublicSerializer(serializers.ModelSerializer):
    avatar = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'full_name', 'avatar', 'bio', 'is_verified']

    def get_avatar(self, obj):
        if not obj.avatar:
            return None
        request = self.context.get('request')
        if request:
            return request.build_absolute_uri(obj.avatar.url)
        return obj.avatar.url


class UserProfileSerializer(UserPublicSerializer):
    class Meta:
        model = User
        fields = [
            'id', 'phone_number', 'country_code', 'username', 'full_name', 'email',
            'bio', 'gender', 'dob', 'avatar', 'location',
            'is_verified', 'is_profile_completed',
            'allow_follow_requests', 'allow_messages',
            'last_login', 'created_at',
        ]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.ModelSerializer):
    username = serializers.RegexField(
        USERNAME_REGEX, required=False,
        error_messages={'invalid': 'Username may contain letters, digits, dots and underscores (3-30).'},
    )

    class Meta:
        model = User
        fields = ['username', 'full_name', 'email', 'bio', 'gender', 'dob', 'location']

    def validate_username(self, value):
        qs = User.objects.filter(username__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('Username already taken')
        return value.lower()

    def validate_dob(self, value):
        if value is None:
            return value
        today = date.today()
        age = today.year - value.year - ((today.month, today.day) < (value.month, value.day))
        if age < settings.MINIMUM_USER_AGE:
            raise serializers.ValidationError(
                f'You must be at least {settings.MINIMUM_USER_AGE} years old to use this platform'
            )
        return value

    def update(self, instance, validated_data):
        for field, value in validated_data.items():
            setattr(instance, field, value)
        instance.is_profile_completed = bool(instance.username and instance.full_name)
        instance.save()
        return instance


class PrivacySettingsSerializer(serializers.ModelSerializer):
    allow_messages = serializers.ChoiceField(
        choices=[c[0] for c in User.MESSAGE_PRIVACY],
        required=False,
        error_messages={'invalid_choice': 'allow_messages must be one of: everyone, followers, none'},
    )

    class Meta:
        model = User
        fields = ['allow_follow_requests', 'allow_messages']


class AvatarUploadSerializer(serializers.Serializer):
    avatar = serializers.ImageField()

    def validate_avatar(self, value):
        if value.size > 10 * 1024 * 1024:
            raise serializers.ValidationError('Avatar must be smaller than 10MB')
        return value
