from rest_framework import serializers

from accounts.models import User
from accounts.serializers import UserPublicSerializer
from social.models import UserReport
from .models import Admin, SubAdmin


# ────────────────────────── Staff profiles ──────────────────────────

class AdminSerializer(serializers.ModelSerializer):
    role = serializers.SerializerMethodField()

    class Meta:
        model = Admin
        fields = [
            'id', 'phone_number', 'country_code', 'first_name', 'last_name', 'full_name',
            'email', 'avatar', 'is_active', 'is_verified', 'role', 'last_login', 'created_at',
        ]
        read_only_fields = fields

    def get_role(self, obj):
        return obj.ROLE


class AdminProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Admin
        fields = ['first_name', 'last_name', 'email']


class SubAdminSerializer(serializers.ModelSerializer):
    role = serializers.SerializerMethodField()
    approved_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = SubAdmin
        fields = [
            'id', 'phone_number', 'country_code', 'name', 'email', 'avatar',
            'is_active', 'is_verified', 'is_profile_completed', 'role',
            'approval_status', 'approved_by', 'approved_at', 'rejected_at', 'rejection_reason',
            'last_login', 'created_at',
        ]
        read_only_fields = fields

    def get_role(self, obj):
        return obj.ROLE


class SubAdminProfileSerializer(serializers.ModelSerializer):
    name = serializers.CharField(max_length=100)
    email = serializers.EmailField()

    class Meta:
        model = SubAdmin
        fields = ['name', 'email']

    def update(self, instance, validated_data):
        instance = super().update(instance, validated_data)
        instance.is_profile_completed = bool(instance.name and instance.email)
        instance.save(update_fields=['is_profile_completed', 'updated_at'])
        return instance


# ────────────────────────── Management ──────────────────────────

class StatusToggleSerializer(serializers.Serializer):
    is_active = serializers.BooleanField(
        error_messages={'invalid': 'is_active must be a boolean value', 'required': 'is_active must be a boolean value'},
    )


class SubAdminApprovalSerializer(serializers.Serializer):
    action = serializers.ChoiceField(
        choices=['approve', 'reject'],
        error_messages={'invalid_choice': 'Invalid action. Use "approve" or "reject"'},
    )
    rejection_reason = serializers.CharField(
        max_length=500, required=False, allow_blank=True, default='Application rejected by admin',
    )


class AdminUserListSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            'id', 'phone_number', 'username', 'full_name', 'email', 'avatar',
            'is_active', 'is_verified', 'is_profile_completed', 'created_at', 'last_login',
        ]
        read_only_fields = fields


class AdminUserDetailSerializer(serializers.ModelSerializer):
    followers_count = serializers.IntegerField(read_only=True)
    following_count = serializers.IntegerField(read_only=True)
    message_count = serializers.IntegerField(read_only=True)
    call_count = serializers.IntegerField(read_only=True)
    reports_received = serializers.IntegerField(source='reports_received_count', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'phone_number', 'country_code', 'username', 'full_name', 'email',
            'bio', 'gender', 'dob', 'avatar', 'location',
            'is_active', 'is_verified', 'is_profile_completed',
            'allow_follow_requests', 'allow_messages',
            'followers_count', 'following_count', 'message_count', 'call_count', 'reports_received',
            'created_at', 'last_login',
        ]
        read_only_fields = fields


# ────────────────────────── Reports ──────────────────────────

class AdminReportSerializer(serializers.ModelSerializer):
    reporter = UserPublicSerializer(read_only=True)
    reported_user = UserPublicSerializer(read_only=True)

    class Meta:
        model = UserReport
        fields = [
            'id', 'reporter', 'reported_user', 'report_type', 'description', 'status',
            'admin_notes', 'resolved_by_role', 'resolved_by_id', 'resolved_at',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ReportReviewSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[UserReport.STATUS_RESOLVED, UserReport.STATUS_DISMISSED],
        error_messages={'invalid_choice': 'Valid status is required'},
    )
    admin_notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')
