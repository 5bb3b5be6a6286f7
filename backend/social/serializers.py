from rest_framework import serializers

from accounts.serializers import UserPublicSerializer
from .models import Block, Follow, FollowRequest, UserReport


class FollowRequestCreateSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    message = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class FollowRequestSerializer(serializers.ModelSerializer):
    requester = UserPublicSerializer(read_only=True)
    recipient = UserPublicSerializer(read_only=True)

    class Meta:
        model = FollowRequest
        fields = ['id', 'requester', 'recipient', 'status', 'message',
                  'responded_at', 'expires_at', 'created_at']
        read_only_fields = fields


class FollowerSerializer(serializers.ModelSerializer):
    user = UserPublicSerializer(source='follower', read_only=True)

    class Meta:
        model = Follow
        fields = ['user', 'created_at']


class FollowingSerializer(serializers.ModelSerializer):
    user = UserPublicSerializer(source='following', read_only=True)

    class Meta:
        model = Follow
        fields = ['user', 'created_at']


class BlockedUserSerializer(serializers.ModelSerializer):
    user = UserPublicSerializer(source='blocked', read_only=True)

    class Meta:
        model = Block
        fields = ['user', 'created_at']


class ReportCreateSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    report_type = serializers.CharField(required=False, allow_blank=True, default='')
    description = serializers.CharField(required=False, allow_blank=True, default='', max_length=1000)


class UserReportSerializer(serializers.ModelSerializer):
    reported_user = UserPublicSerializer(read_only=True)

    class Meta:
        model = UserReport
        fields = ['id', 'reported_user', 'report_type', 'description', 'status', 'created_at']
        read_only_fields = fields


class SocialStatsSerializer(serializers.Serializer):
    following_count = serializers.IntegerField()
    followers_count = serializers.IntegerField()
    blocked_count = serializers.IntegerField()
    blocked_by_count = serializers.IntegerField()
    pending_requests_count = serializers.IntegerField()
    sent_requests_count = serializers.IntegerField()
