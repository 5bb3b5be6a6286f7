from rest_framework import serializers
from .models import Call, CallParticipant
from accounts.serializers import UserPublicSerializer


class CallParticipantSerializer(serializers.ModelSerializer):
    user = UserPublicSerializer(read_only=True)

    class Meta:
        model = CallParticipant
        fields = ['user', 'joined_at', 'left_at']


class DirectionMixin:

    def get_direction(self, obj):
        request = self.context.get('request')
        if request and request.user:
            return 'outgoing' if obj.initiated_by_id == request.user.id else 'incoming'
        return None


class CallSerializer(DirectionMixin, serializers.ModelSerializer):
    initiated_by = UserPublicSerializer(read_only=True)
    participants = CallParticipantSerializer(many=True, read_only=True)
    direction = serializers.SerializerMethodField()

    class Meta:
        model = Call
        fields = [
            'id', 'chat', 'call_type', 'status', 'end_reason', 'initiated_by',
            'participants', 'direction',
            'created_at', 'started_at', 'ended_at', 'duration',
        ]


class CallLogSerializer(DirectionMixin, serializers.ModelSerializer):
    """Simplified serializer for call log list"""
    initiated_by = UserPublicSerializer(read_only=True)
    other_party = serializers.SerializerMethodField()
    direction = serializers.SerializerMethodField()

    class Meta:
        model = Call
        fields = [
            'id', 'chat', 'call_type', 'status', 'initiated_by', 'other_party',
            'direction', 'duration', 'created_at',
        ]

    def get_other_party(self, obj):
        request = self.context.get('request')
        if request and request.user:
            for participant in obj.participants.all():
                if participant.user_id != request.user.id:
                    return UserPublicSerializer(participant.user, context=self.context).data
        return None


class InitiateCallSerializer(serializers.Serializer):
    chat_id = serializers.UUIDField()
    call_type = serializers.ChoiceField(choices=[c[0] for c in Call.CALL_TYPES], default='audio')
