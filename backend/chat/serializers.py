from rest_framework import serializers

from accounts.serializers import UserPublicSerializer
from .models import ChatParticipant, Message, MessageReaction, MessageRequest, MessageStatus


class MessageStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = MessageStatus
        fields = ['user', 'status', 'timestamp']


class ReactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = MessageReaction
        fields = ['user', 'emoji', 'created_at']


class MessageSerializer(serializers.ModelSerializer):
    sender = UserPublicSerializer(read_only=True)
    statuses = MessageStatusSerializer(many=True, read_only=True)
    reactions = ReactionSerializer(many=True, read_only=True)
    media_url = serializers.SerializerMethodField()
    reply_to_preview = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = [
            'id', 'chat', 'sender', 'message_type', 'content',
            'media_url', 'media_name', 'media_mime', 'media_size',
            'reply_to', 'reply_to_preview', 'is_forwarded', 'forwarded_from',
            'is_edited', 'edited_at', 'is_deleted', 'deleted_at',
            'statuses', 'reactions', 'created_at',
        ]
        read_only_fields = fields

    def get_media_url(self, obj):
        if obj.is_deleted or not obj.media:
            return None
        request = self.context.get('request')
        if request:
            return request.build_absolute_uri(obj.media.url)
        return obj.media.url

    def get_reply_to_preview(self, obj):
        if not obj.reply_to:
            return None
        return {
            'id': str(obj.reply_to.id),
            'sender_id': obj.reply_to.sender_id,
            'preview': obj.reply_to.preview(),
        }


class MessageEditHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Message
        fields = ['id', 'content', 'is_edited', 'edited_at', 'edit_history']


class SendMessageSerializer(serializers.Serializer):
    message_type = serializers.ChoiceField(choices=[c[0] for c in Message.MSG_TYPES], default='text')
    content = serializers.CharField(required=False, allow_blank=True, default='')
    media = serializers.FileField(required=False)
    reply_to = serializers.UUIDField(required=False, allow_null=True)


class ChatListSerializer(serializers.ModelSerializer):
    """A chat as seen by one participant (serializes the ChatParticipant row)."""
    id = serializers.UUIDField(source='chat.id')
    other_user = serializers.SerializerMethodField()
    last_message = serializers.SerializerMethodField()
    last_message_at = serializers.DateTimeField(source='chat.last_message_at')
    is_active = serializers.BooleanField(source='chat.is_active')
    created_at = serializers.DateTimeField(source='chat.created_at')

    class Meta:
        model = ChatParticipant
        fields = [
            'id', 'other_user', 'last_message', 'last_message_at',
            'unread_count', 'is_archived', 'is_pinned', 'is_muted',
            'is_active', 'created_at',
        ]

    def get_other_user(self, obj):
        for participant in obj.chat.chat_participants.all():
            if participant.user_id != obj.user_id:
                return UserPublicSerializer(participant.user, context=self.context).data
        return None

    def get_last_message(self, obj):
        message = obj.chat.last_message
        if message is None:
            return None
        if obj.deleted_at and message.created_at <= obj.deleted_at:
            return None
        return {
            'id': str(message.id),
            'sender_id': message.sender_id,
            'message_type': message.message_type,
            'preview': message.preview(),
            'created_at': message.created_at,
        }


class ChatDetailSerializer(ChatListSerializer):
    archived_at = serializers.DateTimeField()
    pinned_at = serializers.DateTimeField()
    muted_at = serializers.DateTimeField()
    last_read_at = serializers.DateTimeField()

    class Meta(ChatListSerializer.Meta):
        fields = ChatListSerializer.Meta.fields + ['archived_at', 'pinned_at', 'muted_at', 'last_read_at']


class ChatSettingsSerializer(serializers.Serializer):
    is_archived = serializers.BooleanField(required=False)
    is_pinned = serializers.BooleanField(required=False)
    is_muted = serializers.BooleanField(required=False)


class CreateChatSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()


class ReactionCreateSerializer(serializers.Serializer):
    emoji = serializers.CharField(max_length=10)


class ForwardMessageSerializer(serializers.Serializer):
    chat_id = serializers.UUIDField()


class EditMessageSerializer(serializers.Serializer):
    content = serializers.CharField(allow_blank=True)


class MessageRequestCreateSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    message = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class MessageRequestResponseSerializer(serializers.Serializer):
    response_message = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class MessageRequestSerializer(serializers.ModelSerializer):
    from_user = UserPublicSerializer(read_only=True)
    to_user = UserPublicSerializer(read_only=True)

    class Meta:
        model = MessageRequest
        fields = [
            'id', 'from_user', 'to_user', 'status', 'message', 'response_message',
            'chat', 'requested_at', 'responded_at', 'expires_at',
        ]
        read_only_fields = fields


class MessageSearchSerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, default='')
    chat_id = serializers.UUIDField(required=False, allow_null=True)
