from django.contrib import admin
from .models import Chat, ChatParticipant, Message, MessageReaction, MessageRequest, MessageStatus


class ChatParticipantInline(admin.TabularInline):
    model = ChatParticipant
    extra = 0
    raw_id_fields = ['user']


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ['id', 'pair_key', 'is_active', 'last_message_at', 'created_at']
    list_filter = ['is_active']
    search_fields = ['pair_key']
    inlines = [ChatParticipantInline]
    raw_id_fields = ['last_message']


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'chat', 'sender', 'message_type', 'is_edited', 'is_deleted', 'created_at']
    list_filter = ['message_type', 'is_deleted', 'is_edited']
    search_fields = ['sender__username', 'content']
    raw_id_fields = ['chat', 'sender', 'reply_to', 'forwarded_from', 'deleted_by']


@admin.register(MessageStatus)
class MessageStatusAdmin(admin.ModelAdmin):
    list_display = ['message', 'user', 'status', 'timestamp']
    list_filter = ['status']


@admin.register(MessageReaction)
class MessageReactionAdmin(admin.ModelAdmin):
    list_display = ['message', 'user', 'emoji', 'created_at']


@admin.register(MessageRequest)
class MessageRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'from_user', 'to_user', 'status', 'requested_at', 'expires_at']
    list_filter = ['status']
    raw_id_fields = ['from_user', 'to_user', 'chat']
