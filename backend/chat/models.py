import uuid
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone


def default_message_request_expiry():
    return timezone.now() + timedelta(days=settings.MESSAGE_REQUEST_TTL_DAYS)


class Chat(models.Model):
    """One-to-one conversation. At most one chat exists per unordered pair of users."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    participants = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through='ChatParticipant',
        related_name='chats'
    )
    # "<low id>:<high id>"
    pair_key = models.CharField(max_length=50, unique=True)
    is_active = models.BooleanField(default=True)
    last_message = models.ForeignKey(
        'Message', null=True, blank=True,
        on_delete=models.SET_NULL, related_name='+'
    )
    last_message_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'chats'
        ordering = ['-updated_at']

    def __str__(self):
        return f'Chat {self.id} ({self.pair_key})'

    @staticmethod
    def make_pair_key(a_id, b_id):
        low, high = sorted([int(a_id), int(b_id)])
        return f'{low}:{high}'

    def participant_for(self, user):
        return self.chat_participants.filter(user=user).first()

    def other_participant(self, user):
        """The other user's participant row"""
        return self.chat_participants.exclude(user=user).select_related('user').first()


class ChatParticipant(models.Model):
    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name='chat_participants')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='chat_participations'
    )
    is_archived = models.BooleanField(default=False)
    is_pinned = models.BooleanField(default=False)
    is_muted = models.BooleanField(default=False)
    unread_count = models.PositiveIntegerField(default=0)
    last_read_at = models.DateTimeField(null=True, blank=True)
    archived_at = models.DateTimeField(null=True, blank=True)
    pinned_at = models.DateTimeField(null=True, blank=True)
    muted_at = models.DateTimeField(null=True, blank=True)
    # Messages older than this are hidden from this participant
    deleted_at = models.DateTimeField(null=True, blank=True)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'chat_participants'
        unique_together = ['chat', 'user']
        indexes = [
            models.Index(fields=['user', 'is_archived'], name='chatpart_user_archived'),
        ]

    def __str__(self):
        return f'{self.user_id} in {self.chat_id}'


class Message(models.Model):
    TYPE_TEXT = 'text'
    MSG_TYPES = [
        ('text', 'Text'),
        ('image', 'Image'),
        ('video', 'Video'),
        ('audio', 'Audio'),
        ('document', 'Document'),
    ]
    MEDIA_TYPES = ('image', 'video', 'audio', 'document')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_messages'
    )
    message_type = models.CharField(max_length=10, choices=MSG_TYPES, default=TYPE_TEXT)
    content = models.TextField(max_length=4096, blank=True, default='')
    # Media
    media = models.FileField(upload_to='chat_media/%Y/%m/', null=True, blank=True)
    media_name = models.CharField(max_length=255, blank=True, default='')
    media_mime = models.CharField(max_length=100, blank=True, default='')
    media_size = models.BigIntegerField(null=True, blank=True)
    # Reply
    reply_to = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='replies'
    )
    # Forwarding
    is_forwarded = models.BooleanField(default=False)
    forwarded_from = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='forwards'
    )
    # State
    is_edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)
    edit_history = models.JSONField(default=list, blank=True)
    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'messages'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['chat', 'created_at'], name='message_chat_created'),
            models.Index(fields=['sender', 'created_at'], name='message_sender_created'),
        ]

    def __str__(self):
        return f'{self.message_type} from {self.sender_id} in {self.chat_id}'

    def can_edit(self):
        """Text messages can only be edited within the edit window"""
        if self.is_deleted or self.message_type != self.TYPE_TEXT:
            return False
        return (timezone.now() - self.created_at).total_seconds() < settings.MESSAGE_EDIT_WINDOW_SECONDS

    def preview(self):
        if self.is_deleted:
            return 'This message was deleted'
        if self.message_type == self.TYPE_TEXT:
            return self.content[:100]
        return f'[{self.get_message_type_display()}]'


class MessageStatus(models.Model):
    STATUS_CHOICES = [
        ('delivered', 'Delivered'),
        ('read', 'Read'),
    ]
    message = models.ForeignKey(Message, on_delete=models.CASCADE, related_name='statuses')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='message_statuses'
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='delivered')
    timestamp = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'message_statuses'
        unique_together = ['message', 'user']

    def __str__(self):
        return f'{self.message_id} -> {self.user_id}: {self.status}'


class MessageReaction(models.Model):
    message = models.ForeignKey(Message, on_delete=models.CASCADE, related_name='reactions')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='message_reactions'
    )
    emoji = models.CharField(max_length=10)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'message_reactions'
        unique_together = ['message', 'user']

    def __str__(self):
        return f'{self.user_id} reacted {self.emoji} to {self.message_id}'


class MessageRequest(models.Model):
    """Consent gate before two users without a messaging relationship may open a chat."""
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'
    STATUS_EXPIRED = 'expired'
    STATUSES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_EXPIRED, 'Expired'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_message_requests'
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_message_requests'
    )
    status = models.CharField(max_length=10, choices=STATUSES, default=STATUS_PENDING)
    message = models.CharField(max_length=500, blank=True, default='')
    response_message = models.CharField(max_length=200, blank=True, default='')
    chat = models.ForeignKey(
        Chat, null=True, blank=True, on_delete=models.SET_NULL, related_name='message_requests'
    )
    requested_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(default=default_message_request_expiry)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'message_requests'
        unique_together = ['from_user', 'to_user']
        ordering = ['-requested_at']
        indexes = [
            models.Index(fields=['to_user', 'status'], name='msgreq_to_status'),
            models.Index(fields=['from_user', 'status'], name='msgreq_from_status'),
            models.Index(fields=['status', 'expires_at'], name='msgreq_status_expires'),
        ]

    def __str__(self):
        return f'Message request {self.from_user_id} -> {self.to_user_id} ({self.status})'

    def is_expired(self):
        return timezone.now() > self.expires_at
