import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


class Call(models.Model):
    STATUS_RINGING = 'ringing'
    STATUS_ONGOING = 'ongoing'
    STATUS_ENDED = 'ended'
    STATUS_MISSED = 'missed'
    STATUS_REJECTED = 'rejected'
    CALL_TYPES = [('audio', 'Audio'), ('video', 'Video')]
    CALL_STATUS = [
        (STATUS_RINGING, 'Ringing'),
        (STATUS_ONGOING, 'Ongoing'),
        (STATUS_ENDED, 'Ended'),
        (STATUS_MISSED, 'Missed'),
        (STATUS_REJECTED, 'Rejected'),
    ]
    ACTIVE_STATUSES = (STATUS_RINGING, STATUS_ONGOING)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    chat = models.ForeignKey(
        'chat.Chat', on_delete=models.CASCADE, related_name='calls'
    )
    call_type = models.CharField(max_length=10, choices=CALL_TYPES)
    status = models.CharField(max_length=10, choices=CALL_STATUS, default=STATUS_RINGING)
    initiated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='initiated_calls'
    )
    end_reason = models.CharField(max_length=20, blank=True, default='')
    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    ended_at = models.DateTimeField(null=True, blank=True)
    duration = models.IntegerField(default=0, help_text='Duration in seconds')

    class Meta:
        db_table = 'calls'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['initiated_by', '-created_at'], name='call_initiator_created'),
            models.Index(fields=['chat', 'status'], name='call_chat_status'),
            models.Index(fields=['status', 'created_at'], name='call_status_created'),
        ]

    def __str__(self):
        return f'{self.call_type} call by {self.initiated_by_id} ({self.status})'

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    def finish(self, reason):
        """Close the call: unanswered calls become missed, answered ones ended with a duration."""
        self.ended_at = timezone.now()
        if self.status == self.STATUS_ONGOING and self.started_at:
            self.status = self.STATUS_ENDED
            self.duration = int((self.ended_at - self.started_at).total_seconds())
        else:
            self.status = self.STATUS_MISSED
        self.end_reason = reason
        self.save(update_fields=['status', 'ended_at', 'duration', 'end_reason'])
        self.participants.filter(left_at__isnull=True, joined_at__isnull=False).update(left_at=self.ended_at)


class CallParticipant(models.Model):
    call = models.ForeignKey(Call, on_delete=models.CASCADE, related_name='participants')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='call_participations'
    )
    joined_at = models.DateTimeField(null=True, blank=True)
    left_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'call_participants'
        unique_together = ['call', 'user']

    def __str__(self):
        return f'{self.user_id} in call {self.call_id}'
