import uuid
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone


def default_follow_request_expiry():
    return timezone.now() + timedelta(days=settings.FOLLOW_REQUEST_TTL_DAYS)


class Follow(models.Model):
    follower = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='following_edges'
    )
    following = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='follower_edges'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'follows'
        unique_together = ['follower', 'following']
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.follower_id} follows {self.following_id}'


class Block(models.Model):
    blocker = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='blocking_edges'
    )
    blocked = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='blocked_by_edges'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'blocks'
        unique_together = ['blocker', 'blocked']
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.blocker_id} blocked {self.blocked_id}'


class FollowRequest(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'
    STATUS_CANCELLED = 'cancelled'
    STATUS_EXPIRED = 'expired'
    STATUSES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_EXPIRED, 'Expired'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_follow_requests'
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_follow_requests'
    )
    status = models.CharField(max_length=10, choices=STATUSES, default=STATUS_PENDING)
    message = models.CharField(max_length=200, blank=True, default='')
    responded_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(default=default_follow_request_expiry)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'follow_requests'
        unique_together = ['requester', 'recipient']
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'status'], name='followreq_recipient_status'),
            models.Index(fields=['requester', 'status'], name='followreq_requester_status'),
            models.Index(fields=['status', 'expires_at'], name='followreq_status_expires'),
        ]

    def __str__(self):
        return f'Follow request {self.requester_id} -> {self.recipient_id} ({self.status})'

    def is_expired(self):
        return timezone.now() > self.expires_at


class UserReport(models.Model):
    REPORT_TYPES = [
        ('spam', 'Spam'),
        ('harassment', 'Harassment'),
        ('inappropriate_content', 'Inappropriate content'),
        ('fake_profile', 'Fake profile'),
        ('violence', 'Violence'),
        ('hate_speech', 'Hate speech'),
        ('other', 'Other'),
    ]
    STATUS_PENDING = 'pending'
    STATUS_RESOLVED = 'resolved'
    STATUS_DISMISSED = 'dismissed'
    STATUSES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_RESOLVED, 'Resolved'),
        (STATUS_DISMISSED, 'Dismissed'),
    ]

    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reports_made'
    )
    reported_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reports_received'
    )
    # "<low id>:<high id>", one report per unordered pair
    pair_key = models.CharField(max_length=50, unique=True, editable=False)
    report_type = models.CharField(max_length=30, choices=REPORT_TYPES)
    description = models.TextField(max_length=1000)
    status = models.CharField(max_length=10, choices=STATUSES, default=STATUS_PENDING)
    admin_notes = models.TextField(blank=True, default='')
    resolved_by_role = models.CharField(max_length=10, blank=True, default='')
    resolved_by_id = models.BigIntegerField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'user_reports'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='report_status_created'),
            models.Index(fields=['report_type'], name='report_type_idx'),
        ]

    def __str__(self):
        return f'Report {self.pk}: {self.reporter_id} -> {self.reported_user_id} ({self.report_type})'

    @staticmethod
    def make_pair_key(a_id, b_id):
        low, high = sorted([int(a_id), int(b_id)])
        return f'{low}:{high}'

    def save(self, *args, **kwargs):
        if not self.pair_key:
            self.pair_key = self.make_pair_key(self.reporter_id, self.reported_user_id)
        super().save(*args, **kwargs)
