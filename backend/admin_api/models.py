from django.db import models

from accounts.models import PhoneOtpMixin


class StaffActor(PhoneOtpMixin):
    """Phone-OTP actor that authenticates against the staff API, outside the auth user table."""
    ROLE = None

    email = models.EmailField(blank=True, default='')
    avatar = models.ImageField(upload_to='staff/', null=True, blank=True)
    last_login = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False


class Admin(StaffActor):
    ROLE = 'admin'

    first_name = models.CharField(max_length=50, blank=True, default='')
    last_name = models.CharField(max_length=50, blank=True, default='')
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'admins'
        ordering = ['-created_at']

    def __str__(self):
        return f'Admin {self.full_name or self.masked_phone()}'

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'.strip()


class SubAdmin(StaffActor):
    ROLE = 'subadmin'

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    APPROVAL_STATUSES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    name = models.CharField(max_length=100, blank=True, default='')
    is_profile_completed = models.BooleanField(default=False)
    # New sub-admins stay inactive until an admin approves them
    is_active = models.BooleanField(default=False)
    approval_status = models.CharField(max_length=10, choices=APPROVAL_STATUSES, default=STATUS_PENDING)
    approved_by = models.ForeignKey(
        Admin, null=True, blank=True, on_delete=models.SET_NULL, related_name='approved_subadmins'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.CharField(max_length=500, blank=True, default='')

    class Meta:
        db_table = 'subadmins'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['approval_status', 'created_at'], name='subadmin_approval_created'),
        ]

    def __str__(self):
        return f'SubAdmin {self.name or self.masked_phone()} ({self.approval_status})'

    def can_login(self):
        return self.is_active or self.approval_status == self.STATUS_PENDING

    @property
    def is_approved(self):
        return self.approval_status == self.STATUS_APPROVED and self.is_active
