from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


class PhoneOtpMixin(models.Model):
    """Phone identity plus one-time-password state shared by every actor type."""
    phone_number = models.CharField(max_length=20, unique=True)
    country_code = models.CharField(max_length=5, default='+91')
    is_verified = models.BooleanField(default=False)
    otp_code = models.CharField(max_length=6, null=True, blank=True)
    otp_expires_at = models.DateTimeField(null=True, blank=True)
    last_otp_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    def masked_phone(self):
        digits = self.phone_number or ''
        if len(digits) <= 4:
            return digits
        return '*' * (len(digits) - 4) + digits[-4:]

    def can_login(self):
        return self.is_active


class UserManager(BaseUserManager):
    def create_user(self, phone_number, password=None, **extra_fields):
        if not phone_number:
            raise ValueError('Phone number is required')
        extra_fields.setdefault('country_code', settings.DEFAULT_COUNTRY_CODE)
        user = self.model(phone_number=phone_number, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, phone_number, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_verified', True)
        return self.create_user(phone_number, password, **extra_fields)


class User(PhoneOtpMixin, AbstractUser):
    GENDERS = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
        ('prefer_not_to_say', 'Prefer not to say'),
    ]
    MESSAGE_PRIVACY = [
        ('everyone', 'Everyone'),
        ('followers', 'Followers'),
        ('none', 'No one'),
    ]

    username = models.CharField(max_length=30, unique=True, null=True, blank=True)
    full_name = models.CharField(max_length=100, blank=True, default='')
    bio = models.CharField(max_length=500, blank=True, default='')
    gender = models.CharField(max_length=20, choices=GENDERS, blank=True, default='')
    dob = models.DateField(null=True, blank=True)
    avatar = models.ImageField(upload_to='avatars/', null=True, blank=True)
    location = models.CharField(max_length=100, blank=True, default='')
    is_profile_completed = models.BooleanField(default=False)

    # Privacy
    allow_follow_requests = models.BooleanField(default=True)
    allow_messages = models.CharField(max_length=10, choices=MESSAGE_PRIVACY, default='followers')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'phone_number'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.username or self.masked_phone()} ({self.pk})'

    @property
    def display_name(self):
        return self.full_name or self.username or self.masked_phone()
