from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ['phone_number', 'username', 'full_name', 'is_verified', 'is_active', 'allow_messages', 'created_at']
    list_filter = ['is_verified', 'is_active', 'is_profile_completed', 'allow_messages', 'gender']
    search_fields = ['phone_number', 'username', 'full_name', 'email']
    ordering = ['-created_at']
    readonly_fields = ['otp_code', 'otp_expires_at', 'last_otp_sent_at', 'last_login', 'created_at', 'updated_at']

    fieldsets = (
        (None, {'fields': ('phone_number', 'country_code', 'is_verified', 'is_active')}),
        ('Profile', {
            'fields': ('username', 'full_name', 'email', 'bio', 'gender', 'dob', 'avatar', 'location',
                       'is_profile_completed')
        }),
        ('Privacy', {'fields': ('allow_follow_requests', 'allow_messages')}),
        ('OTP', {'fields': ('otp_code', 'otp_expires_at', 'last_otp_sent_at')}),
        ('Dates', {'fields': ('last_login', 'created_at', 'updated_at')}),
    )
