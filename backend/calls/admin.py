from django.contrib import admin
from .models import Call, CallParticipant


@admin.register(Call)
class CallAdmin(admin.ModelAdmin):
    list_display = ['id', 'chat', 'call_type', 'status', 'initiated_by',
                    'end_reason', 'duration', 'created_at', 'started_at', 'ended_at']
    list_filter = ['call_type', 'status']
    search_fields = ['initiated_by__phone_number', 'initiated_by__username']
    readonly_fields = ['id', 'created_at']


@admin.register(CallParticipant)
class CallParticipantAdmin(admin.ModelAdmin):
    list_display = ['call', 'user', 'joined_at', 'left_at']
    search_fields = ['user__phone_number', 'user__username']
