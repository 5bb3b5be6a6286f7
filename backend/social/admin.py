from django.contrib import admin
from .models import Block, Follow, FollowRequest, UserReport


@admin.register(Follow)
class FollowAdmin(admin.ModelAdmin):
    list_display = ['follower', 'following', 'created_at']
    search_fields = ['follower__username', 'following__username']
    raw_id_fields = ['follower', 'following']


@admin.register(Block)
class BlockAdmin(admin.ModelAdmin):
    list_display = ['blocker', 'blocked', 'created_at']
    search_fields = ['blocker__username', 'blocked__username']
    raw_id_fields = ['blocker', 'blocked']


@admin.register(FollowRequest)
class FollowRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'requester', 'recipient', 'status', 'created_at', 'expires_at']
    list_filter = ['status']
    raw_id_fields = ['requester', 'recipient']


@admin.register(UserReport)
class UserReportAdmin(admin.ModelAdmin):
    list_display = ['id', 'reporter', 'reported_user', 'report_type', 'status', 'created_at']
    list_filter = ['status', 'report_type']
    raw_id_fields = ['reporter', 'reported_user']
    readonly_fields = ['pair_key', 'resolved_by_role', 'resolved_by_id', 'resolved_at']
