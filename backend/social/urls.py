from django.urls import path
from . import views

urlpatterns = [
    path('follow-requests/', views.FollowRequestListCreateView.as_view(), name='follow-requests'),
    path('follow-requests/sent/', views.SentFollowRequestsView.as_view(), name='follow-requests-sent'),
    path('follow-requests/<uuid:request_id>/accept/', views.AcceptFollowRequestView.as_view(), name='follow-request-accept'),
    path('follow-requests/<uuid:request_id>/reject/', views.RejectFollowRequestView.as_view(), name='follow-request-reject'),
    path('follow-requests/<uuid:request_id>/cancel/', views.CancelFollowRequestView.as_view(), name='follow-request-cancel'),
    path('followers/', views.FollowersView.as_view(), name='followers'),
    path('following/', views.FollowingView.as_view(), name='following'),
    path('blocked/', views.BlockedUsersView.as_view(), name='blocked-users'),
    path('stats/', views.SocialStatsView.as_view(), name='social-stats'),
    path('reports/', views.ReportView.as_view(), name='reports'),
    path('users/<int:user_id>/unfollow/', views.UnfollowView.as_view(), name='unfollow'),
    path('users/<int:user_id>/remove-follower/', views.RemoveFollowerView.as_view(), name='remove-follower'),
    path('users/<int:user_id>/block/', views.BlockView.as_view(), name='block'),
    path('users/<int:user_id>/relationship/', views.RelationshipView.as_view(), name='relationship'),
]
