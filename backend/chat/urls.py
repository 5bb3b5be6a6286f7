from django.urls import path
from . import views

urlpatterns = [
    # Chats
    path('', views.ChatListCreateView.as_view(), name='chat-list'),
    path('search/', views.ChatSearchView.as_view(), name='chat-search'),
    path('stats/', views.ChatStatsView.as_view(), name='chat-stats'),
    path('can-chat/<int:user_id>/', views.CanChatView.as_view(), name='can-chat'),
    path('<uuid:chat_id>/', views.ChatDetailView.as_view(), name='chat-detail'),
    path('<uuid:chat_id>/settings/', views.ChatSettingsView.as_view(), name='chat-settings'),
    path('<uuid:chat_id>/read/', views.ChatReadView.as_view(), name='chat-read'),
    path('<uuid:chat_id>/messages/', views.MessageListCreateView.as_view(), name='message-list'),
    # Messages
    path('messages/search/', views.MessageSearchView.as_view(), name='message-search'),
    path('messages/<uuid:message_id>/', views.MessageDetailView.as_view(), name='message-detail'),
    path('messages/<uuid:message_id>/history/', views.MessageHistoryView.as_view(), name='message-history'),
    path('messages/<uuid:message_id>/reactions/', views.MessageReactionView.as_view(), name='message-reactions'),
    path('messages/<uuid:message_id>/forward/', views.ForwardMessageView.as_view(), name='message-forward'),
    # Message requests
    path('requests/', views.MessageRequestListCreateView.as_view(), name='message-requests'),
    path('requests/sent/', views.SentMessageRequestsView.as_view(), name='message-requests-sent'),
    path('requests/stats/', views.MessageRequestStatsView.as_view(), name='message-requests-stats'),
    path('requests/with/<int:user_id>/', views.MessageRequestBetweenView.as_view(), name='message-request-between'),
    path('requests/<uuid:request_id>/', views.MessageRequestDetailView.as_view(), name='message-request-detail'),
    path('requests/<uuid:request_id>/accept/', views.AcceptMessageRequestView.as_view(), name='message-request-accept'),
    path('requests/<uuid:request_id>/reject/', views.RejectMessageRequestView.as_view(), name='message-request-reject'),
]
