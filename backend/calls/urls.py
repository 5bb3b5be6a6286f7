from django.urls import path
from . import views

urlpatterns = [
    path('', views.InitiateCallView.as_view(), name='call-initiate'),
    path('log/', views.CallLogView.as_view(), name='call-log'),
    path('missed-count/', views.MissedCallsCountView.as_view(), name='missed-count'),
    path('stats/', views.CallStatsView.as_view(), name='call-stats'),
    path('<uuid:call_id>/', views.CallDetailView.as_view(), name='call-detail'),
    path('<uuid:call_id>/accept/', views.AcceptCallView.as_view(), name='call-accept'),
    path('<uuid:call_id>/reject/', views.RejectCallView.as_view(), name='call-reject'),
    path('<uuid:call_id>/end/', views.EndCallView.as_view(), name='call-end'),
]
