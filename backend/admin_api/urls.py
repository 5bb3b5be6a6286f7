from django.urls import path
from . import views

app_name = 'admin_api'

urlpatterns = [
    # Auth
    path('auth/otp/send/', views.AdminSendOtpView.as_view(), name='admin-otp-send'),
    path('auth/otp/resend/', views.AdminResendOtpView.as_view(), name='admin-otp-resend'),
    path('auth/otp/verify/', views.AdminVerifyOtpView.as_view(), name='admin-otp-verify'),
    path('auth/me/', views.AdminMeView.as_view(), name='admin-me'),

    # Dashboard
    path('dashboard/stats/', views.DashboardStatsView.as_view(), name='dashboard-stats'),

    # Sub-admins
    path('subadmins/', views.SubAdminListView.as_view(), name='subadmin-list'),
    path('subadmins/pending/', views.PendingSubAdminsView.as_view(), name='subadmin-pending'),
    path('subadmins/<int:subadmin_id>/', views.SubAdminDetailView.as_view(), name='subadmin-detail'),
    path('subadmins/<int:subadmin_id>/status/', views.SubAdminStatusView.as_view(), name='subadmin-status'),
    path('subadmins/<int:subadmin_id>/approval/', views.SubAdminApprovalView.as_view(), name='subadmin-approval'),

    # Users
    path('users/', views.AdminUserListView.as_view(), name='user-list'),
    path('users/<int:user_id>/', views.AdminUserDetailView.as_view(), name='user-detail'),
    path('users/<int:user_id>/status/', views.AdminUserStatusView.as_view(), name='user-status'),

    # Reports
    path('reports/', views.AdminReportListView.as_view(), name='report-list'),
    path('reports/stats/', views.AdminReportStatsView.as_view(), name='report-stats'),
    path('reports/<int:report_id>/', views.AdminReportDetailView.as_view(), name='report-detail'),
]
