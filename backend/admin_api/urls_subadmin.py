from django.urls import path
from . import views

app_name = 'subadmin'

urlpatterns = [
    path('auth/otp/send/', views.SubAdminSendOtpView.as_view(), name='subadmin-otp-send'),
    path('auth/otp/resend/', views.SubAdminResendOtpView.as_view(), name='subadmin-otp-resend'),
    path('auth/otp/verify/', views.SubAdminVerifyOtpView.as_view(), name='subadmin-otp-verify'),
    path('profile/', views.SubAdminProfileView.as_view(), name='subadmin-profile'),
]
