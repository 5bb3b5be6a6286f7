from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView
from . import views

urlpatterns = [
    path('otp/send/', views.SendOtpView.as_view(), name='otp-send'),
    path('otp/resend/', views.ResendOtpView.as_view(), name='otp-resend'),
    path('otp/verify/', views.VerifyOtpView.as_view(), name='otp-verify'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('logout/', views.LogoutView.as_view(), name='logout'),
    path('profile/', views.ProfileView.as_view(), name='profile'),
    path('avatar/', views.AvatarUploadView.as_view(), name='avatar-upload'),
    path('privacy/', views.PrivacySettingsView.as_view(), name='privacy-settings'),
    path('users/search/', views.search_users, name='user-search'),
    path('users/<int:user_id>/', views.UserProfileView.as_view(), name='user-profile'),
]
