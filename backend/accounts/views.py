import logging
import sys
from io import BytesIO

from django.conf import settings
from django.core.files.uploadedfile import InMemoryUploadedFile
from django.db.models import Q
from PIL import Image
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from social import services as social_services
from .models import User
from .otp import request_otp, verify_otp
from .serializers import (
    AvatarUploadSerializer, PrivacySettingsSerializer, ProfileUpdateSerializer,
    SendOtpSerializer, UserProfileSerializer, UserPublicSerializer, VerifyOtpSerializer,
)
from .tokens import tokens_for_user

logger = logging.getLogger(__name__)


class OtpRateThrottle(AnonRateThrottle):
    scope = 'otp'


def otp_sent_response(actor, message='OTP sent successfully'):
    return Response({
        'message': message,
        'masked_phone': actor.masked_phone(),
        'ttl_seconds': settings.OTP_TTL_SECONDS,
    }, status=status.HTTP_200_OK)


class SendOtpView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [OtpRateThrottle]

    def post(self, request):
        serializer = SendOtpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request_otp(
            User,
            serializer.validated_data['phone_number'],
            serializer.validated_data.get('country_code'),
        )
        return otp_sent_response(user)


class ResendOtpView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [OtpRateThrottle]

    def post(self, request):
        serializer = SendOtpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request_otp(User, serializer.validated_data['phone_number'], create=False)
        return otp_sent_response(user, 'OTP resent successfully')


class VerifyOtpView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [OtpRateThrottle]

    def post(self, request):
        serializer = VerifyOtpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = verify_otp(
            User,
            serializer.validated_data['phone_number'],
            serializer.validated_data['otp'],
        )
        return Response({
            **tokens_for_user(user),
            'user': UserProfileSerializer(user, context={'request': request}).data,
            'is_profile_completed': user.is_profile_completed,
        }, status=status.HTTP_200_OK)


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        refresh_token = request.data.get('refresh')
        if not refresh_token:
            return Response({'error': 'Refresh token is required'}, status=status.HTTP_400_BAD_REQUEST)
        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError:
            return Response({'error': 'Invalid token'}, status=status.HTTP_400_BAD_REQUEST)
        return Response({'message': 'Logged out successfully'}, status=status.HTTP_200_OK)


class ProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = UserProfileSerializer(request.user, context={'request': request})
        return Response(serializer.data)

    def patch(self, request):
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info(f'User {user.id} updated profile')
        return Response(UserProfileSerializer(user, context={'request': request}).data)


class AvatarUploadView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        serializer = AvatarUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        avatar_file = serializer.validated_data['avatar']

        img = Image.open(avatar_file)
        img = img.convert('RGB')
        img.thumbnail((500, 500), Image.LANCZOS)

        buffer = BytesIO()
        img.save(buffer, format='JPEG', quality=85)
        buffer.seek(0)

        file_name = f'avatar_{request.user.id}.jpg'
        resized = InMemoryUploadedFile(
            buffer, 'avatar', file_name, 'image/jpeg', sys.getsizeof(buffer), None
        )

        user = request.user
        if user.avatar:
            user.avatar.delete(save=False)
        user.avatar = resized
        user.save(update_fields=['avatar', 'updated_at'])

        return Response(UserProfileSerializer(user, context={'request': request}).data)

    def delete(self, request):
        user = request.user
        if user.avatar:
            user.avatar.delete(save=False)
            user.avatar = None
            user.save(update_fields=['avatar', 'updated_at'])
        return Response(status=status.HTTP_204_NO_CONTENT)


class PrivacySettingsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(PrivacySettingsSerializer(request.user).data)

    def patch(self, request):
        serializer = PrivacySettingsSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({
            'message': 'Privacy settings updated',
            **serializer.data,
        })


class UserProfileView(APIView):
    """Another user's public profile with the viewer's relationship to them."""
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        try:
            target = User.objects.get(id=user_id, is_active=True)
        except User.DoesNotExist:
            return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)

        if social_services.is_blocked_by(request.user, target):
            return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)

        data = UserPublicSerializer(target, context={'request': request}).data
        data['location'] = target.location
        data['followers_count'] = social_services.followers_count(target)
        data['following_count'] = social_services.following_count(target)
        data['relationship'] = social_services.relationship_status(request.user, target)
        return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def search_users(request):
    query = request.query_params.get('q', '').strip()
    if len(query) < 2:
        return Response(
            {'error': 'Search query must be at least 2 characters'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    hidden_ids = social_services.block_related_ids(request.user)
    users = User.objects.filter(
        Q(username__icontains=query) | Q(full_name__icontains=query),
        is_active=True,
    ).exclude(id=request.user.id).exclude(id__in=hidden_ids).order_by('username')[:20]

    serializer = UserPublicSerializer(users, many=True, context={'request': request})
    return Response({'results': serializer.data})
