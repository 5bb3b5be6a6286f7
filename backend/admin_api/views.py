import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import User
from accounts.otp import request_otp, verify_otp
from accounts.serializers import SendOtpSerializer, VerifyOtpSerializer
from accounts.tokens import tokens_for_staff
from accounts.views import OtpRateThrottle, otp_sent_response
from calls.models import Call
from chat.models import Chat, Message
from config.exceptions import DomainError, NotFoundError
from config.pagination import AdminPagination
from social import services as social_services
from social.models import UserReport
from .authentication import StaffJWTAuthentication
from .models import Admin, SubAdmin
from .permissions import IsAdmin, IsStaffMember, IsSubAdmin
from .serializers import (
    AdminProfileUpdateSerializer, AdminReportSerializer, AdminSerializer,
    AdminUserDetailSerializer, AdminUserListSerializer, ReportReviewSerializer,
    StatusToggleSerializer, SubAdminApprovalSerializer, SubAdminProfileSerializer,
    SubAdminSerializer,
)

logger = logging.getLogger(__name__)

STAFF_AUTH = [StaffJWTAuthentication]


def paginate(view, request, queryset, serializer_class):
    paginator = AdminPagination()
    page = paginator.paginate_queryset(queryset, request, view=view)
    serializer = serializer_class(page, many=True, context={'request': request})
    return paginator.get_paginated_response(serializer.data)


# ────────────────────────── OTP login ──────────────────────────

class StaffSendOtpView(APIView):
    """Shared OTP endpoints; subclasses pick the staff model."""
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [OtpRateThrottle]
    model = None
    # Admin rows are provisioned by the seed command, sub-admins sign themselves up
    create = False
    message = 'OTP sent successfully'

    def post(self, request):
        serializer = SendOtpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        actor = request_otp(
            self.model,
            serializer.validated_data['phone_number'],
            serializer.validated_data.get('country_code'),
            create=self.create,
        )
        return otp_sent_response(actor, self.message)


class StaffVerifyOtpView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [OtpRateThrottle]
    model = None
    serializer_class = None

    def post(self, request):
        serializer = VerifyOtpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        actor = verify_otp(
            self.model,
            serializer.validated_data['phone_number'],
            serializer.validated_data['otp'],
        )
        return Response(self.get_payload(actor, request), status=status.HTTP_200_OK)

    def get_payload(self, actor, request):
        return {
            **tokens_for_staff(actor),
            actor.ROLE: self.serializer_class(actor, context={'request': request}).data,
        }


class AdminSendOtpView(StaffSendOtpView):
    model = Admin


class AdminResendOtpView(StaffSendOtpView):
    model = Admin
    message = 'OTP resent successfully'


class AdminVerifyOtpView(StaffVerifyOtpView):
    model = Admin
    serializer_class = AdminSerializer


class SubAdminSendOtpView(StaffSendOtpView):
    model = SubAdmin
    create = True


class SubAdminResendOtpView(StaffSendOtpView):
    model = SubAdmin
    message = 'OTP resent successfully'


class SubAdminVerifyOtpView(StaffVerifyOtpView):
    model = SubAdmin
    serializer_class = SubAdminSerializer

    def get_payload(self, actor, request):
        payload = super().get_payload(actor, request)
        payload['is_profile_completed'] = actor.is_profile_completed
        payload['approval_status'] = actor.approval_status
        return payload


# ────────────────────────── Profiles ──────────────────────────

class AdminMeView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsAdmin]

    def get(self, request):
        return Response(AdminSerializer(request.user, context={'request': request}).data)

    def patch(self, request):
        serializer = AdminProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        admin = serializer.save()
        return Response(AdminSerializer(admin, context={'request': request}).data)


class SubAdminProfileView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsSubAdmin]

    def get(self, request):
        return Response(SubAdminSerializer(request.user, context={'request': request}).data)

    def put(self, request):
        """Complete the profile after the first login"""
        serializer = SubAdminProfileSerializer(request.user, data=request.data)
        serializer.is_valid(raise_exception=True)
        subadmin = serializer.save()
        logger.info(f'SubAdmin {subadmin.pk} completed profile')
        return Response({
            'message': 'Profile completed successfully',
            'subadmin': SubAdminSerializer(subadmin, context={'request': request}).data,
        })

    def patch(self, request):
        serializer = SubAdminProfileSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        subadmin = serializer.save()
        return Response(SubAdminSerializer(subadmin, context={'request': request}).data)


# ────────────────────────── Sub-admin management ──────────────────────────

def _get_subadmin(subadmin_id):
    try:
        return SubAdmin.objects.get(pk=subadmin_id)
    except SubAdmin.DoesNotExist:
        raise NotFoundError('SubAdmin not found', code='SUBADMIN_NOT_FOUND')


class SubAdminListView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsAdmin]

    def get(self, request):
        """?status=active|inactive|pending|approved|rejected&search=..."""
        qs = SubAdmin.objects.select_related('approved_by').order_by('-created_at')

        status_filter = request.query_params.get('status')
        if status_filter in ('active', 'inactive'):
            qs = qs.filter(is_active=status_filter == 'active')
        elif status_filter in dict(SubAdmin.APPROVAL_STATUSES):
            qs = qs.filter(approval_status=status_filter)

        search = request.query_params.get('search', '').strip()
        if search:
            qs = qs.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone_number__icontains=search)
            )
        return paginate(self, request, qs, SubAdminSerializer)


class PendingSubAdminsView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsAdmin]

    def get(self, request):
        qs = SubAdmin.objects.filter(approval_status=SubAdmin.STATUS_PENDING).order_by('-created_at')
        return paginate(self, request, qs, SubAdminSerializer)


class SubAdminDetailView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsAdmin]

    def get(self, request, subadmin_id):
        subadmin = _get_subadmin(subadmin_id)
        return Response(SubAdminSerializer(subadmin, context={'request': request}).data)


class SubAdminStatusView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsAdmin]

    def patch(self, request, subadmin_id):
        serializer = StatusToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        is_active = serializer.validated_data['is_active']

        subadmin = _get_subadmin(subadmin_id)
        subadmin.is_active = is_active
        subadmin.save(update_fields=['is_active', 'updated_at'])

        action = 'activated' if is_active else 'deactivated'
        logger.info(f'SubAdmin {subadmin.pk} {action} by admin {request.user.pk}')
        return Response({
            'message': f'SubAdmin {action} successfully',
            'subadmin': SubAdminSerializer(subadmin, context={'request': request}).data,
        })


class SubAdminApprovalView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsAdmin]

    def patch(self, request, subadmin_id):
        serializer = SubAdminApprovalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        action = serializer.validated_data['action']

        with transaction.atomic():
            try:
                subadmin = SubAdmin.objects.select_for_update().get(pk=subadmin_id)
            except SubAdmin.DoesNotExist:
                raise NotFoundError('SubAdmin not found', code='SUBADMIN_NOT_FOUND')
            if subadmin.approval_status != SubAdmin.STATUS_PENDING:
                raise DomainError('SubAdmin application is not pending approval', code='SUBADMIN_NOT_PENDING')

            now = timezone.now()
            if action == 'approve':
                subadmin.approval_status = SubAdmin.STATUS_APPROVED
                subadmin.is_active = True
                subadmin.approved_by = request.user
                subadmin.approved_at = now
                subadmin.save(update_fields=[
                    'approval_status', 'is_active', 'approved_by', 'approved_at', 'updated_at',
                ])
                message = 'SubAdmin approved successfully'
            else:
                subadmin.approval_status = SubAdmin.STATUS_REJECTED
                subadmin.is_active = False
                subadmin.rejected_at = now
                subadmin.rejection_reason = serializer.validated_data['rejection_reason']
                subadmin.save(update_fields=[
                    'approval_status', 'is_active', 'rejected_at', 'rejection_reason', 'updated_at',
                ])
                message = 'SubAdmin application rejected'

        logger.info(f'SubAdmin {subadmin.pk} {subadmin.approval_status} by admin {request.user.pk}')
        return Response({
            'message': message,
            'subadmin': SubAdminSerializer(subadmin, context={'request': request}).data,
        })


# ────────────────────────── Users ──────────────────────────

class AdminUserListView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsStaffMember]

    def get(self, request):
        """?status=active|inactive&search=..."""
        qs = User.objects.filter(is_staff=False).order_by('-created_at')

        status_filter = request.query_params.get('status')
        if status_filter in ('active', 'inactive'):
            qs = qs.filter(is_active=status_filter == 'active')

        search = request.query_params.get('search', '').strip()
        if search:
            qs = qs.filter(
                Q(full_name__icontains=search) |
                Q(username__icontains=search) |
                Q(email__icontains=search) |
                Q(phone_number__icontains=search)
            )
        return paginate(self, request, qs, AdminUserListSerializer)


def _get_user(user_id):
    try:
        return User.objects.get(pk=user_id, is_staff=False)
    except User.DoesNotExist:
        raise NotFoundError('User not found', code='USER_NOT_FOUND')


class AdminUserDetailView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsStaffMember]

    def get(self, request, user_id):
        user = _get_user(user_id)
        user.followers_count = social_services.followers_count(user)
        user.following_count = social_services.following_count(user)
        user.message_count = Message.objects.filter(sender=user, is_deleted=False).count()
        user.call_count = Call.objects.filter(initiated_by=user).count()
        user.reports_received_count = UserReport.objects.filter(reported_user=user).count()
        return Response(AdminUserDetailSerializer(user, context={'request': request}).data)


class AdminUserStatusView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsStaffMember]

    def patch(self, request, user_id):
        serializer = StatusToggleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        is_active = serializer.validated_data['is_active']

        user = _get_user(user_id)
        user.is_active = is_active
        user.save(update_fields=['is_active', 'updated_at'])

        action = 'activated' if is_active else 'deactivated'
        logger.info(f'User {user.pk} {action} by {request.user.ROLE} {request.user.pk}')
        return Response({
            'message': f'User {action} successfully',
            'user': AdminUserListSerializer(user, context={'request': request}).data,
        })


# ────────────────────────── Reports ──────────────────────────

class AdminReportListView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsStaffMember]

    def get(self, request):
        """?status=pending|resolved|dismissed&type=spam|...&user_id=..."""
        qs = UserReport.objects.select_related('reporter', 'reported_user').order_by('-created_at')

        status_filter = request.query_params.get('status')
        if status_filter:
            qs = qs.filter(status=status_filter)
        report_type = request.query_params.get('type')
        if report_type:
            qs = qs.filter(report_type=report_type)
        user_id = request.query_params.get('user_id')
        if user_id and user_id.isdigit():
            qs = qs.filter(Q(reporter_id=user_id) | Q(reported_user_id=user_id))
        return paginate(self, request, qs, AdminReportSerializer)


class AdminReportDetailView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsStaffMember]

    def get(self, request, report_id):
        try:
            report = UserReport.objects.select_related('reporter', 'reported_user').get(pk=report_id)
        except UserReport.DoesNotExist:
            raise NotFoundError('Report not found', code='REPORT_NOT_FOUND')
        return Response(AdminReportSerializer(report, context={'request': request}).data)

    def patch(self, request, report_id):
        """Resolve or dismiss a pending report"""
        serializer = ReportReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = social_services.review_report(
            report_id,
            serializer.validated_data['status'],
            request.user,
            serializer.validated_data['admin_notes'],
        )
        return Response({
            'message': f'Report {report.status} successfully',
            'report': AdminReportSerializer(report, context={'request': request}).data,
        })


class AdminReportStatsView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsStaffMember]

    def get(self, request):
        return Response(social_services.report_stats())


# ────────────────────────── Dashboard ──────────────────────────

class DashboardStatsView(APIView):
    authentication_classes = STAFF_AUTH
    permission_classes = [IsStaffMember]

    def get(self, request):
        users = User.objects.filter(is_staff=False).aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(is_active=True)),
            verified=Count('id', filter=Q(is_verified=True)),
            completed=Count('id', filter=Q(is_profile_completed=True)),
        )
        return Response({
            'total_users': users['total'],
            'active_users': users['active'],
            'verified_users': users['verified'],
            'completed_profiles': users['completed'],
            'pending_subadmins': SubAdmin.objects.filter(approval_status=SubAdmin.STATUS_PENDING).count(),
            'total_chats': Chat.objects.count(),
            'total_messages': Message.objects.filter(is_deleted=False).count(),
            'total_calls': Call.objects.count(),
            'pending_reports': UserReport.objects.filter(status=UserReport.STATUS_PENDING).count(),
        })
