import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from config.pagination import StandardPagination
from . import services
from .serializers import (
    BlockedUserSerializer, FollowerSerializer, FollowingSerializer,
    FollowRequestCreateSerializer, FollowRequestSerializer,
    ReportCreateSerializer, SocialStatsSerializer, UserReportSerializer,
)

logger = logging.getLogger(__name__)


def paginated(request, queryset, serializer_class):
    paginator = StandardPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = serializer_class(page, many=True, context={'request': request})
    return paginator.get_paginated_response(serializer.data)


class FollowRequestListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        """Pending follow requests received by the current user"""
        return paginated(request, services.pending_follow_requests(request.user), FollowRequestSerializer)

    def post(self, request):
        serializer = FollowRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        follow_request = services.send_follow_request(
            request.user,
            serializer.validated_data['user_id'],
            serializer.validated_data.get('message', ''),
        )
        return Response({
            'message': 'Follow request sent successfully',
            'request': FollowRequestSerializer(follow_request, context={'request': request}).data,
        }, status=status.HTTP_201_CREATED)


class SentFollowRequestsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = services.sent_follow_requests(request.user, request.query_params.get('status'))
        return paginated(request, qs, FollowRequestSerializer)


class AcceptFollowRequestView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        follow_request, already_following = services.accept_follow_request(request.user, request_id)
        return Response({
            'message': 'Follow request accepted',
            'already_following': already_following,
            'request': FollowRequestSerializer(follow_request, context={'request': request}).data,
        })


class RejectFollowRequestView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        follow_request = services.reject_follow_request(request.user, request_id)
        return Response({
            'message': 'Follow request rejected',
            'request': FollowRequestSerializer(follow_request, context={'request': request}).data,
        })


class CancelFollowRequestView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        services.cancel_follow_request(request.user, request_id)
        return Response({'message': 'Follow request cancelled'})


class UnfollowView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, user_id):
        outcome = services.unfollow(request.user, user_id)
        if outcome == 'request_cancelled':
            return Response({'message': 'Follow request cancelled', 'result': outcome})
        return Response({'message': 'Unfollowed successfully', 'result': outcome})


class RemoveFollowerView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, user_id):
        services.remove_follower(request.user, user_id)
        return Response({'message': 'Follower removed successfully'})


class BlockView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, user_id):
        services.block_user(request.user, user_id)
        return Response({'message': 'User blocked successfully'})

    def delete(self, request, user_id):
        services.unblock_user(request.user, user_id)
        return Response({'message': 'User unblocked successfully'})


class FollowersView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return paginated(request, services.followers(request.user), FollowerSerializer)


class FollowingView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return paginated(request, services.following(request.user), FollowingSerializer)


class BlockedUsersView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return paginated(request, services.blocked_users(request.user), BlockedUserSerializer)


class RelationshipView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        target = services.resolve_target(request.user, user_id, 'Invalid user ID')
        return Response(services.relationship_status(request.user, target))


class SocialStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(SocialStatsSerializer(services.social_stats(request.user)).data)


class ReportView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        reports = request.user.reports_made.select_related('reported_user')
        return paginated(request, reports, UserReportSerializer)

    def post(self, request):
        serializer = ReportCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = services.report_user(
            request.user,
            serializer.validated_data['user_id'],
            serializer.validated_data.get('report_type'),
            serializer.validated_data.get('description'),
        )
        return Response({
            'message': 'User reported successfully',
            'report': UserReportSerializer(report, context={'request': request}).data,
        }, status=status.HTTP_201_CREATED)
