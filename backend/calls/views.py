from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from config.pagination import DefaultCursorPagination
from . import services
from .serializers import CallSerializer, CallLogSerializer, InitiateCallSerializer


class CallLogPagination(DefaultCursorPagination):
    page_size = 30


class InitiateCallView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        """Start a call in a chat; an active call in that chat is returned instead"""
        serializer = InitiateCallSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        call, created = services.initiate_call(
            request.user,
            serializer.validated_data['chat_id'],
            serializer.validated_data['call_type'],
        )
        return Response({
            'call': CallSerializer(call, context={'request': request}).data,
            'created': created,
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class AcceptCallView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, call_id):
        call = services.accept_call(request.user, call_id)
        return Response(CallSerializer(call, context={'request': request}).data)


class RejectCallView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, call_id):
        call = services.reject_call(request.user, call_id)
        return Response(CallSerializer(call, context={'request': request}).data)


class EndCallView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, call_id):
        call = services.end_call(request.user, call_id)
        return Response(CallSerializer(call, context={'request': request}).data)


class CallLogView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        """
        Get call history for current user.
        Filters: ?type=audio|video, ?status=missed|received|made
        """
        calls = services.call_log(
            request.user,
            call_type=request.query_params.get('type'),
            status=request.query_params.get('status'),
        )
        paginator = CallLogPagination()
        page = paginator.paginate_queryset(calls, request)
        serializer = CallLogSerializer(page, many=True, context={'request': request})
        return paginator.get_paginated_response(serializer.data)


class CallDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, call_id):
        call = services.get_call(request.user, call_id)
        return Response(CallSerializer(call, context={'request': request}).data)


class MissedCallsCountView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({'missed_calls': services.missed_calls_count(request.user)})


class CallStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(services.call_stats(request.user))
