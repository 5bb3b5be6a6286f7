import logging

from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import User
from config.pagination import DefaultCursorPagination, StandardPagination
from . import message_requests, services
from .serializers import (
    ChatDetailSerializer, ChatListSerializer, ChatSettingsSerializer, CreateChatSerializer,
    EditMessageSerializer, ForwardMessageSerializer, MessageEditHistorySerializer,
    MessageRequestCreateSerializer, MessageRequestResponseSerializer, MessageRequestSerializer,
    MessageSearchSerializer, MessageSerializer, ReactionCreateSerializer, ReactionSerializer,
    SendMessageSerializer,
)

logger = logging.getLogger(__name__)

TRUTHY = ('1', 'true', 'yes')


class MessageCursorPagination(DefaultCursorPagination):
    page_size = 50


class ChatListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        """
        Chats of the current user, pinned first then by latest activity.
        Query: ?page=1&limit=20&include_archived=true
        """
        result = services.list_user_chats(
            request.user,
            page=request.query_params.get('page', 1),
            limit=request.query_params.get('limit', 20),
            include_archived=request.query_params.get('include_archived', '').lower() in TRUTHY,
        )
        serializer = ChatListSerializer(result['results'], many=True, context={'request': request})
        return Response({
            'results': serializer.data,
            'pagination': {
                'page': result['page'],
                'limit': result['limit'],
                'total': result['total'],
                'pages': result['pages'],
                'has_next': result['has_next'],
            },
        })

    def post(self, request):
        """Open the chat with another user, or return the existing one"""
        serializer = CreateChatSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        chat, created, reason = services.create_or_get_chat(request.user, serializer.validated_data['user_id'])
        participant = chat.participant_for(request.user)
        return Response({
            'chat': ChatDetailSerializer(participant, context={'request': request}).data,
            'created': created,
            'reason': reason,
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class CanChatView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        other = User.objects.filter(pk=user_id).first()
        allowed, reason = services.can_users_chat(request.user, other)
        return Response({'can_chat': allowed, 'reason': reason})


class ChatSearchView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        rows = services.search_chats(request.user, request.query_params.get('q', ''))
        return Response({'results': ChatListSerializer(rows, many=True, context={'request': request}).data})


class ChatStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(services.chat_stats(request.user))


class ChatDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, chat_id):
        _, participant = services.get_chat_for_user(request.user, chat_id)
        return Response(ChatDetailSerializer(participant, context={'request': request}).data)

    def delete(self, request, chat_id):
        services.delete_chat(request.user, chat_id)
        return Response({'message': 'Chat deleted successfully'})


class ChatSettingsView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request, chat_id):
        serializer = ChatSettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        _, participant = services.update_chat_settings(request.user, chat_id, **serializer.validated_data)
        return Response({
            'message': 'Chat settings updated',
            'chat': ChatDetailSerializer(participant, context={'request': request}).data,
        })


class ChatReadView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, chat_id):
        marked = services.mark_chat_read(request.user, chat_id)
        return Response({'message': 'Chat marked as read', 'marked_read': marked})


class MessageListCreateView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get(self, request, chat_id):
        messages = services.list_messages(request.user, chat_id)
        paginator = MessageCursorPagination()
        page = paginator.paginate_queryset(messages, request)
        serializer = MessageSerializer(page, many=True, context={'request': request})
        return paginator.get_paginated_response(serializer.data)

    def post(self, request, chat_id):
        serializer = SendMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        message = services.send_message(
            request.user, chat_id,
            message_type=data['message_type'],
            content=data.get('content', ''),
            media=data.get('media'),
            reply_to_id=data.get('reply_to'),
        )
        return Response(MessageSerializer(message, context={'request': request}).data, status=status.HTTP_201_CREATED)


class MessageDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request, message_id):
        serializer = EditMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = services.edit_message(request.user, message_id, serializer.validated_data['content'])
        return Response(MessageSerializer(message, context={'request': request}).data)

    def delete(self, request, message_id):
        services.delete_message(request.user, message_id)
        return Response({'message': 'Message deleted successfully'})


class MessageHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, message_id):
        message = services.get_message_for_participant(request.user, message_id)
        return Response(MessageEditHistorySerializer(message).data)


class MessageReactionView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, message_id):
        serializer = ReactionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reaction = services.react_to_message(request.user, message_id, serializer.validated_data['emoji'])
        return Response(ReactionSerializer(reaction).data, status=status.HTTP_201_CREATED)

    def delete(self, request, message_id):
        services.remove_reaction(request.user, message_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ForwardMessageView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, message_id):
        serializer = ForwardMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = services.forward_message(request.user, message_id, serializer.validated_data['chat_id'])
        return Response(MessageSerializer(message, context={'request': request}).data, status=status.HTTP_201_CREATED)


class MessageSearchView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = MessageSearchSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        messages = services.search_messages(
            request.user,
            serializer.validated_data['q'],
            chat_id=serializer.validated_data.get('chat_id'),
        )
        return Response({'results': MessageSerializer(messages, many=True, context={'request': request}).data})


# ── Message requests ──

class MessageRequestListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        """Pending requests received by the current user"""
        paginator = StandardPagination()
        page = paginator.paginate_queryset(message_requests.pending_requests(request.user), request)
        serializer = MessageRequestSerializer(page, many=True, context={'request': request})
        return paginator.get_paginated_response(serializer.data)

    def post(self, request):
        serializer = MessageRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message_request = message_requests.send_message_request(
            request.user,
            serializer.validated_data['user_id'],
            serializer.validated_data.get('message', ''),
        )
        return Response({
            'message': 'Message request sent successfully',
            'request': MessageRequestSerializer(message_request, context={'request': request}).data,
        }, status=status.HTTP_201_CREATED)


class SentMessageRequestsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = message_requests.sent_requests(request.user, request.query_params.get('status'))
        paginator = StandardPagination()
        page = paginator.paginate_queryset(qs, request)
        serializer = MessageRequestSerializer(page, many=True, context={'request': request})
        return paginator.get_paginated_response(serializer.data)


class MessageRequestStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(message_requests.request_stats(request.user))


class MessageRequestBetweenView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        message_request = message_requests.request_between(request.user, user_id)
        data = MessageRequestSerializer(message_request, context={'request': request}).data if message_request else None
        return Response({'request': data})


class MessageRequestDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, request_id):
        message_request = message_requests.get_message_request(request.user, request_id)
        return Response(MessageRequestSerializer(message_request, context={'request': request}).data)

    def delete(self, request, request_id):
        message_requests.delete_message_request(request.user, request_id)
        return Response({'message': 'Message request deleted'})


class AcceptMessageRequestView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        serializer = MessageRequestResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message_request, chat = message_requests.accept_message_request(
            request.user, request_id, serializer.validated_data.get('response_message', ''),
        )
        return Response({
            'message': 'Message request accepted',
            'request': MessageRequestSerializer(message_request, context={'request': request}).data,
            'chat_id': str(chat.id),
        })


class RejectMessageRequestView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        serializer = MessageRequestResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message_request = message_requests.reject_message_request(
            request.user, request_id, serializer.validated_data.get('response_message', ''),
        )
        return Response({
            'message': 'Message request rejected',
            'request': MessageRequestSerializer(message_request, context={'request': request}).data,
        })
