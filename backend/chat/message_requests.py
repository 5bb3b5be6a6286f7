"""
Message-request ledger: the consent step before two users without a
messaging relationship can open a chat.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from config.exceptions import ConflictError, DomainError, ForbiddenError, NotFoundError
from social.services import is_blocked_between, resolve_target
from .models import MessageRequest
from .services import can_users_chat, deliver_message, find_or_create_chat, unarchive_for

logger = logging.getLogger(__name__)


def _between(a, b):
    return MessageRequest.objects.filter(
        Q(from_user=a, to_user=b) | Q(from_user=b, to_user=a)
    )


def _mark_expired(message_request):
    message_request.status = MessageRequest.STATUS_EXPIRED
    message_request.save(update_fields=['status', 'updated_at'])


def send_message_request(from_user, to_user_id, message=''):
    to_user = resolve_target(from_user, to_user_id, 'Invalid user ID or cannot send request to yourself')
    if not from_user.is_active or not to_user.is_active:
        raise DomainError('Cannot send requests to inactive users', code='USER_INACTIVE')
    if is_blocked_between(from_user, to_user):
        raise ForbiddenError('Cannot send message request to this user', code='USER_BLOCKED')

    closed = None
    with transaction.atomic():
        for existing in _between(from_user, to_user).select_for_update():
            if existing.status == MessageRequest.STATUS_PENDING and existing.is_expired():
                _mark_expired(existing)
            if existing.status == MessageRequest.STATUS_PENDING:
                if existing.from_user_id == from_user.id:
                    raise ConflictError(
                        'Request already sent and pending',
                        code='REQUEST_PENDING',
                        extra={'request_id': str(existing.id)},
                    )
                raise ConflictError(
                    'This user has already sent you a message request',
                    code='REQUEST_RECEIVED',
                    extra={'request_id': str(existing.id)},
                )
            if existing.status == MessageRequest.STATUS_ACCEPTED:
                raise ConflictError(
                    'Chat already exists between these users',
                    code='CHAT_EXISTS',
                    extra={'chat_id': str(existing.chat_id) if existing.chat_id else None},
                )
            if existing.from_user_id == from_user.id:
                # One request per ordered pair; a rejected or expired one stays closed
                closed = existing

        if closed is None:
            allowed, reason = can_users_chat(from_user, to_user)
            if allowed:
                raise ConflictError(
                    'You can already chat with this user', code='CAN_ALREADY_CHAT', extra={'reason': reason},
                )
            try:
                with transaction.atomic():
                    message_request = MessageRequest.objects.create(
                        from_user=from_user,
                        to_user=to_user,
                        message=(message or '').strip(),
                    )
            except IntegrityError:
                raise ConflictError('Request already sent and pending', code='REQUEST_PENDING')

    # Raised after the block commits so a lazily expired row keeps its new status
    if closed is not None:
        raise ConflictError(
            f'Your previous request to this user was {closed.status}',
            code='REQUEST_CLOSED',
            extra={'request_id': str(closed.id), 'status': closed.status},
        )

    logger.info(f'Message request {message_request.id}: {from_user.id} -> {to_user.id}')
    return message_request


def _locked_request(request_id):
    try:
        return MessageRequest.objects.select_for_update().get(pk=request_id)
    except MessageRequest.DoesNotExist:
        raise NotFoundError('Message request not found', code='REQUEST_NOT_FOUND')


def accept_message_request(user, request_id, response_message=''):
    """
    Accept a pending request: open (or reopen) the pair's chat and deliver
    the request's note as its first message. Returns (message_request, chat).
    """
    expired = False
    chat = None
    with transaction.atomic():
        message_request = _locked_request(request_id)
        if message_request.to_user_id != user.id:
            raise ForbiddenError('Only the recipient can accept this request', code='NOT_REQUEST_RECIPIENT')
        if message_request.status != MessageRequest.STATUS_PENDING:
            raise DomainError('Request is no longer pending', code='REQUEST_NOT_PENDING')

        if message_request.is_expired():
            _mark_expired(message_request)
            expired = True
        else:
            from_user = message_request.from_user
            if not from_user.is_active:
                raise DomainError('Cannot chat with inactive users', code='USER_INACTIVE')
            if is_blocked_between(user, from_user):
                raise ForbiddenError('Cannot accept request from this user', code='USER_BLOCKED')

            chat, _ = find_or_create_chat(user, from_user)
            unarchive_for(chat, [user, from_user])

            message_request.status = MessageRequest.STATUS_ACCEPTED
            message_request.responded_at = timezone.now()
            message_request.response_message = (response_message or '').strip()[:200]
            message_request.chat = chat
            message_request.save(update_fields=[
                'status', 'responded_at', 'response_message', 'chat', 'updated_at',
            ])

            if message_request.message:
                deliver_message(chat, from_user, content=message_request.message)

    if expired:
        raise DomainError('Request has expired', code='REQUEST_EXPIRED')
    logger.info(f'Message request {message_request.id} accepted, chat {chat.id}')
    return message_request, chat


def reject_message_request(user, request_id, response_message=''):
    with transaction.atomic():
        message_request = _locked_request(request_id)
        if message_request.to_user_id != user.id:
            raise ForbiddenError('Only the recipient can reject this request', code='NOT_REQUEST_RECIPIENT')
        if message_request.status != MessageRequest.STATUS_PENDING:
            raise DomainError('Request is no longer pending', code='REQUEST_NOT_PENDING')
        message_request.status = MessageRequest.STATUS_REJECTED
        message_request.responded_at = timezone.now()
        message_request.response_message = (response_message or '').strip()[:200]
        message_request.save(update_fields=['status', 'responded_at', 'response_message', 'updated_at'])
    return message_request


def delete_message_request(user, request_id):
    with transaction.atomic():
        message_request = _locked_request(request_id)
        if message_request.from_user_id != user.id:
            raise ForbiddenError('Only the sender can delete this request', code='NOT_REQUEST_SENDER')
        if message_request.status != MessageRequest.STATUS_PENDING:
            raise DomainError('Only pending requests can be deleted', code='REQUEST_NOT_PENDING')
        message_request.delete()


def get_message_request(user, request_id):
    try:
        message_request = MessageRequest.objects.select_related('from_user', 'to_user').get(pk=request_id)
    except MessageRequest.DoesNotExist:
        raise NotFoundError('Message request not found', code='REQUEST_NOT_FOUND')
    if user.id not in (message_request.from_user_id, message_request.to_user_id):
        raise ForbiddenError('Access denied to this request', code='REQUEST_ACCESS_DENIED')
    return message_request


def pending_requests(user):
    return MessageRequest.objects.filter(
        to_user=user,
        status=MessageRequest.STATUS_PENDING,
        expires_at__gt=timezone.now(),
    ).select_related('from_user')


def sent_requests(user, status=None):
    qs = MessageRequest.objects.filter(from_user=user).select_related('to_user')
    if status:
        qs = qs.filter(status=status)
    return qs


def request_between(user, other_id):
    other = resolve_target(user, other_id, 'Invalid user ID')
    return _between(user, other).select_related('from_user', 'to_user').order_by('-requested_at').first()


def request_stats(user):
    involving = MessageRequest.objects.filter(Q(from_user=user) | Q(to_user=user))
    now = timezone.now()
    by_status = {
        row['status']: row['count']
        for row in involving.order_by().values('status').annotate(count=Count('id'))
    }
    return {
        'total_requests': involving.count(),
        'pending_received': involving.filter(
            to_user=user, status=MessageRequest.STATUS_PENDING, expires_at__gt=now,
        ).count(),
        'pending_sent': involving.filter(
            from_user=user, status=MessageRequest.STATUS_PENDING, expires_at__gt=now,
        ).count(),
        'by_status': {key: by_status.get(key, 0) for key, _ in MessageRequest.STATUSES},
    }


def expire_message_requests():
    now = timezone.now()
    return MessageRequest.objects.filter(
        status=MessageRequest.STATUS_PENDING,
        expires_at__lte=now,
    ).update(status=MessageRequest.STATUS_EXPIRED, updated_at=now)
