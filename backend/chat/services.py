"""
Chat service: who may talk to whom, chat lifecycle, per-participant settings and messages.
"""
import logging
import math

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from accounts.models import User
from config.exceptions import DomainError, ForbiddenError, NotFoundError
from social.services import is_blocked_between, is_following
from .models import Chat, ChatParticipant, Message, MessageReaction, MessageRequest, MessageStatus

logger = logging.getLogger(__name__)


# ── Chat permission ──

def can_users_chat(user, other):
    """
    Decide whether user may open or use a chat with other.
    Returns (allowed, reason); the checks run in a fixed order and the first match wins.
    """
    if user is None or other is None:
        return False, 'user_not_found'
    if not user.is_active or not other.is_active:
        return False, 'user_inactive'
    if is_blocked_between(user, other):
        return False, 'blocked'

    pair_key = Chat.make_pair_key(user.id, other.id)
    if Chat.objects.filter(pair_key=pair_key, is_active=True).exists():
        return True, 'existing_chat'

    if MessageRequest.objects.filter(
        Q(from_user=user, to_user=other) | Q(from_user=other, to_user=user),
        status=MessageRequest.STATUS_ACCEPTED,
    ).exists():
        return True, 'accepted_request'

    user_follows = is_following(user, other)
    other_follows = is_following(other, user)
    if user_follows and other_follows:
        return True, 'mutual_follow'

    if (user_follows and other.allow_messages == 'followers') or \
            (other_follows and user.allow_messages == 'followers'):
        return True, 'follower_can_message'

    if user.allow_messages == 'everyone' or other.allow_messages == 'everyone':
        return True, 'public_messaging_allowed'

    return False, 'no_permission'


# ── Chat lifecycle ──

def refresh_active_state(chat):
    """A chat is inactive exactly when every participant has archived it."""
    is_active = chat.chat_participants.filter(is_archived=False).exists()
    if chat.is_active != is_active:
        chat.is_active = is_active
        chat.save(update_fields=['is_active', 'updated_at'])
    return chat


def unarchive_for(chat, users):
    ChatParticipant.objects.filter(chat=chat, user__in=users, is_archived=True).update(
        is_archived=False, archived_at=None,
    )
    return refresh_active_state(chat)


def find_or_create_chat(user, other):
    """
    Return (chat, created) for the unordered pair. An archived-away chat is
    reopened for user instead of creating a second one.
    """
    if user.id == other.id:
        raise DomainError('Cannot create chat with yourself', code='INVALID_USER')

    pair_key = Chat.make_pair_key(user.id, other.id)
    with transaction.atomic():
        chat = Chat.objects.select_for_update().filter(pair_key=pair_key).first()
        if chat is not None:
            if not chat.is_active:
                unarchive_for(chat, [user])
                logger.info(f'Chat {chat.id} reopened by user {user.id}')
            return chat, False

        try:
            with transaction.atomic():
                chat = Chat.objects.create(pair_key=pair_key)
                ChatParticipant.objects.bulk_create([
                    ChatParticipant(chat=chat, user=user),
                    ChatParticipant(chat=chat, user=other),
                ])
        except IntegrityError:
            return Chat.objects.get(pair_key=pair_key), False

    logger.info(f'Chat {chat.id} created between {user.id} and {other.id}')
    return chat, True


def pending_request_between(user, other):
    return MessageRequest.objects.filter(
        Q(from_user=user, to_user=other) | Q(from_user=other, to_user=user),
        status=MessageRequest.STATUS_PENDING,
        expires_at__gt=timezone.now(),
    ).first()


def create_or_get_chat(user, other_id):
    """
    Open the canonical chat with other_id if policy allows it.
    Returns (chat, created, reason).
    """
    try:
        other_id = int(other_id)
    except (TypeError, ValueError):
        raise DomainError('Invalid user ID', code='INVALID_USER')
    if other_id == user.id:
        raise DomainError('Cannot create chat with yourself', code='INVALID_USER')
    try:
        other = User.objects.get(pk=other_id)
    except User.DoesNotExist:
        raise NotFoundError('User not found', code='USER_NOT_FOUND')

    allowed, reason = can_users_chat(user, other)
    if reason == 'user_inactive':
        raise DomainError('Cannot chat with inactive users', code='USER_INACTIVE')
    if reason == 'blocked':
        raise ForbiddenError('Cannot chat with this user', code='USER_BLOCKED')
    if not allowed:
        pending = pending_request_between(user, other)
        raise ForbiddenError(
            'Cannot start chat. Send a message request first.',
            code='MESSAGE_REQUEST_REQUIRED',
            extra={
                'needs_message_request': True,
                'message_request_exists': pending is not None,
                'message_request_id': str(pending.id) if pending else None,
                'reason': 'message_request_pending' if pending else 'no_permission',
            },
        )

    chat, created = find_or_create_chat(user, other)
    return chat, created, reason


def get_chat_for_user(user, chat_id):
    """Returns (chat, participant) or raises if the chat is missing or not the user's."""
    try:
        chat = Chat.objects.get(pk=chat_id)
    except Chat.DoesNotExist:
        raise NotFoundError('Chat not found', code='CHAT_NOT_FOUND')
    participant = chat.participant_for(user)
    if participant is None:
        raise ForbiddenError('Access denied to this chat', code='CHAT_ACCESS_DENIED')
    return chat, participant


def _participant_rows(user):
    return ChatParticipant.objects.filter(user=user, chat__is_active=True).select_related(
        'chat', 'chat__last_message',
    ).prefetch_related('chat__chat_participants__user')


def _ordered(rows):
    return rows.annotate(
        activity=Coalesce('chat__last_message_at', 'chat__updated_at'),
    ).order_by('-is_pinned', '-activity', 'chat__created_at')


def list_user_chats(user, page=1, limit=20, include_archived=False):
    try:
        page = int(page)
        limit = int(limit)
    except (TypeError, ValueError):
        raise DomainError('Invalid pagination parameters', code='VALIDATION_ERROR')
    if page < 1 or limit < 1 or limit > 100:
        raise DomainError('Invalid pagination parameters', code='VALIDATION_ERROR')

    rows = _ordered(_participant_rows(user).filter(is_archived=bool(include_archived)))
    total = rows.count()
    offset = (page - 1) * limit
    return {
        'results': list(rows[offset:offset + limit]),
        'page': page,
        'limit': limit,
        'total': total,
        'pages': math.ceil(total / limit) if total else 0,
        'has_next': offset + limit < total,
    }


def search_chats(user, query):
    query = (query or '').strip()
    if not query:
        raise DomainError('Search query is required', code='VALIDATION_ERROR')
    matching = ChatParticipant.objects.exclude(user=user).filter(
        Q(user__username__icontains=query) | Q(user__full_name__icontains=query)
    ).values('chat_id')
    return list(_ordered(_participant_rows(user).filter(is_archived=False, chat_id__in=matching))[:50])


def update_chat_settings(user, chat_id, is_archived=None, is_pinned=None, is_muted=None):
    chat, participant = get_chat_for_user(user, chat_id)
    now = timezone.now()
    update_fields = []
    if is_archived is not None:
        participant.is_archived = is_archived
        participant.archived_at = now if is_archived else None
        update_fields += ['is_archived', 'archived_at']
    if is_pinned is not None:
        participant.is_pinned = is_pinned
        participant.pinned_at = now if is_pinned else None
        update_fields += ['is_pinned', 'pinned_at']
    if is_muted is not None:
        participant.is_muted = is_muted
        participant.muted_at = now if is_muted else None
        update_fields += ['is_muted', 'muted_at']
    if not update_fields:
        raise DomainError('No settings provided', code='VALIDATION_ERROR')

    with transaction.atomic():
        participant.save(update_fields=update_fields)
        if is_archived is not None:
            refresh_active_state(chat)
    return chat, participant


def delete_chat(user, chat_id):
    """Remove the chat from the user's list and hide its history for them only."""
    chat, participant = get_chat_for_user(user, chat_id)
    now = timezone.now()
    with transaction.atomic():
        participant.is_archived = True
        participant.archived_at = now
        participant.deleted_at = now
        participant.unread_count = 0
        participant.save(update_fields=['is_archived', 'archived_at', 'deleted_at', 'unread_count'])
        refresh_active_state(chat)
    logger.info(f'User {user.id} deleted chat {chat.id}')
    return chat


def chat_stats(user):
    rows = ChatParticipant.objects.filter(user=user, chat__is_active=True)
    stats = rows.aggregate(
        total_chats=Count('id', filter=Q(is_archived=False)),
        archived_chats=Count('id', filter=Q(is_archived=True)),
        pinned_chats=Count('id', filter=Q(is_pinned=True, is_archived=False)),
        total_unread_messages=Sum('unread_count', filter=Q(is_archived=False)),
    )
    stats['total_unread_messages'] = stats['total_unread_messages'] or 0
    return stats


def mark_chat_read(user, chat_id):
    """Reset the unread counter and write read receipts for the other side's messages."""
    chat, participant = get_chat_for_user(user, chat_id)
    now = timezone.now()
    already_read = MessageStatus.objects.filter(
        user=user, status='read', message__chat=chat,
    ).values('message_id')
    unread_ids = list(
        chat.messages.filter(is_deleted=False).exclude(sender=user).exclude(id__in=already_read)
        .values_list('id', flat=True)
    )
    with transaction.atomic():
        if unread_ids:
            MessageStatus.objects.filter(user=user, message_id__in=unread_ids).update(status='read', timestamp=now)
            existing = set(
                MessageStatus.objects.filter(user=user, message_id__in=unread_ids).values_list('message_id', flat=True)
            )
            MessageStatus.objects.bulk_create([
                MessageStatus(message_id=message_id, user=user, status='read')
                for message_id in unread_ids if message_id not in existing
            ])
        participant.unread_count = 0
        participant.last_read_at = now
        participant.save(update_fields=['unread_count', 'last_read_at'])
    return len(unread_ids)


# ── Messages ──

def deliver_message(chat, sender, **fields):
    """Persist a message and move the chat's last-message pointer and unread counters."""
    with transaction.atomic():
        message = Message.objects.create(chat=chat, sender=sender, **fields)
        Chat.objects.filter(pk=chat.pk).update(
            last_message=message,
            last_message_at=message.created_at,
            updated_at=message.created_at,
        )
        ChatParticipant.objects.filter(chat=chat).exclude(user=sender).update(
            unread_count=F('unread_count') + 1,
        )
    return message


def _validate_text(content):
    content = (content or '').strip()
    if not content:
        raise DomainError('Message content is required', code='VALIDATION_ERROR')
    if len(content) > settings.MESSAGE_MAX_LENGTH:
        raise DomainError(
            f'Message cannot exceed {settings.MESSAGE_MAX_LENGTH} characters', code='VALIDATION_ERROR'
        )
    return content


def _ensure_can_message(user, chat):
    if not chat.is_active:
        raise DomainError('This chat is no longer active', code='CHAT_INACTIVE')
    other = chat.other_participant(user)
    if other is not None:
        if not other.user.is_active:
            raise DomainError('Cannot chat with inactive users', code='USER_INACTIVE')
        if is_blocked_between(user, other.user):
            raise ForbiddenError('Cannot send messages to this user', code='USER_BLOCKED')


def send_message(user, chat_id, message_type='text', content='', media=None, reply_to_id=None):
    chat, _ = get_chat_for_user(user, chat_id)
    _ensure_can_message(user, chat)

    if message_type not in dict(Message.MSG_TYPES):
        raise DomainError('Invalid message type', code='VALIDATION_ERROR')

    fields = {'message_type': message_type}
    if message_type == Message.TYPE_TEXT:
        fields['content'] = _validate_text(content)
    else:
        if media is None:
            raise DomainError(f'A media file is required for {message_type} messages', code='VALIDATION_ERROR')
        if media.size > settings.MEDIA_MAX_BYTES:
            raise DomainError('Media file exceeds the 50MB limit', code='FILE_TOO_LARGE')
        fields.update({
            'content': (content or '').strip()[:settings.MESSAGE_MAX_LENGTH],
            'media': media,
            'media_name': getattr(media, 'name', '')[:255],
            'media_mime': getattr(media, 'content_type', '') or '',
            'media_size': media.size,
        })

    if reply_to_id:
        try:
            fields['reply_to'] = Message.objects.get(pk=reply_to_id, chat=chat)
        except Message.DoesNotExist:
            raise DomainError('Reply target not found in this chat', code='VALIDATION_ERROR')

    message = deliver_message(chat, user, **fields)
    logger.info(f'Message {message.id} ({message_type}) sent in chat {chat.id}')
    return message


def list_messages(user, chat_id):
    chat, participant = get_chat_for_user(user, chat_id)
    messages = chat.messages.select_related('sender', 'reply_to').prefetch_related('reactions', 'statuses')
    if participant.deleted_at:
        messages = messages.filter(created_at__gt=participant.deleted_at)
    return messages


def get_message_for_participant(user, message_id):
    try:
        message = Message.objects.select_related('chat').get(pk=message_id)
    except Message.DoesNotExist:
        raise NotFoundError('Message not found', code='MESSAGE_NOT_FOUND')
    if message.chat.participant_for(user) is None:
        raise ForbiddenError('Access denied to this chat', code='CHAT_ACCESS_DENIED')
    return message


def edit_message(user, message_id, content):
    message = get_message_for_participant(user, message_id)
    if message.sender_id != user.id:
        raise ForbiddenError('You can only edit your own messages', code='NOT_MESSAGE_OWNER')
    if message.is_deleted:
        raise DomainError('Cannot edit a deleted message', code='MESSAGE_DELETED')
    if message.message_type != Message.TYPE_TEXT:
        raise DomainError('Only text messages can be edited', code='VALIDATION_ERROR')
    if not message.can_edit():
        raise DomainError('Messages can only be edited within 15 minutes', code='EDIT_WINDOW_EXPIRED')

    content = _validate_text(content)
    now = timezone.now()
    history = list(message.edit_history or [])
    history.append({'content': message.content, 'edited_at': now.isoformat()})
    message.edit_history = history[-settings.EDIT_HISTORY_LIMIT:]
    message.content = content
    message.is_edited = True
    message.edited_at = now
    message.save(update_fields=['content', 'is_edited', 'edited_at', 'edit_history'])
    return message


def delete_message(user, message_id):
    message = get_message_for_participant(user, message_id)
    if message.sender_id != user.id:
        raise ForbiddenError('You can only delete your own messages', code='NOT_MESSAGE_OWNER')
    if message.is_deleted:
        raise DomainError('Message already deleted', code='MESSAGE_DELETED')
    message.is_deleted = True
    message.deleted_at = timezone.now()
    message.deleted_by = user
    message.content = ''
    message.save(update_fields=['is_deleted', 'deleted_at', 'deleted_by', 'content'])
    return message


def react_to_message(user, message_id, emoji):
    message = get_message_for_participant(user, message_id)
    emoji = (emoji or '').strip()
    if not emoji or len(emoji) > 10:
        raise DomainError('A valid emoji is required', code='VALIDATION_ERROR')
    if message.is_deleted:
        raise DomainError('Cannot react to a deleted message', code='MESSAGE_DELETED')
    reaction, _ = MessageReaction.objects.update_or_create(
        message=message, user=user, defaults={'emoji': emoji},
    )
    return reaction


def remove_reaction(user, message_id):
    message = get_message_for_participant(user, message_id)
    deleted, _ = MessageReaction.objects.filter(message=message, user=user).delete()
    if not deleted:
        raise NotFoundError('Reaction not found', code='REACTION_NOT_FOUND')


def forward_message(user, message_id, target_chat_id):
    source = get_message_for_participant(user, message_id)
    if source.is_deleted:
        raise DomainError('Cannot forward a deleted message', code='MESSAGE_DELETED')
    target_chat, _ = get_chat_for_user(user, target_chat_id)
    _ensure_can_message(user, target_chat)

    return deliver_message(
        target_chat, user,
        message_type=source.message_type,
        content=source.content,
        media=source.media.name if source.media else None,
        media_name=source.media_name,
        media_mime=source.media_mime,
        media_size=source.media_size,
        is_forwarded=True,
        forwarded_from=source,
    )


def search_messages(user, query, chat_id=None):
    query = (query or '').strip()
    if len(query) < 2:
        raise DomainError('Search query must be at least 2 characters', code='VALIDATION_ERROR')
    messages = Message.objects.filter(
        Q(chat__chat_participants__deleted_at__isnull=True) |
        Q(created_at__gt=F('chat__chat_participants__deleted_at')),
        chat__chat_participants__user=user,
        is_deleted=False,
        content__icontains=query,
    )
    if chat_id:
        get_chat_for_user(user, chat_id)
        messages = messages.filter(chat_id=chat_id)
    return messages.select_related('sender').order_by('-created_at')[:50]
