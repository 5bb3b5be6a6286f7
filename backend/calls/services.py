"""
Call sessions between the two participants of a chat.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from chat.services import get_chat_for_user
from config.exceptions import DomainError, ForbiddenError, NotFoundError, RateLimitError
from social.services import is_blocked_between
from .models import Call, CallParticipant

logger = logging.getLogger(__name__)

CALL_TYPES = ('audio', 'video')


def _stale_cutoff():
    return timezone.now() - timedelta(minutes=settings.CALL_STALE_MINUTES)


def _check_rate_limit(user):
    since = timezone.now() - timedelta(seconds=settings.CALL_RATE_WINDOW_SECONDS)
    recent = Call.objects.filter(initiated_by=user, created_at__gte=since).count()
    if recent >= settings.CALL_RATE_LIMIT:
        raise RateLimitError(
            'Too many call attempts. Please wait before calling again',
            code='CALL_RATE_LIMIT',
            extra={'retry_after': settings.CALL_RATE_WINDOW_SECONDS},
        )


def initiate_call(user, chat_id, call_type):
    """
    Start a call in a chat, or return the call already ringing/ongoing there.
    Returns (call, created).
    """
    if call_type not in CALL_TYPES:
        raise DomainError('Invalid call type. Use "audio" or "video"', code='VALIDATION_ERROR')

    chat, _ = get_chat_for_user(user, chat_id)
    if not chat.is_active:
        raise DomainError('This chat is no longer active', code='CHAT_INACTIVE')
    other = chat.other_participant(user)
    if other is None:
        raise DomainError('No one to call in this chat', code='VALIDATION_ERROR')
    if not other.user.is_active:
        raise DomainError('Cannot call inactive users', code='USER_INACTIVE')
    if is_blocked_between(user, other.user):
        raise ForbiddenError('Cannot call this user', code='USER_BLOCKED')

    with transaction.atomic():
        active = Call.objects.select_for_update().filter(
            chat=chat, status__in=Call.ACTIVE_STATUSES,
        ).order_by('-created_at').first()
        if active is not None:
            if active.created_at > _stale_cutoff():
                return active, False
            active.finish('timeout')
            logger.info(f'Call {active.id} timed out before a new call in chat {chat.id}')

        _check_rate_limit(user)
        now = timezone.now()
        call = Call.objects.create(chat=chat, call_type=call_type, initiated_by=user)
        CallParticipant.objects.bulk_create([
            CallParticipant(call=call, user=user, joined_at=now),
            CallParticipant(call=call, user=other.user),
        ])

    logger.info(f'{call_type} call {call.id} started by {user.id} in chat {chat.id}')
    return call, True


def _calls_for(user):
    return Call.objects.filter(participants__user=user).distinct()


def get_call(user, call_id):
    try:
        return _calls_for(user).select_related('initiated_by').prefetch_related(
            'participants__user'
        ).get(pk=call_id)
    except Call.DoesNotExist:
        raise NotFoundError('Call not found', code='CALL_NOT_FOUND')


def _locked_call(user, call_id):
    try:
        call = Call.objects.select_for_update().get(pk=call_id)
    except Call.DoesNotExist:
        raise NotFoundError('Call not found', code='CALL_NOT_FOUND')
    participant = call.participants.filter(user=user).first()
    if participant is None:
        raise NotFoundError('Call not found', code='CALL_NOT_FOUND')
    return call, participant


def accept_call(user, call_id):
    with transaction.atomic():
        call, participant = _locked_call(user, call_id)
        if call.initiated_by_id == user.id:
            raise ForbiddenError('You cannot answer your own call', code='NOT_CALL_RECIPIENT')
        if call.status != Call.STATUS_RINGING:
            raise DomainError('Call is no longer ringing', code='CALL_NOT_RINGING')
        now = timezone.now()
        call.status = Call.STATUS_ONGOING
        call.started_at = now
        call.save(update_fields=['status', 'started_at'])
        participant.joined_at = now
        participant.save(update_fields=['joined_at'])
    return call


def reject_call(user, call_id):
    with transaction.atomic():
        call, _ = _locked_call(user, call_id)
        if call.initiated_by_id == user.id:
            raise ForbiddenError('You cannot reject your own call', code='NOT_CALL_RECIPIENT')
        if call.status != Call.STATUS_RINGING:
            raise DomainError('Call is no longer ringing', code='CALL_NOT_RINGING')
        call.status = Call.STATUS_REJECTED
        call.ended_at = timezone.now()
        call.end_reason = 'rejected'
        call.save(update_fields=['status', 'ended_at', 'end_reason'])
    return call


def end_call(user, call_id):
    """Hang up: a ringing call becomes missed, an ongoing call ended with its duration."""
    with transaction.atomic():
        call, _ = _locked_call(user, call_id)
        if not call.is_active:
            raise DomainError('Call has already ended', code='CALL_ENDED')
        if call.status == Call.STATUS_RINGING:
            reason = 'cancelled' if call.initiated_by_id == user.id else 'no_answer'
        else:
            reason = 'completed'
        call.finish(reason)
    logger.info(f'Call {call.id} closed by {user.id}: {call.status} ({call.duration}s)')
    return call


def call_log(user, call_type=None, status=None):
    """
    Calls the user took part in.
    status: missed | received | made, or any raw call status.
    """
    calls = _calls_for(user).select_related('initiated_by').prefetch_related(
        'participants__user'
    ).order_by('-created_at')

    if call_type in CALL_TYPES:
        calls = calls.filter(call_type=call_type)

    if status == 'missed':
        calls = calls.filter(status=Call.STATUS_MISSED).exclude(initiated_by=user)
    elif status == 'received':
        calls = calls.filter(status=Call.STATUS_ENDED).exclude(initiated_by=user)
    elif status == 'made':
        calls = calls.filter(initiated_by=user)
    elif status in dict(Call.CALL_STATUS):
        calls = calls.filter(status=status)
    return calls


def missed_calls_count(user):
    return Call.objects.filter(
        participants__user=user,
        status=Call.STATUS_MISSED,
    ).exclude(initiated_by=user).count()


def call_stats(user):
    calls = _calls_for(user)
    ids = calls.values('id')
    totals = Call.objects.filter(id__in=ids).aggregate(
        total=Count('id'),
        outgoing=Count('id', filter=Q(initiated_by=user)),
        video=Count('id', filter=Q(call_type='video')),
        total_duration=Sum('duration'),
    )
    return {
        'total_calls': totals['total'],
        'outgoing_calls': totals['outgoing'],
        'incoming_calls': totals['total'] - totals['outgoing'],
        'video_calls': totals['video'],
        'missed_calls': missed_calls_count(user),
        'total_duration': totals['total_duration'] or 0,
    }


def cleanup_stale_calls():
    """Close calls that rang past the stale window without being answered."""
    count = 0
    stale = Call.objects.filter(status=Call.STATUS_RINGING, created_at__lt=_stale_cutoff())
    for call in stale:
        with transaction.atomic():
            call.finish('timeout')
        count += 1
    return count
