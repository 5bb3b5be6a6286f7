"""
Social graph operations: follow requests, follow edges, blocks and reports.

Every guard raises a config.exceptions error; callers never inspect return codes.
"""
import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from django.utils import timezone

from accounts.models import User
from config.exceptions import DomainError, ForbiddenError, NotFoundError
from .models import Block, Follow, FollowRequest, UserReport

logger = logging.getLogger(__name__)


def resolve_target(user, target_id, invalid_message):
    """Load the other party of a social action, rejecting self-targeting."""
    try:
        target_id = int(target_id)
    except (TypeError, ValueError):
        raise DomainError(invalid_message, code='INVALID_USER')
    if target_id == user.id:
        raise DomainError(invalid_message, code='INVALID_USER')
    try:
        return User.objects.get(pk=target_id)
    except User.DoesNotExist:
        raise NotFoundError('User not found', code='USER_NOT_FOUND')


# ── Relationship queries ──

def is_following(user, target):
    return Follow.objects.filter(follower=user, following=target).exists()


def has_blocked(user, target):
    return Block.objects.filter(blocker=user, blocked=target).exists()


def is_blocked_by(user, target):
    return Block.objects.filter(blocker=target, blocked=user).exists()


def is_blocked_between(a, b):
    return Block.objects.filter(
        Q(blocker=a, blocked=b) | Q(blocker=b, blocked=a)
    ).exists()


def block_related_ids(user):
    """Ids of users that user has blocked or been blocked by."""
    pairs = Block.objects.filter(Q(blocker=user) | Q(blocked=user)).values_list('blocker_id', 'blocked_id')
    ids = set()
    for blocker_id, blocked_id in pairs:
        ids.add(blocked_id if blocker_id == user.id else blocker_id)
    return ids


def followers_count(user):
    return Follow.objects.filter(following=user).count()


def following_count(user):
    return Follow.objects.filter(follower=user).count()


def relationship_status(viewer, target):
    now = timezone.now()
    pending = list(FollowRequest.objects.filter(
        Q(requester=viewer, recipient=target) | Q(requester=target, recipient=viewer),
        status=FollowRequest.STATUS_PENDING,
        expires_at__gt=now,
    ))
    sent = next((r for r in pending if r.requester_id == viewer.id), None)
    received = next((r for r in pending if r.requester_id == target.id), None)
    following = is_following(viewer, target)
    followed_by = is_following(target, viewer)
    return {
        'is_following': following,
        'is_followed_by': followed_by,
        'is_mutual': following and followed_by,
        'has_blocked': has_blocked(viewer, target),
        'is_blocked_by': is_blocked_by(viewer, target),
        'follow_request_sent': str(sent.id) if sent else None,
        'follow_request_received': str(received.id) if received else None,
    }


# ── Follow requests ──

def _mark_expired(follow_request):
    follow_request.status = FollowRequest.STATUS_EXPIRED
    follow_request.responded_at = None
    follow_request.save(update_fields=['status', 'responded_at', 'updated_at'])


def send_follow_request(requester, recipient_id, message=''):
    recipient = resolve_target(requester, recipient_id, 'Invalid user ID or cannot follow yourself')
    if not requester.is_active or not recipient.is_active:
        raise DomainError('Cannot follow inactive users', code='USER_INACTIVE')
    if is_blocked_between(requester, recipient):
        raise ForbiddenError('Cannot follow blocked users', code='USER_BLOCKED')
    if is_following(requester, recipient):
        raise DomainError('Already following this user', code='ALREADY_FOLLOWING')
    if not recipient.allow_follow_requests:
        raise ForbiddenError('This user is not accepting follow requests', code='FOLLOW_REQUESTS_DISABLED')

    with transaction.atomic():
        pending = FollowRequest.objects.select_for_update().filter(
            Q(requester=requester, recipient=recipient) | Q(requester=recipient, recipient=requester),
            status=FollowRequest.STATUS_PENDING,
        )
        for existing in pending:
            if existing.is_expired():
                _mark_expired(existing)
                continue
            if existing.requester_id == requester.id:
                raise DomainError('Follow request already sent', code='REQUEST_ALREADY_SENT')
            raise DomainError(
                'This user has already sent you a follow request',
                code='REQUEST_ALREADY_RECEIVED',
                extra={'request_id': str(existing.id)},
            )

        # A finished request for the same ordered pair is replaced, never duplicated
        FollowRequest.objects.filter(requester=requester, recipient=recipient).delete()
        try:
            with transaction.atomic():
                follow_request = FollowRequest.objects.create(
                    requester=requester,
                    recipient=recipient,
                    message=(message or '').strip(),
                )
        except IntegrityError:
            raise DomainError('Follow request already sent', code='REQUEST_ALREADY_SENT')

    logger.info(f'Follow request {follow_request.id}: {requester.id} -> {recipient.id}')
    return follow_request


def _locked_pending_request(recipient, request_id):
    try:
        return FollowRequest.objects.select_for_update().get(
            id=request_id, recipient=recipient, status=FollowRequest.STATUS_PENDING,
        )
    except FollowRequest.DoesNotExist:
        raise NotFoundError('Follow request not found or already processed', code='REQUEST_NOT_FOUND')


def accept_follow_request(recipient, request_id):
    """
    Accept a pending request and create the follow edge.

    Runs under a row lock on the request. If the edge already exists the
    request is still closed as accepted and no second edge is written.
    Returns (follow_request, already_following).
    """
    expired = False
    created = False
    with transaction.atomic():
        follow_request = _locked_pending_request(recipient, request_id)
        if follow_request.is_expired():
            _mark_expired(follow_request)
            expired = True
        else:
            requester = User.objects.filter(pk=follow_request.requester_id, is_active=True).first()
            if requester is None or not recipient.is_active:
                raise DomainError('Cannot process request - user not found or inactive', code='USER_INACTIVE')
            _, created = Follow.objects.get_or_create(follower=requester, following=recipient)
            follow_request.status = FollowRequest.STATUS_ACCEPTED
            follow_request.responded_at = timezone.now()
            follow_request.save(update_fields=['status', 'responded_at', 'updated_at'])

    if expired:
        raise DomainError('Follow request has expired', code='REQUEST_EXPIRED')
    if not created:
        logger.warning(f'Follow request {follow_request.id} accepted but edge already existed')
    else:
        logger.info(f'Follow request {follow_request.id} accepted')
    return follow_request, not created


def reject_follow_request(recipient, request_id):
    with transaction.atomic():
        follow_request = _locked_pending_request(recipient, request_id)
        follow_request.status = FollowRequest.STATUS_REJECTED
        follow_request.responded_at = timezone.now()
        follow_request.save(update_fields=['status', 'responded_at', 'updated_at'])
    return follow_request


def cancel_follow_request(requester, request_id):
    with transaction.atomic():
        try:
            follow_request = FollowRequest.objects.select_for_update().get(
                id=request_id, requester=requester, status=FollowRequest.STATUS_PENDING,
            )
        except FollowRequest.DoesNotExist:
            raise NotFoundError('Follow request not found or already processed', code='REQUEST_NOT_FOUND')
        follow_request.status = FollowRequest.STATUS_CANCELLED
        follow_request.responded_at = timezone.now()
        follow_request.save(update_fields=['status', 'responded_at', 'updated_at'])
    return follow_request


def pending_follow_requests(user):
    return FollowRequest.objects.filter(
        recipient=user,
        status=FollowRequest.STATUS_PENDING,
        expires_at__gt=timezone.now(),
    ).select_related('requester')


def sent_follow_requests(user, status=None):
    qs = FollowRequest.objects.filter(requester=user).select_related('recipient')
    if status:
        qs = qs.filter(status=status)
    return qs


def expire_follow_requests():
    now = timezone.now()
    return FollowRequest.objects.filter(
        status=FollowRequest.STATUS_PENDING,
        expires_at__lte=now,
    ).update(status=FollowRequest.STATUS_EXPIRED, updated_at=now)


# ── Follow edges ──

def unfollow(user, target_id):
    """Drop the edge, or withdraw a still-pending request. Returns which one happened."""
    target = resolve_target(user, target_id, 'Invalid user ID or cannot unfollow yourself')
    deleted, _ = Follow.objects.filter(follower=user, following=target).delete()
    if deleted:
        return 'unfollowed'

    now = timezone.now()
    cancelled = FollowRequest.objects.filter(
        requester=user, recipient=target, status=FollowRequest.STATUS_PENDING,
    ).update(status=FollowRequest.STATUS_CANCELLED, responded_at=now, updated_at=now)
    if cancelled:
        return 'request_cancelled'
    raise DomainError('Not following this user', code='NOT_FOLLOWING')


def remove_follower(user, follower_id):
    follower = resolve_target(user, follower_id, 'Invalid user ID or cannot remove yourself')
    deleted, _ = Follow.objects.filter(follower=follower, following=user).delete()
    if not deleted:
        raise DomainError('This user is not following you', code='NOT_A_FOLLOWER')


def followers(user):
    return Follow.objects.filter(following=user).select_related('follower')


def following(user):
    return Follow.objects.filter(follower=user).select_related('following')


# ── Blocks ──

def block_user(user, target_id):
    target = resolve_target(user, target_id, 'Invalid user ID or cannot block yourself')
    with transaction.atomic():
        _, created = Block.objects.get_or_create(blocker=user, blocked=target)
        if not created:
            raise DomainError('User is already blocked', code='ALREADY_BLOCKED')
        Follow.objects.filter(
            Q(follower=user, following=target) | Q(follower=target, following=user)
        ).delete()
        FollowRequest.objects.filter(
            Q(requester=user, recipient=target) | Q(requester=target, recipient=user)
        ).delete()
    logger.info(f'User {user.id} blocked {target.id}')
    return target


def unblock_user(user, target_id):
    target = resolve_target(user, target_id, 'Invalid user ID or cannot unblock yourself')
    deleted, _ = Block.objects.filter(blocker=user, blocked=target).delete()
    if not deleted:
        raise DomainError('User is not blocked', code='NOT_BLOCKED')
    return target


def blocked_users(user):
    return Block.objects.filter(blocker=user).select_related('blocked')


def social_stats(user):
    now = timezone.now()
    return {
        'following_count': following_count(user),
        'followers_count': followers_count(user),
        'blocked_count': Block.objects.filter(blocker=user).count(),
        'blocked_by_count': Block.objects.filter(blocked=user).count(),
        'pending_requests_count': FollowRequest.objects.filter(
            recipient=user, status=FollowRequest.STATUS_PENDING, expires_at__gt=now,
        ).count(),
        'sent_requests_count': FollowRequest.objects.filter(
            requester=user, status=FollowRequest.STATUS_PENDING, expires_at__gt=now,
        ).count(),
    }


# ── Reports ──

def report_user(reporter, target_id, report_type, description):
    target = resolve_target(reporter, target_id, 'Invalid user ID or cannot report yourself')
    description = (description or '').strip()
    if not report_type or not description:
        raise DomainError('Report type and description are required', code='VALIDATION_ERROR')
    if report_type not in dict(UserReport.REPORT_TYPES):
        raise DomainError('Invalid report type', code='VALIDATION_ERROR')
    if len(description) > 1000:
        raise DomainError('Description cannot exceed 1000 characters', code='VALIDATION_ERROR')

    pair_key = UserReport.make_pair_key(reporter.id, target.id)
    existing = UserReport.objects.filter(pair_key=pair_key).first()
    if existing is not None:
        if existing.reporter_id == reporter.id:
            raise DomainError('You have already reported this user', code='ALREADY_REPORTED')
        raise DomainError('A report already exists between these users', code='ALREADY_REPORTED')

    try:
        with transaction.atomic():
            report = UserReport.objects.create(
                reporter=reporter,
                reported_user=target,
                pair_key=pair_key,
                report_type=report_type,
                description=description,
            )
    except IntegrityError:
        raise DomainError('You have already reported this user', code='ALREADY_REPORTED')

    logger.info(f'User {reporter.id} reported {target.id} for {report_type}')
    return report


def review_report(report_id, new_status, reviewer, admin_notes=''):
    """Move a pending report to resolved or dismissed."""
    if new_status not in (UserReport.STATUS_RESOLVED, UserReport.STATUS_DISMISSED):
        raise DomainError('Valid status is required', code='VALIDATION_ERROR')
    with transaction.atomic():
        try:
            report = UserReport.objects.select_for_update().get(pk=report_id)
        except UserReport.DoesNotExist:
            raise NotFoundError('Report not found', code='REPORT_NOT_FOUND')
        if report.status != UserReport.STATUS_PENDING:
            raise DomainError('Report has already been reviewed', code='REPORT_ALREADY_REVIEWED')

        report.status = new_status
        update_fields = ['status', 'updated_at']
        if new_status == UserReport.STATUS_RESOLVED:
            report.admin_notes = admin_notes or ''
            report.resolved_by_role = reviewer.ROLE
            report.resolved_by_id = reviewer.pk
            report.resolved_at = timezone.now()
            update_fields += ['admin_notes', 'resolved_by_role', 'resolved_by_id', 'resolved_at']
        report.save(update_fields=update_fields)

    logger.info(f'Report {report.pk} marked {new_status} by {reviewer.ROLE} {reviewer.pk}')
    return report


def report_stats():
    week_ago = timezone.now() - timedelta(days=7)
    by_status = {
        row['status']: row['count']
        for row in UserReport.objects.order_by().values('status').annotate(count=Count('id'))
    }
    by_type = {
        row['report_type']: row['count']
        for row in UserReport.objects.order_by().values('report_type').annotate(count=Count('id'))
    }
    return {
        'total_reports': UserReport.objects.count(),
        'recent_reports': UserReport.objects.filter(created_at__gte=week_ago).count(),
        'by_status': {key: by_status.get(key, 0) for key, _ in UserReport.STATUSES},
        'by_type': by_type,
    }
