from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.utils import timezone
from rest_framework import status as http_status
from rest_framework.test import APIClient

from accounts.models import User
from config.exceptions import DomainError, ForbiddenError, NotFoundError
from . import services
from .models import Block, Follow, FollowRequest, UserReport
from .tasks import expire_follow_requests


def make_user(phone, **extra):
    return User.objects.create_user(phone, **extra)


class FollowRequestServiceTests(TestCase):

    def setUp(self):
        self.alice = make_user('9000000001', username='alice')
        self.bob = make_user('9000000002', username='bob')

    def test_accept_creates_follow_edge(self):
        req = services.send_follow_request(self.alice, self.bob.id, 'hi')
        req, already_following = services.accept_follow_request(self.bob, req.id)
        self.assertFalse(already_following)
        self.assertEqual(req.status, FollowRequest.STATUS_ACCEPTED)
        self.assertIsNotNone(req.responded_at)
        self.assertTrue(services.is_following(self.alice, self.bob))
        self.assertFalse(services.is_following(self.bob, self.alice))

    def test_accept_when_edge_already_exists(self):
        req = services.send_follow_request(self.alice, self.bob.id)
        # Edge written by a concurrent request between send and accept
        Follow.objects.create(follower=self.alice, following=self.bob)
        req, already_following = services.accept_follow_request(self.bob, req.id)
        self.assertTrue(already_following)
        self.assertEqual(req.status, FollowRequest.STATUS_ACCEPTED)
        self.assertEqual(Follow.objects.filter(follower=self.alice, following=self.bob).count(), 1)

    def test_accept_twice_fails(self):
        req = services.send_follow_request(self.alice, self.bob.id)
        services.accept_follow_request(self.bob, req.id)
        with self.assertRaises(NotFoundError):
            services.accept_follow_request(self.bob, req.id)

    def test_only_recipient_can_accept(self):
        req = services.send_follow_request(self.alice, self.bob.id)
        with self.assertRaises(NotFoundError):
            services.accept_follow_request(self.alice, req.id)

    def test_accept_expired_request(self):
        req = services.send_follow_request(self.alice, self.bob.id)
        FollowRequest.objects.filter(pk=req.pk).update(expires_at=timezone.now() - timedelta(seconds=1))
        with self.assertRaises(DomainError) as ctx:
            services.accept_follow_request(self.bob, req.id)
        self.assertEqual(ctx.exception.message, 'Follow request has expired')
        req.refresh_from_db()
        self.assertEqual(req.status, FollowRequest.STATUS_EXPIRED)
        self.assertFalse(services.is_following(self.alice, self.bob))

    def test_cannot_follow_self(self):
        with self.assertRaises(DomainError) as ctx:
            services.send_follow_request(self.alice, self.alice.id)
        self.assertEqual(ctx.exception.message, 'Invalid user ID or cannot follow yourself')

    def test_unknown_user(self):
        with self.assertRaises(NotFoundError):
            services.send_follow_request(self.alice, 999999)

    def test_duplicate_pending_request(self):
        services.send_follow_request(self.alice, self.bob.id)
        with self.assertRaises(DomainError) as ctx:
            services.send_follow_request(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.message, 'Follow request already sent')

    def test_opposite_pending_request(self):
        services.send_follow_request(self.bob, self.alice.id)
        with self.assertRaises(DomainError) as ctx:
            services.send_follow_request(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.message, 'This user has already sent you a follow request')

    def test_already_following(self):
        Follow.objects.create(follower=self.alice, following=self.bob)
        with self.assertRaises(DomainError) as ctx:
            services.send_follow_request(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.message, 'Already following this user')

    def test_blocked_either_direction(self):
        Block.objects.create(blocker=self.bob, blocked=self.alice)
        with self.assertRaises(ForbiddenError):
            services.send_follow_request(self.alice, self.bob.id)

    def test_inactive_recipient(self):
        self.bob.is_active = False
        self.bob.save()
        with self.assertRaises(DomainError) as ctx:
            services.send_follow_request(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.message, 'Cannot follow inactive users')

    def test_recipient_refuses_requests(self):
        self.bob.allow_follow_requests = False
        self.bob.save()
        with self.assertRaises(ForbiddenError):
            services.send_follow_request(self.alice, self.bob.id)

    def test_rejected_request_is_replaced(self):
        req = services.send_follow_request(self.alice, self.bob.id)
        services.reject_follow_request(self.bob, req.id)
        services.send_follow_request(self.alice, self.bob.id)
        self.assertEqual(FollowRequest.objects.filter(requester=self.alice, recipient=self.bob).count(), 1)

    def test_cancel_by_requester(self):
        req = services.send_follow_request(self.alice, self.bob.id)
        req = services.cancel_follow_request(self.alice, req.id)
        self.assertEqual(req.status, FollowRequest.STATUS_CANCELLED)

    def test_expire_sweep(self):
        req = services.send_follow_request(self.alice, self.bob.id)
        fresh = services.send_follow_request(self.bob, make_user('9000000003').id)
        FollowRequest.objects.filter(pk=req.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        self.assertEqual(expire_follow_requests(), 1)
        req.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(req.status, FollowRequest.STATUS_EXPIRED)
        self.assertEqual(fresh.status, FollowRequest.STATUS_PENDING)

    def test_pending_list_hides_expired(self):
        req = services.send_follow_request(self.alice, self.bob.id)
        FollowRequest.objects.filter(pk=req.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        self.assertEqual(services.pending_follow_requests(self.bob).count(), 0)


class FollowEdgeServiceTests(TestCase):

    def setUp(self):
        self.alice = make_user('9000000001')
        self.bob = make_user('9000000002')

    def test_unfollow(self):
        Follow.objects.create(follower=self.alice, following=self.bob)
        self.assertEqual(services.unfollow(self.alice, self.bob.id), 'unfollowed')
        self.assertFalse(services.is_following(self.alice, self.bob))

    def test_unfollow_cancels_pending_request(self):
        req = services.send_follow_request(self.alice, self.bob.id)
        self.assertEqual(services.unfollow(self.alice, self.bob.id), 'request_cancelled')
        req.refresh_from_db()
        self.assertEqual(req.status, FollowRequest.STATUS_CANCELLED)

    def test_unfollow_not_following(self):
        with self.assertRaises(DomainError) as ctx:
            services.unfollow(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.message, 'Not following this user')

    def test_remove_follower(self):
        Follow.objects.create(follower=self.bob, following=self.alice)
        services.remove_follower(self.alice, self.bob.id)
        self.assertFalse(services.is_following(self.bob, self.alice))
        with self.assertRaises(DomainError) as ctx:
            services.remove_follower(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.message, 'This user is not following you')

    def test_block_removes_edges_and_requests(self):
        Follow.objects.create(follower=self.alice, following=self.bob)
        Follow.objects.create(follower=self.bob, following=self.alice)
        services.send_follow_request(self.bob, make_user('9000000003').id)
        FollowRequest.objects.create(requester=self.bob, recipient=self.alice)
        services.block_user(self.alice, self.bob.id)
        self.assertFalse(Follow.objects.filter(follower__in=[self.alice, self.bob], following__in=[self.alice, self.bob]).exists())
        self.assertFalse(FollowRequest.objects.filter(requester=self.bob, recipient=self.alice).exists())
        self.assertEqual(FollowRequest.objects.filter(requester=self.bob).count(), 1)

    def test_block_twice(self):
        services.block_user(self.alice, self.bob.id)
        with self.assertRaises(DomainError) as ctx:
            services.block_user(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.message, 'User is already blocked')

    def test_unblock_not_blocked(self):
        with self.assertRaises(DomainError) as ctx:
            services.unblock_user(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.message, 'User is not blocked')

    def test_social_stats(self):
        Follow.objects.create(follower=self.alice, following=self.bob)
        carol = make_user('9000000003')
        services.send_follow_request(carol, self.alice.id)
        Block.objects.create(blocker=carol, blocked=self.bob)
        stats = services.social_stats(self.alice)
        self.assertEqual(stats['following_count'], 1)
        self.assertEqual(stats['followers_count'], 0)
        self.assertEqual(stats['pending_requests_count'], 1)
        self.assertEqual(services.social_stats(self.bob)['blocked_by_count'], 1)


class ReportServiceTests(TestCase):

    def setUp(self):
        self.alice = make_user('9000000001')
        self.bob = make_user('9000000002')

    def test_report_user(self):
        report = services.report_user(self.alice, self.bob.id, 'spam', 'Sends links')
        self.assertEqual(report.status, UserReport.STATUS_PENDING)
        self.assertEqual(report.pair_key, UserReport.make_pair_key(self.alice.id, self.bob.id))

    def test_missing_fields(self):
        with self.assertRaises(DomainError) as ctx:
            services.report_user(self.alice, self.bob.id, '', '')
        self.assertEqual(ctx.exception.message, 'Report type and description are required')

    def test_one_report_per_pair(self):
        services.report_user(self.alice, self.bob.id, 'spam', 'Sends links')
        with self.assertRaises(DomainError) as ctx:
            services.report_user(self.alice, self.bob.id, 'harassment', 'Again')
        self.assertEqual(ctx.exception.message, 'You have already reported this user')
        with self.assertRaises(DomainError) as ctx:
            services.report_user(self.bob, self.alice.id, 'spam', 'Retaliation')
        self.assertEqual(ctx.exception.message, 'A report already exists between these users')

    def test_review_only_from_pending(self):
        report = services.report_user(self.alice, self.bob.id, 'spam', 'Sends links')
        reviewer = mock.Mock(ROLE='admin', pk=7)
        report = services.review_report(report.pk, UserReport.STATUS_RESOLVED, reviewer, 'Warned')
        self.assertEqual(report.resolved_by_role, 'admin')
        self.assertEqual(report.resolved_by_id, 7)
        self.assertEqual(report.admin_notes, 'Warned')
        with self.assertRaises(DomainError) as ctx:
            services.review_report(report.pk, UserReport.STATUS_DISMISSED, reviewer)
        self.assertEqual(ctx.exception.message, 'Report has already been reviewed')

    def test_report_stats(self):
        services.report_user(self.alice, self.bob.id, 'spam', 'Sends links')
        stats = services.report_stats()
        self.assertEqual(stats['total_reports'], 1)
        self.assertEqual(stats['recent_reports'], 1)
        self.assertEqual(stats['by_status']['pending'], 1)
        self.assertEqual(stats['by_type'], {'spam': 1})


class SocialApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.alice = make_user('9000000001', username='alice')
        self.bob = make_user('9000000002', username='bob')
        self.client.force_authenticate(user=self.alice)

    def test_follow_request_flow(self):
        resp = self.client.post('/api/social/follow-requests/', {'user_id': self.bob.id})
        self.assertEqual(resp.status_code, http_status.HTTP_201_CREATED)
        request_id = resp.data['request']['id']

        self.client.force_authenticate(user=self.bob)
        resp = self.client.get('/api/social/follow-requests/')
        self.assertEqual(resp.data['pagination']['total'], 1)

        resp = self.client.post(f'/api/social/follow-requests/{request_id}/accept/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertFalse(resp.data['already_following'])

        resp = self.client.get('/api/social/followers/')
        self.assertEqual(resp.data['results'][0]['user']['username'], 'alice')

    def test_duplicate_request_error_body(self):
        self.client.post('/api/social/follow-requests/', {'user_id': self.bob.id})
        resp = self.client.post('/api/social/follow-requests/', {'user_id': self.bob.id})
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['error'], 'Follow request already sent')
        self.assertEqual(resp.data['code'], 'REQUEST_ALREADY_SENT')

    def test_block_and_unblock(self):
        resp = self.client.post(f'/api/social/users/{self.bob.id}/block/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        resp = self.client.get('/api/social/blocked/')
        self.assertEqual(resp.data['pagination']['total'], 1)
        resp = self.client.delete(f'/api/social/users/{self.bob.id}/block/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)

    def test_relationship(self):
        Follow.objects.create(follower=self.bob, following=self.alice)
        resp = self.client.get(f'/api/social/users/{self.bob.id}/relationship/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertTrue(resp.data['is_followed_by'])
        self.assertFalse(resp.data['is_mutual'])

    def test_report_endpoint(self):
        resp = self.client.post('/api/social/reports/', {
            'user_id': self.bob.id, 'report_type': 'spam', 'description': 'Spam links',
        })
        self.assertEqual(resp.status_code, http_status.HTTP_201_CREATED)
        resp = self.client.get('/api/social/reports/')
        self.assertEqual(resp.data['results'][0]['report_type'], 'spam')

    def test_stats(self):
        resp = self.client.get('/api/social/stats/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['following_count'], 0)
