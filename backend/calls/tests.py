from datetime import timedelta

from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status as http_status
from rest_framework.test import APIClient

from accounts.models import User
from chat.services import find_or_create_chat, update_chat_settings
from config.exceptions import DomainError, ForbiddenError, NotFoundError, RateLimitError
from social.models import Block
from . import services
from .models import Call
from .tasks import cleanup_stale_calls


class CallServiceTests(TestCase):

    def setUp(self):
        self.alice = User.objects.create_user('9000000001')
        self.bob = User.objects.create_user('9000000002')
        self.chat, _ = find_or_create_chat(self.alice, self.bob)

    def test_initiate_creates_ringing_call(self):
        call, created = services.initiate_call(self.alice, self.chat.id, 'video')
        self.assertTrue(created)
        self.assertEqual(call.status, Call.STATUS_RINGING)
        self.assertEqual(call.participants.count(), 2)
        self.assertIsNotNone(call.participants.get(user=self.alice).joined_at)
        self.assertIsNone(call.participants.get(user=self.bob).joined_at)

    def test_invalid_call_type(self):
        with self.assertRaises(DomainError):
            services.initiate_call(self.alice, self.chat.id, 'hologram')

    def test_non_participant_cannot_call(self):
        carol = User.objects.create_user('9000000003')
        with self.assertRaises(ForbiddenError):
            services.initiate_call(carol, self.chat.id, 'audio')

    def test_blocked_cannot_call(self):
        Block.objects.create(blocker=self.bob, blocked=self.alice)
        with self.assertRaises(ForbiddenError):
            services.initiate_call(self.alice, self.chat.id, 'audio')

    def test_inactive_chat_cannot_call(self):
        update_chat_settings(self.alice, self.chat.id, is_archived=True)
        update_chat_settings(self.bob, self.chat.id, is_archived=True)
        with self.assertRaises(DomainError):
            services.initiate_call(self.alice, self.chat.id, 'audio')

    def test_active_call_is_reused(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
        again, created = services.initiate_call(self.bob, self.chat.id, 'audio')
        self.assertFalse(created)
        self.assertEqual(again.id, call.id)

    def test_stale_active_call_replaced(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
        Call.objects.filter(pk=call.pk).update(created_at=timezone.now() - timedelta(minutes=6))
        fresh, created = services.initiate_call(self.alice, self.chat.id, 'audio')
        self.assertTrue(created)
        self.assertNotEqual(fresh.id, call.id)
        call.refresh_from_db()
        self.assertEqual(call.status, Call.STATUS_MISSED)
        self.assertEqual(call.end_reason, 'timeout')

    @override_settings(CALL_RATE_LIMIT=2)
    def test_rate_limit(self):
        for _ in range(2):
            call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
            services.end_call(self.alice, call.id)
        with self.assertRaises(RateLimitError):
            services.initiate_call(self.alice, self.chat.id, 'audio')

    def test_accept_and_end(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
        call = services.accept_call(self.bob, call.id)
        self.assertEqual(call.status, Call.STATUS_ONGOING)
        Call.objects.filter(pk=call.pk).update(started_at=timezone.now() - timedelta(seconds=42))
        call = services.end_call(self.alice, call.id)
        self.assertEqual(call.status, Call.STATUS_ENDED)
        self.assertEqual(call.end_reason, 'completed')
        self.assertGreaterEqual(call.duration, 42)
        self.assertIsNotNone(call.participants.get(user=self.bob).left_at)

    def test_initiator_cannot_accept(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
        with self.assertRaises(ForbiddenError):
            services.accept_call(self.alice, call.id)

    def test_reject(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
        call = services.reject_call(self.bob, call.id)
        self.assertEqual(call.status, Call.STATUS_REJECTED)
        with self.assertRaises(DomainError):
            services.accept_call(self.bob, call.id)

    def test_end_ringing_becomes_missed(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
        call = services.end_call(self.alice, call.id)
        self.assertEqual(call.status, Call.STATUS_MISSED)
        self.assertEqual(call.duration, 0)
        with self.assertRaises(DomainError):
            services.end_call(self.alice, call.id)

    def test_outsider_cannot_see_call(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
        carol = User.objects.create_user('9000000003')
        with self.assertRaises(NotFoundError):
            services.get_call(carol, call.id)

    def test_missed_count_and_stats(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'video')
        services.end_call(self.alice, call.id)
        self.assertEqual(services.missed_calls_count(self.bob), 1)
        self.assertEqual(services.missed_calls_count(self.alice), 0)
        stats = services.call_stats(self.alice)
        self.assertEqual(stats['total_calls'], 1)
        self.assertEqual(stats['outgoing_calls'], 1)
        self.assertEqual(stats['video_calls'], 1)

    def test_call_log_filters(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'video')
        services.end_call(self.alice, call.id)
        self.assertEqual(services.call_log(self.bob, status='missed').count(), 1)
        self.assertEqual(services.call_log(self.alice, status='made').count(), 1)
        self.assertEqual(services.call_log(self.alice, call_type='audio').count(), 0)

    def test_cleanup_stale_calls(self):
        call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
        Call.objects.filter(pk=call.pk).update(created_at=timezone.now() - timedelta(minutes=10))
        self.assertEqual(cleanup_stale_calls(), 1)
        call.refresh_from_db()
        self.assertEqual(call.status, Call.STATUS_MISSED)
        self.assertEqual(call.end_reason, 'timeout')


class CallApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.alice = User.objects.create_user('9000000001', username='alice')
        self.bob = User.objects.create_user('9000000002', username='bob')
        self.chat, _ = find_or_create_chat(self.alice, self.bob)
        self.client.force_authenticate(user=self.alice)

    def test_call_flow(self):
        resp = self.client.post('/api/calls/', {'chat_id': str(self.chat.id), 'call_type': 'audio'})
        self.assertEqual(resp.status_code, http_status.HTTP_201_CREATED)
        self.assertEqual(resp.data['call']['direction'], 'outgoing')
        call_id = resp.data['call']['id']

        self.client.force_authenticate(user=self.bob)
        resp = self.client.post(f'/api/calls/{call_id}/accept/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['status'], 'ongoing')
        self.assertEqual(resp.data['direction'], 'incoming')

        resp = self.client.post(f'/api/calls/{call_id}/end/')
        self.assertEqual(resp.data['status'], 'ended')

        resp = self.client.get('/api/calls/log/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['results'][0]['other_party']['username'], 'alice')

    def test_missed_count(self):
        call, _ = services.initiate_call(self.bob, self.chat.id, 'audio')
        services.end_call(self.bob, call.id)
        resp = self.client.get('/api/calls/missed-count/')
        self.assertEqual(resp.data, {'missed_calls': 1})

    def test_call_detail_not_found(self):
        carol = User.objects.create_user('9000000003')
        call, _ = services.initiate_call(self.alice, self.chat.id, 'audio')
        self.client.force_authenticate(user=carol)
        resp = self.client.get(f'/api/calls/{call.id}/')
        self.assertEqual(resp.status_code, http_status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.data['code'], 'CALL_NOT_FOUND')
