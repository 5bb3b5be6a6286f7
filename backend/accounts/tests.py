from datetime import date, timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status as http_status
from rest_framework.test import APIClient

from admin_api.models import Admin, SubAdmin
from chat.models import Chat, Message
from social.models import Block, Follow
from .management.commands.seed import SEED_PREFIX
from .models import User
from .otp import request_otp, verify_otp
from config.exceptions import NotFoundError, RateLimitError, UnauthorizedError


@override_settings(OTP_FIXED_CODE='123456')
class OtpServiceTests(TestCase):

    def test_request_creates_user_on_first_contact(self):
        user = request_otp(User, '9876543210')
        self.assertEqual(user.country_code, '+91')
        self.assertEqual(user.otp_code, '123456')
        self.assertIsNotNone(user.otp_expires_at)
        self.assertIsNotNone(user.last_otp_sent_at)

    def test_request_within_cooldown_rejected(self):
        request_otp(User, '9876543210')
        with self.assertRaises(RateLimitError) as ctx:
            request_otp(User, '9876543210')
        self.assertEqual(ctx.exception.error_code, 'OTP_RATE_LIMIT')
        self.assertIn('before requesting a new OTP', ctx.exception.message)

    def test_request_after_cooldown_allowed(self):
        user = request_otp(User, '9876543210')
        User.objects.filter(pk=user.pk).update(last_otp_sent_at=timezone.now() - timedelta(seconds=61))
        request_otp(User, '9876543210')

    def test_resend_requires_existing_actor(self):
        with self.assertRaises(NotFoundError):
            request_otp(User, '9876543210', create=False)

    def test_verify_success_clears_code(self):
        request_otp(User, '9876543210')
        user = verify_otp(User, '9876543210', '123456')
        self.assertTrue(user.is_verified)
        self.assertIsNone(user.otp_code)
        self.assertIsNone(user.otp_expires_at)
        self.assertIsNotNone(user.last_login)

    def test_second_verify_fails_missing(self):
        request_otp(User, '9876543210')
        verify_otp(User, '9876543210', '123456')
        with self.assertRaises(UnauthorizedError) as ctx:
            verify_otp(User, '9876543210', '123456')
        self.assertEqual(ctx.exception.error_code, 'OTP_MISSING')

    def test_verify_wrong_code(self):
        request_otp(User, '9876543210')
        with self.assertRaises(UnauthorizedError) as ctx:
            verify_otp(User, '9876543210', '000000')
        self.assertEqual(ctx.exception.error_code, 'OTP_INVALID')

    def test_verify_expired(self):
        user = request_otp(User, '9876543210')
        User.objects.filter(pk=user.pk).update(otp_expires_at=timezone.now() - timedelta(seconds=1))
        with self.assertRaises(UnauthorizedError) as ctx:
            verify_otp(User, '9876543210', '123456')
        self.assertEqual(ctx.exception.error_code, 'OTP_EXPIRED')

    def test_masked_phone(self):
        user = User.objects.create_user('9876543210')
        self.assertEqual(user.masked_phone(), '******3210')


@override_settings(OTP_FIXED_CODE='123456')
class OtpApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_send_otp(self):
        resp = self.client.post('/api/auth/otp/send/', {'phone_number': '9876543210'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['masked_phone'], '******3210')
        self.assertEqual(resp.data['ttl_seconds'], 300)

    def test_send_otp_invalid_phone(self):
        resp = self.client.post('/api/auth/otp/send/', {'phone_number': 'abc'})
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)

    def test_send_twice_rate_limited(self):
        self.client.post('/api/auth/otp/send/', {'phone_number': '9876543210'})
        resp = self.client.post('/api/auth/otp/send/', {'phone_number': '9876543210'})
        self.assertEqual(resp.status_code, http_status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(resp.data['code'], 'OTP_RATE_LIMIT')
        self.assertIn('retry_after', resp.data)

    def test_resend_unknown_phone(self):
        resp = self.client.post('/api/auth/otp/resend/', {'phone_number': '9876543210'})
        self.assertEqual(resp.status_code, http_status.HTTP_404_NOT_FOUND)

    def test_verify_returns_tokens(self):
        self.client.post('/api/auth/otp/send/', {'phone_number': '9876543210'})
        resp = self.client.post('/api/auth/otp/verify/', {'phone_number': '9876543210', 'otp': '123456'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertIn('access', resp.data)
        self.assertIn('refresh', resp.data)
        self.assertFalse(resp.data['is_profile_completed'])
        self.assertTrue(resp.data['user']['is_verified'])

    def test_verify_wrong_code_unauthorized(self):
        self.client.post('/api/auth/otp/send/', {'phone_number': '9876543210'})
        resp = self.client.post('/api/auth/otp/verify/', {'phone_number': '9876543210', 'otp': '654321'})
        self.assertEqual(resp.status_code, http_status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(resp.data['code'], 'OTP_INVALID')

    def test_inactive_user_cannot_login(self):
        self.client.post('/api/auth/otp/send/', {'phone_number': '9876543210'})
        User.objects.filter(phone_number='9876543210').update(is_active=False)
        resp = self.client.post('/api/auth/otp/verify/', {'phone_number': '9876543210', 'otp': '123456'})
        self.assertEqual(resp.status_code, http_status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data['code'], 'ACCOUNT_INACTIVE')

    def test_access_token_authenticates(self):
        self.client.post('/api/auth/otp/send/', {'phone_number': '9876543210'})
        resp = self.client.post('/api/auth/otp/verify/', {'phone_number': '9876543210', 'otp': '123456'})
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {resp.data["access"]}')
        resp = self.client.get('/api/auth/profile/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['phone_number'], '9876543210')

    def test_logout_blacklists_refresh(self):
        self.client.post('/api/auth/otp/send/', {'phone_number': '9876543210'})
        tokens = self.client.post('/api/auth/otp/verify/', {'phone_number': '9876543210', 'otp': '123456'}).data
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {tokens["access"]}')
        resp = self.client.post('/api/auth/logout/', {'refresh': tokens['refresh']})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        resp = self.client.post('/api/auth/token/refresh/', {'refresh': tokens['refresh']})
        self.assertEqual(resp.status_code, http_status.HTTP_401_UNAUTHORIZED)


class ProfileTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user('9000000001', is_verified=True)
        self.client.force_authenticate(user=self.user)

    def test_get_profile(self):
        resp = self.client.get('/api/auth/profile/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['phone_number'], '9000000001')

    def test_update_completes_profile(self):
        resp = self.client.patch('/api/auth/profile/', {'username': 'Alice_1', 'full_name': 'Alice'})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['username'], 'alice_1')
        self.assertTrue(resp.data['is_profile_completed'])

    def test_username_taken(self):
        User.objects.create_user('9000000002', username='bob')
        resp = self.client.patch('/api/auth/profile/', {'username': 'BOB'})
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)
        self.assertIn('Username already taken', str(resp.data))

    def test_underage_dob_rejected(self):
        today = date.today()
        dob = date(today.year - 17, 1, 1)
        resp = self.client.patch('/api/auth/profile/', {'dob': dob.isoformat()}, format='json')
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)
        self.assertIn('at least 18 years old', str(resp.data))

    def test_adult_dob_accepted(self):
        resp = self.client.patch('/api/auth/profile/', {'dob': '1990-05-01'}, format='json')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['dob'], '1990-05-01')

    def test_privacy_settings(self):
        resp = self.client.patch('/api/auth/privacy/', {'allow_messages': 'everyone', 'allow_follow_requests': False}, format='json')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.allow_messages, 'everyone')
        self.assertFalse(self.user.allow_follow_requests)

    def test_privacy_invalid_value(self):
        resp = self.client.patch('/api/auth/privacy/', {'allow_messages': 'friends'}, format='json')
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)
        self.assertIn('allow_messages must be one of', str(resp.data))

    def test_unauthenticated_profile(self):
        self.client.force_authenticate(user=None)
        resp = self.client.get('/api/auth/profile/')
        self.assertEqual(resp.status_code, http_status.HTTP_401_UNAUTHORIZED)


class UserLookupTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.viewer = User.objects.create_user('9000000001', username='viewer')
        self.alice = User.objects.create_user('9000000002', username='alice', full_name='Alice Smith')
        self.alicia = User.objects.create_user('9000000003', username='alicia', full_name='Alicia Keys')
        self.client.force_authenticate(user=self.viewer)

    def test_public_profile_with_relationship(self):
        Follow.objects.create(follower=self.viewer, following=self.alice)
        resp = self.client.get(f'/api/auth/users/{self.alice.id}/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['followers_count'], 1)
        self.assertTrue(resp.data['relationship']['is_following'])

    def test_profile_hidden_when_blocked_by_target(self):
        Block.objects.create(blocker=self.alice, blocked=self.viewer)
        resp = self.client.get(f'/api/auth/users/{self.alice.id}/')
        self.assertEqual(resp.status_code, http_status.HTTP_404_NOT_FOUND)

    def test_search_users(self):
        resp = self.client.get('/api/auth/users/search/?q=ali')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(len(resp.data['results']), 2)

    def test_search_excludes_blocked(self):
        Block.objects.create(blocker=self.viewer, blocked=self.alicia)
        resp = self.client.get('/api/auth/users/search/?q=ali')
        self.assertEqual([u['username'] for u in resp.data['results']], ['alice'])

    def test_search_query_too_short(self):
        resp = self.client.get('/api/auth/users/search/?q=a')
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)


class SeedCommandTests(TestCase):
    quiet = dict(follows=0, follow_requests=0, message_requests=0, calls=0, reports=0)

    def seed(self, **options):
        out = StringIO()
        call_command('seed', stdout=out, **{**self.quiet, **options})
        return out.getvalue()

    def seeded_chat_pairs(self):
        return sorted(
            tuple(sorted(chat.participants.values_list('phone_number', flat=True)))
            for chat in Chat.objects.all()
        )

    def test_seed_through_services(self):
        output = self.seed(users=4, chats=2, messages=3, seed=1)
        self.assertIn('Seed data ready.', output)
        self.assertEqual(User.objects.filter(phone_number__startswith=SEED_PREFIX).count(), 4)
        self.assertEqual(Admin.objects.count(), 1)
        self.assertEqual(SubAdmin.objects.count(), 2)
        self.assertGreaterEqual(Chat.objects.count(), 1)
        self.assertEqual(Message.objects.count(), 3)
        for chat in Chat.objects.all():
            a, b = chat.participants.all()
            self.assertTrue(Follow.objects.filter(follower=a, following=b).exists())
            self.assertTrue(Follow.objects.filter(follower=b, following=a).exists())

    def test_same_seed_is_repeatable(self):
        self.seed(users=5, chats=3, seed=7)
        first_users = list(User.objects.order_by('phone_number').values_list('username', 'allow_messages'))
        first_chats = self.seeded_chat_pairs()

        self.seed(users=5, chats=3, seed=7, clear=True)
        self.assertEqual(
            list(User.objects.order_by('phone_number').values_list('username', 'allow_messages')),
            first_users,
        )
        self.assertEqual(self.seeded_chat_pairs(), first_chats)

    def test_clear_keeps_other_users(self):
        real = User.objects.create_user('9876543210', username='real_person')
        self.seed(users=3, chats=1, messages=2, seed=3)
        output = self.seed(users=0, admins=0, subadmins=0, clear=True)
        self.assertIn('Cleared seeded data', output)
        self.assertFalse(User.objects.filter(phone_number__startswith=SEED_PREFIX).exists())
        self.assertFalse(Admin.objects.exists())
        self.assertFalse(SubAdmin.objects.exists())
        self.assertFalse(Chat.objects.exists())
        self.assertTrue(User.objects.filter(pk=real.pk).exists())

    def test_rejected_combinations_are_counted(self):
        # Two users and three follow attempts: at least one ordered pair repeats
        output = self.seed(users=2, follows=3, seed=1)
        self.assertIn('Skipped', output)
        self.assertLessEqual(Follow.objects.count(), 2)
