from datetime import timedelta

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.utils import timezone
from rest_framework import status as http_status
from rest_framework.test import APIClient

from accounts.models import User
from config.exceptions import ConflictError, DomainError, ForbiddenError
from social.models import Block, Follow
from . import message_requests, services
from .models import Chat, ChatParticipant, Message, MessageRequest
from .tasks import expire_message_requests


def make_user(phone, **extra):
    return User.objects.create_user(phone, **extra)


class CanUsersChatTests(TestCase):

    def setUp(self):
        self.alice = make_user('9000000001', allow_messages='followers')
        self.bob = make_user('9000000002', allow_messages='followers')

    def test_missing_user(self):
        self.assertEqual(services.can_users_chat(self.alice, None), (False, 'user_not_found'))

    def test_inactive_user(self):
        self.bob.is_active = False
        self.bob.save()
        self.assertEqual(services.can_users_chat(self.alice, self.bob), (False, 'user_inactive'))

    def test_blocked_wins_over_follow(self):
        Follow.objects.create(follower=self.alice, following=self.bob)
        Follow.objects.create(follower=self.bob, following=self.alice)
        Block.objects.create(blocker=self.bob, blocked=self.alice)
        self.assertEqual(services.can_users_chat(self.alice, self.bob), (False, 'blocked'))

    def test_existing_chat(self):
        services.find_or_create_chat(self.alice, self.bob)
        self.assertEqual(services.can_users_chat(self.alice, self.bob), (True, 'existing_chat'))

    def test_accepted_request(self):
        MessageRequest.objects.create(from_user=self.alice, to_user=self.bob, status=MessageRequest.STATUS_ACCEPTED)
        self.assertEqual(services.can_users_chat(self.bob, self.alice), (True, 'accepted_request'))

    def test_mutual_follow(self):
        Follow.objects.create(follower=self.alice, following=self.bob)
        Follow.objects.create(follower=self.bob, following=self.alice)
        self.assertEqual(services.can_users_chat(self.alice, self.bob), (True, 'mutual_follow'))

    def test_follower_can_message(self):
        Follow.objects.create(follower=self.alice, following=self.bob)
        self.assertEqual(services.can_users_chat(self.alice, self.bob), (True, 'follower_can_message'))

    def test_follower_blocked_by_privacy(self):
        self.bob.allow_messages = 'none'
        self.bob.save()
        Follow.objects.create(follower=self.alice, following=self.bob)
        self.assertEqual(services.can_users_chat(self.alice, self.bob), (False, 'no_permission'))

    def test_public_messaging(self):
        self.bob.allow_messages = 'everyone'
        self.bob.save()
        self.assertEqual(services.can_users_chat(self.alice, self.bob), (True, 'public_messaging_allowed'))

    def test_no_permission(self):
        self.assertEqual(services.can_users_chat(self.alice, self.bob), (False, 'no_permission'))


class ChatLifecycleTests(TestCase):

    def setUp(self):
        self.alice = make_user('9000000001')
        self.bob = make_user('9000000002')

    def test_find_or_create_is_commutative(self):
        chat, created = services.find_or_create_chat(self.alice, self.bob)
        same, created_again = services.find_or_create_chat(self.bob, self.alice)
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(chat.id, same.id)
        self.assertEqual(Chat.objects.count(), 1)
        self.assertEqual(chat.chat_participants.count(), 2)

    def test_self_chat_rejected(self):
        with self.assertRaises(DomainError):
            services.find_or_create_chat(self.alice, self.alice)

    def test_inactive_only_when_all_archived(self):
        chat, _ = services.find_or_create_chat(self.alice, self.bob)
        services.update_chat_settings(self.alice, chat.id, is_archived=True)
        chat.refresh_from_db()
        self.assertTrue(chat.is_active)
        services.update_chat_settings(self.bob, chat.id, is_archived=True)
        chat.refresh_from_db()
        self.assertFalse(chat.is_active)
        services.update_chat_settings(self.bob, chat.id, is_archived=False)
        chat.refresh_from_db()
        self.assertTrue(chat.is_active)

    def test_reopen_inactive_chat(self):
        chat, _ = services.find_or_create_chat(self.alice, self.bob)
        services.update_chat_settings(self.alice, chat.id, is_archived=True)
        services.update_chat_settings(self.bob, chat.id, is_archived=True)
        reopened, created = services.find_or_create_chat(self.alice, self.bob)
        self.assertFalse(created)
        self.assertEqual(reopened.id, chat.id)
        self.assertTrue(reopened.is_active)
        self.assertFalse(reopened.participant_for(self.alice).is_archived)
        self.assertTrue(reopened.participant_for(self.bob).is_archived)

    def test_create_or_get_requires_permission(self):
        with self.assertRaises(ForbiddenError) as ctx:
            services.create_or_get_chat(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.error_code, 'MESSAGE_REQUEST_REQUIRED')
        self.assertTrue(ctx.exception.extra['needs_message_request'])
        self.assertFalse(ctx.exception.extra['message_request_exists'])
        self.assertEqual(ctx.exception.extra['reason'], 'no_permission')

    def test_create_or_get_reports_pending_request(self):
        req = message_requests.send_message_request(self.alice, self.bob.id, 'hello')
        with self.assertRaises(ForbiddenError) as ctx:
            services.create_or_get_chat(self.alice, self.bob.id)
        self.assertTrue(ctx.exception.extra['message_request_exists'])
        self.assertEqual(ctx.exception.extra['message_request_id'], str(req.id))
        self.assertEqual(ctx.exception.extra['reason'], 'message_request_pending')

    def test_list_chats_pinned_first(self):
        carol = make_user('9000000003')
        first, _ = services.find_or_create_chat(self.alice, self.bob)
        second, _ = services.find_or_create_chat(self.alice, carol)
        services.deliver_message(second, carol, content='latest')
        services.update_chat_settings(self.alice, first.id, is_pinned=True)
        result = services.list_user_chats(self.alice)
        self.assertEqual([row.chat_id for row in result['results']], [first.id, second.id])
        self.assertEqual(result['total'], 2)

    def test_list_chats_archived_filter(self):
        chat, _ = services.find_or_create_chat(self.alice, self.bob)
        services.update_chat_settings(self.alice, chat.id, is_archived=True)
        self.assertEqual(services.list_user_chats(self.alice)['total'], 0)
        self.assertEqual(services.list_user_chats(self.alice, include_archived=True)['total'], 1)

    def test_list_chats_pagination_validation(self):
        for page, limit in [(0, 20), (1, 0), (1, 101), ('x', 20)]:
            with self.assertRaises(DomainError):
                services.list_user_chats(self.alice, page=page, limit=limit)

    def test_delete_chat_hides_history(self):
        chat, _ = services.find_or_create_chat(self.alice, self.bob)
        services.deliver_message(chat, self.bob, content='old')
        services.delete_chat(self.alice, chat.id)
        self.assertEqual(services.list_messages(self.alice, chat.id).count(), 0)
        self.assertEqual(services.list_messages(self.bob, chat.id).count(), 1)

    def test_chat_stats(self):
        chat, _ = services.find_or_create_chat(self.alice, self.bob)
        services.deliver_message(chat, self.bob, content='one')
        services.deliver_message(chat, self.bob, content='two')
        stats = services.chat_stats(self.alice)
        self.assertEqual(stats['total_chats'], 1)
        self.assertEqual(stats['total_unread_messages'], 2)


class MessageRequestScenarioTests(TestCase):

    def setUp(self):
        self.alice = make_user('9000000001')
        self.bob = make_user('9000000002')

    def test_request_accept_opens_chat(self):
        with self.assertRaises(ForbiddenError):
            services.create_or_get_chat(self.alice, self.bob.id)

        req = message_requests.send_message_request(self.alice, self.bob.id, 'Hi Bob')
        req, chat = message_requests.accept_message_request(self.bob, req.id, 'Sure')
        self.assertEqual(req.status, MessageRequest.STATUS_ACCEPTED)
        self.assertEqual(req.chat_id, chat.id)
        self.assertEqual(chat.messages.get().content, 'Hi Bob')

        same, created, reason = services.create_or_get_chat(self.alice, self.bob.id)
        self.assertEqual(same.id, chat.id)
        self.assertFalse(created)
        self.assertEqual(reason, 'existing_chat')

    def test_cannot_request_when_already_allowed(self):
        self.bob.allow_messages = 'everyone'
        self.bob.save()
        with self.assertRaises(ConflictError) as ctx:
            message_requests.send_message_request(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.message, 'You can already chat with this user')

    def test_duplicate_pending(self):
        message_requests.send_message_request(self.alice, self.bob.id)
        with self.assertRaises(ConflictError):
            message_requests.send_message_request(self.alice, self.bob.id)
        with self.assertRaises(ConflictError) as ctx:
            message_requests.send_message_request(self.bob, self.alice.id)
        self.assertEqual(ctx.exception.error_code, 'REQUEST_RECEIVED')

    def test_blocked_sender(self):
        Block.objects.create(blocker=self.bob, blocked=self.alice)
        with self.assertRaises(ForbiddenError):
            message_requests.send_message_request(self.alice, self.bob.id)

    def test_only_recipient_accepts(self):
        req = message_requests.send_message_request(self.alice, self.bob.id)
        with self.assertRaises(ForbiddenError):
            message_requests.accept_message_request(self.alice, req.id)

    def test_accept_expired(self):
        req = message_requests.send_message_request(self.alice, self.bob.id)
        MessageRequest.objects.filter(pk=req.pk).update(expires_at=timezone.now() - timedelta(seconds=1))
        with self.assertRaises(DomainError) as ctx:
            message_requests.accept_message_request(self.bob, req.id)
        self.assertEqual(ctx.exception.error_code, 'REQUEST_EXPIRED')
        req.refresh_from_db()
        self.assertEqual(req.status, MessageRequest.STATUS_EXPIRED)
        self.assertFalse(Chat.objects.exists())

    def test_resend_after_reject_refused(self):
        req = message_requests.send_message_request(self.alice, self.bob.id)
        message_requests.reject_message_request(self.bob, req.id)
        with self.assertRaises(ConflictError) as ctx:
            message_requests.send_message_request(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.error_code, 'REQUEST_CLOSED')
        self.assertEqual(ctx.exception.extra['status'], MessageRequest.STATUS_REJECTED)
        req.refresh_from_db()
        self.assertEqual(req.status, MessageRequest.STATUS_REJECTED)
        self.assertEqual(MessageRequest.objects.filter(from_user=self.alice, to_user=self.bob).count(), 1)

    def test_resend_after_expiry_refused(self):
        req = message_requests.send_message_request(self.alice, self.bob.id)
        MessageRequest.objects.filter(pk=req.pk).update(expires_at=timezone.now() - timedelta(seconds=1))
        with self.assertRaises(ConflictError) as ctx:
            message_requests.send_message_request(self.alice, self.bob.id)
        self.assertEqual(ctx.exception.error_code, 'REQUEST_CLOSED')
        req.refresh_from_db()
        self.assertEqual(req.status, MessageRequest.STATUS_EXPIRED)

    def test_rejected_party_can_request_back(self):
        req = message_requests.send_message_request(self.alice, self.bob.id)
        message_requests.reject_message_request(self.bob, req.id)
        back = message_requests.send_message_request(self.bob, self.alice.id)
        self.assertEqual(back.status, MessageRequest.STATUS_PENDING)

    def test_sender_deletes_pending(self):
        req = message_requests.send_message_request(self.alice, self.bob.id)
        with self.assertRaises(ForbiddenError):
            message_requests.delete_message_request(self.bob, req.id)
        message_requests.delete_message_request(self.alice, req.id)
        self.assertFalse(MessageRequest.objects.exists())

    def test_expire_sweep(self):
        req = message_requests.send_message_request(self.alice, self.bob.id)
        MessageRequest.objects.filter(pk=req.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
        self.assertEqual(expire_message_requests(), 1)
        req.refresh_from_db()
        self.assertEqual(req.status, MessageRequest.STATUS_EXPIRED)


class MessageServiceTests(TestCase):

    def setUp(self):
        self.alice = make_user('9000000001')
        self.bob = make_user('9000000002')
        self.chat, _ = services.find_or_create_chat(self.alice, self.bob)

    def test_send_updates_chat_and_unread(self):
        message = services.send_message(self.alice, self.chat.id, content='hello')
        self.chat.refresh_from_db()
        self.assertEqual(self.chat.last_message_id, message.id)
        self.assertEqual(self.chat.participant_for(self.bob).unread_count, 1)
        self.assertEqual(self.chat.participant_for(self.alice).unread_count, 0)

    def test_empty_text_rejected(self):
        with self.assertRaises(DomainError):
            services.send_message(self.alice, self.chat.id, content='   ')

    def test_too_long_text_rejected(self):
        with self.assertRaises(DomainError):
            services.send_message(self.alice, self.chat.id, content='x' * 4097)

    def test_media_type_needs_file(self):
        with self.assertRaises(DomainError):
            services.send_message(self.alice, self.chat.id, message_type='image')

    def test_media_message(self):
        upload = SimpleUploadedFile('note.pdf', b'%PDF-1.4 test', content_type='application/pdf')
        message = services.send_message(self.alice, self.chat.id, message_type='document', media=upload)
        self.assertEqual(message.media_mime, 'application/pdf')
        self.assertEqual(message.media_size, len(b'%PDF-1.4 test'))

    def test_non_participant_cannot_send(self):
        outsider = make_user('9000000003')
        with self.assertRaises(ForbiddenError):
            services.send_message(outsider, self.chat.id, content='hi')

    def test_blocked_cannot_send(self):
        Block.objects.create(blocker=self.bob, blocked=self.alice)
        with self.assertRaises(ForbiddenError):
            services.send_message(self.alice, self.chat.id, content='hi')

    def test_reply_must_be_in_same_chat(self):
        carol = make_user('9000000003')
        other_chat, _ = services.find_or_create_chat(self.alice, carol)
        foreign = services.send_message(self.alice, other_chat.id, content='elsewhere')
        with self.assertRaises(DomainError):
            services.send_message(self.alice, self.chat.id, content='re', reply_to_id=foreign.id)

    def test_mark_read(self):
        services.send_message(self.bob, self.chat.id, content='one')
        services.send_message(self.bob, self.chat.id, content='two')
        self.assertEqual(services.mark_chat_read(self.alice, self.chat.id), 2)
        self.assertEqual(self.chat.participant_for(self.alice).unread_count, 0)
        self.assertEqual(services.mark_chat_read(self.alice, self.chat.id), 0)

    def test_edit_keeps_history(self):
        message = services.send_message(self.alice, self.chat.id, content='first')
        message = services.edit_message(self.alice, message.id, 'second')
        self.assertTrue(message.is_edited)
        self.assertEqual(message.edit_history[0]['content'], 'first')

    def test_edit_window_expired(self):
        message = services.send_message(self.alice, self.chat.id, content='first')
        Message.objects.filter(pk=message.pk).update(created_at=timezone.now() - timedelta(minutes=16))
        with self.assertRaises(DomainError) as ctx:
            services.edit_message(self.alice, message.id, 'late')
        self.assertEqual(ctx.exception.error_code, 'EDIT_WINDOW_EXPIRED')

    def test_only_sender_edits_or_deletes(self):
        message = services.send_message(self.alice, self.chat.id, content='mine')
        with self.assertRaises(ForbiddenError):
            services.edit_message(self.bob, message.id, 'theirs')
        with self.assertRaises(ForbiddenError):
            services.delete_message(self.bob, message.id)

    def test_soft_delete(self):
        message = services.send_message(self.alice, self.chat.id, content='oops')
        message = services.delete_message(self.alice, message.id)
        self.assertTrue(message.is_deleted)
        self.assertEqual(message.preview(), 'This message was deleted')

    def test_reactions(self):
        message = services.send_message(self.alice, self.chat.id, content='hi')
        services.react_to_message(self.bob, message.id, '👍')
        services.react_to_message(self.bob, message.id, '❤️')
        self.assertEqual(message.reactions.get().emoji, '❤️')
        services.remove_reaction(self.bob, message.id)
        self.assertFalse(message.reactions.exists())

    def test_forward(self):
        carol = make_user('9000000003')
        target, _ = services.find_or_create_chat(self.alice, carol)
        message = services.send_message(self.bob, self.chat.id, content='pass it on')
        forwarded = services.forward_message(self.alice, message.id, target.id)
        self.assertTrue(forwarded.is_forwarded)
        self.assertEqual(forwarded.forwarded_from_id, message.id)
        self.assertEqual(forwarded.chat_id, target.id)

    def test_search_messages(self):
        services.send_message(self.alice, self.chat.id, content='Lunch tomorrow?')
        services.send_message(self.bob, self.chat.id, content='Sure')
        results = services.search_messages(self.bob, 'lunch')
        self.assertEqual(len(results), 1)
        with self.assertRaises(DomainError):
            services.search_messages(self.bob, 'l')


class ChatApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.alice = make_user('9000000001', username='alice')
        self.bob = make_user('9000000002', username='bob')
        self.client.force_authenticate(user=self.alice)

    def test_create_chat_forbidden_without_permission(self):
        resp = self.client.post('/api/chat/', {'user_id': self.bob.id})
        self.assertEqual(resp.status_code, http_status.HTTP_403_FORBIDDEN)
        self.assertTrue(resp.data['needs_message_request'])
        self.assertEqual(resp.data['reason'], 'no_permission')

    def test_message_request_to_chat_flow(self):
        resp = self.client.post('/api/chat/requests/', {'user_id': self.bob.id, 'message': 'Hey'})
        self.assertEqual(resp.status_code, http_status.HTTP_201_CREATED)
        request_id = resp.data['request']['id']

        self.client.force_authenticate(user=self.bob)
        resp = self.client.post(f'/api/chat/requests/{request_id}/accept/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        chat_id = resp.data['chat_id']

        self.client.force_authenticate(user=self.alice)
        resp = self.client.post('/api/chat/', {'user_id': self.bob.id})
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['chat']['id'], chat_id)
        self.assertEqual(resp.data['reason'], 'existing_chat')

        resp = self.client.get('/api/chat/')
        self.assertEqual(resp.data['pagination']['total'], 1)
        self.assertEqual(resp.data['results'][0]['other_user']['username'], 'bob')
        self.assertEqual(resp.data['results'][0]['last_message']['preview'], 'Hey')

    def test_send_and_list_messages(self):
        self.bob.allow_messages = 'everyone'
        self.bob.save()
        chat_id = self.client.post('/api/chat/', {'user_id': self.bob.id}).data['chat']['id']
        resp = self.client.post(f'/api/chat/{chat_id}/messages/', {'content': 'Hello'})
        self.assertEqual(resp.status_code, http_status.HTTP_201_CREATED)
        resp = self.client.get(f'/api/chat/{chat_id}/messages/')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual(resp.data['results'][0]['content'], 'Hello')

    def test_list_invalid_limit(self):
        resp = self.client.get('/api/chat/?limit=500')
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data['code'], 'VALIDATION_ERROR')

    def test_can_chat(self):
        resp = self.client.get(f'/api/chat/can-chat/{self.bob.id}/')
        self.assertEqual(resp.data, {'can_chat': False, 'reason': 'no_permission'})

    def test_foreign_chat_forbidden(self):
        carol = make_user('9000000003')
        chat, _ = services.find_or_create_chat(self.bob, carol)
        resp = self.client.get(f'/api/chat/{chat.id}/')
        self.assertEqual(resp.status_code, http_status.HTTP_403_FORBIDDEN)

    def test_settings_archive(self):
        chat, _ = services.find_or_create_chat(self.alice, self.bob)
        resp = self.client.patch(f'/api/chat/{chat.id}/settings/', {'is_archived': True}, format='json')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertTrue(resp.data['chat']['is_archived'])
        self.assertTrue(ChatParticipant.objects.get(chat=chat, user=self.alice).is_archived)

    def test_message_search_rejects_malformed_chat_id(self):
        resp = self.client.get('/api/chat/messages/search/?q=hello&chat_id=not-a-uuid')
        self.assertEqual(resp.status_code, http_status.HTTP_400_BAD_REQUEST)
        self.assertIn('chat_id', resp.data)

    def test_message_search_scoped_to_chat(self):
        carol = make_user('9000000003')
        chat, _ = services.find_or_create_chat(self.alice, self.bob)
        other, _ = services.find_or_create_chat(self.alice, carol)
        services.deliver_message(chat, self.bob, content='hello from bob')
        services.deliver_message(other, carol, content='hello from carol')
        resp = self.client.get(f'/api/chat/messages/search/?q=hello&chat_id={chat.id}')
        self.assertEqual(resp.status_code, http_status.HTTP_200_OK)
        self.assertEqual([m['content'] for m in resp.data['results']], ['hello from bob'])
