"""
Populate the database with demo actors, social graph, chats and calls.

Everything except the actors themselves goes through the service layer, so
seeded data obeys the same rules as API traffic. Seeded phone numbers share
a prefix, which is how --clear finds them again.

Usage: python manage.py seed --users 50 --chats 20 --messages 200
"""
import random

from django.core.management.base import BaseCommand
from django.db import transaction

from accounts.models import User
from admin_api.models import Admin, SubAdmin
from calls import services as call_services
from chat import message_requests
from chat import services as chat_services
from chat.models import Chat, ChatParticipant
from config.exceptions import DomainError
from social import services as social_services
from social.models import Follow, UserReport

SEED_PREFIX = '90000'
ADMIN_PREFIX = '80000'
SUBADMIN_PREFIX = '70000'

FIRST_NAMES = ['Aarav', 'Diya', 'Kabir', 'Meera', 'Rohan', 'Isha', 'Vivaan', 'Ananya', 'Arjun', 'Saanvi']
LAST_NAMES = ['Sharma', 'Patel', 'Iyer', 'Reddy', 'Khan', 'Singh', 'Das', 'Nair']
LINES = [
    'Hey, how are you?', 'Are we still on for tonight?', 'Sent you the photos',
    'Haha that is great', 'Call me when you are free', 'See you tomorrow!',
]


def phone(prefix, index):
    return f'{prefix}{index:05d}'


class Command(BaseCommand):
    help = 'Seed demo users, staff, follows, requests, chats, messages, calls and reports'

    def add_arguments(self, parser):
        parser.add_argument('--users', type=int, default=20)
        parser.add_argument('--admins', type=int, default=1)
        parser.add_argument('--subadmins', type=int, default=2)
        parser.add_argument('--follows', type=int, default=40)
        parser.add_argument('--follow-requests', type=int, default=15)
        parser.add_argument('--message-requests', type=int, default=10)
        parser.add_argument('--chats', type=int, default=10)
        parser.add_argument('--messages', type=int, default=60)
        parser.add_argument('--calls', type=int, default=10)
        parser.add_argument('--reports', type=int, default=3)
        parser.add_argument('--clear', action='store_true', help='Delete previously seeded data first')
        parser.add_argument('--seed', type=int, default=None, help='Random seed for repeatable data')

    def handle(self, *args, **options):
        self.rng = random.Random(options['seed'])
        self.skipped = 0
        self.verbosity = options['verbosity']

        if options['clear']:
            self.clear()

        with transaction.atomic():
            users = self.create_users(options['users'])
            self.create_staff(options['admins'], options['subadmins'])
        if len(users) < 2:
            self.stdout.write(self.style.WARNING('Need at least two users to seed relationships.'))
            return

        self.seed_follows(users, options['follows'])
        self.seed_follow_requests(users, options['follow_requests'])
        self.seed_message_requests(users, options['message_requests'])
        chats = self.seed_chats(users, options['chats'])
        self.seed_messages(chats, options['messages'])
        self.seed_calls(chats, options['calls'])
        self.seed_reports(users, options['reports'])

        if self.skipped:
            self.stdout.write(f'Skipped {self.skipped} combinations rejected by the service rules')
        self.stdout.write(self.style.SUCCESS('Seed data ready.'))

    def clear(self):
        seeded = User.objects.filter(phone_number__startswith=SEED_PREFIX)
        # Chats only reference users through participants, so they go first
        chats, _ = Chat.objects.filter(
            id__in=ChatParticipant.objects.filter(user__in=seeded).values('chat_id'),
        ).delete()
        users, _ = seeded.delete()
        deleted = chats + users
        Admin.objects.filter(phone_number__startswith=ADMIN_PREFIX).delete()
        SubAdmin.objects.filter(phone_number__startswith=SUBADMIN_PREFIX).delete()
        self.stdout.write(self.style.SUCCESS(f'Cleared seeded data ({deleted} rows)'))

    def attempt(self, func, *args):
        try:
            return func(*args)
        except DomainError as e:
            self.skipped += 1
            if self.verbosity > 1:
                self.stdout.write(f'  skipped {func.__name__}: {e.message}')
            return None

    def pairs(self, users, count):
        for _ in range(count):
            yield self.rng.sample(users, 2)

    def create_users(self, count):
        users = []
        for i in range(count):
            first = self.rng.choice(FIRST_NAMES)
            last = self.rng.choice(LAST_NAMES)
            user, created = User.objects.get_or_create(
                phone_number=phone(SEED_PREFIX, i),
                defaults={
                    'username': f'{first.lower()}_{i}',
                    'full_name': f'{first} {last}',
                    'is_verified': True,
                    'is_profile_completed': True,
                    'allow_messages': self.rng.choice(['everyone', 'followers', 'followers', 'none']),
                },
            )
            users.append(user)
        self.stdout.write(self.style.SUCCESS(f'Users: {len(users)}'))
        return users

    def create_staff(self, admins, subadmins):
        for i in range(admins):
            Admin.objects.get_or_create(
                phone_number=phone(ADMIN_PREFIX, i),
                defaults={'first_name': 'Admin', 'last_name': str(i + 1), 'is_verified': True},
            )
        for i in range(subadmins):
            approved = i % 2 == 0
            SubAdmin.objects.get_or_create(
                phone_number=phone(SUBADMIN_PREFIX, i),
                defaults={
                    'name': f'Moderator {i + 1}',
                    'is_verified': True,
                    'is_profile_completed': True,
                    'is_active': approved,
                    'approval_status': SubAdmin.STATUS_APPROVED if approved else SubAdmin.STATUS_PENDING,
                },
            )
        self.stdout.write(self.style.SUCCESS(f'Admins: {admins}, sub-admins: {subadmins}'))

    def seed_follows(self, users, count):
        created = 0
        for follower, target in self.pairs(users, count):
            request = self.attempt(social_services.send_follow_request, follower, target.id)
            if request and self.attempt(social_services.accept_follow_request, target, request.id):
                created += 1
        self.stdout.write(self.style.SUCCESS(f'Follows: {created}'))

    def seed_follow_requests(self, users, count):
        created = sum(
            1 for requester, target in self.pairs(users, count)
            if self.attempt(social_services.send_follow_request, requester, target.id, 'Hi! Let us connect')
        )
        self.stdout.write(self.style.SUCCESS(f'Pending follow requests: {created}'))

    def seed_message_requests(self, users, count):
        created = sum(
            1 for sender, target in self.pairs(users, count)
            if self.attempt(message_requests.send_message_request, sender, target.id, self.rng.choice(LINES))
        )
        self.stdout.write(self.style.SUCCESS(f'Pending message requests: {created}'))

    def seed_chats(self, users, count):
        # Mutual follows always satisfy the chat policy
        chats = []
        for a, b in self.pairs(users, count):
            Follow.objects.get_or_create(follower=a, following=b)
            Follow.objects.get_or_create(follower=b, following=a)
            result = self.attempt(chat_services.create_or_get_chat, a, b.id)
            if result:
                chats.append(result[0])
        chats = list({chat.id: chat for chat in chats}.values())
        self.stdout.write(self.style.SUCCESS(f'Chats: {len(chats)}'))
        return chats

    def seed_messages(self, chats, count):
        if not chats:
            return
        sent = 0
        for _ in range(count):
            chat = self.rng.choice(chats)
            sender = self.rng.choice(list(chat.participants.all()))
            if self.attempt(chat_services.send_message, sender, chat.id, 'text', self.rng.choice(LINES)):
                sent += 1
        self.stdout.write(self.style.SUCCESS(f'Messages: {sent}'))

    def seed_calls(self, chats, count):
        if not chats:
            return
        made = 0
        for _ in range(count):
            chat = self.rng.choice(chats)
            caller, callee = self.rng.sample(list(chat.participants.all()), 2)
            result = self.attempt(call_services.initiate_call, caller, chat.id, self.rng.choice(['audio', 'video']))
            if not result:
                continue
            call = result[0]
            outcome = self.rng.choice(['answered', 'missed', 'rejected'])
            if outcome == 'answered':
                self.attempt(call_services.accept_call, callee, call.id)
                self.attempt(call_services.end_call, caller, call.id)
            elif outcome == 'missed':
                self.attempt(call_services.end_call, caller, call.id)
            else:
                self.attempt(call_services.reject_call, callee, call.id)
            made += 1
        self.stdout.write(self.style.SUCCESS(f'Calls: {made}'))

    def seed_reports(self, users, count):
        created = 0
        for reporter, target in self.pairs(users, count):
            report = self.attempt(
                social_services.report_user,
                reporter, target.id,
                self.rng.choice([key for key, _ in UserReport.REPORT_TYPES]),
                'Seeded report for moderation testing',
            )
            if report:
                created += 1
        self.stdout.write(self.style.SUCCESS(f'Reports: {created}'))
