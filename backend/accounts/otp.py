"""
One-time-password login shared by users, admins and sub-admins.

SMS delivery is not wired up: every actor receives settings.OTP_FIXED_CODE.
"""
import logging
import math
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.crypto import constant_time_compare

from config.exceptions import ForbiddenError, NotFoundError, RateLimitError, UnauthorizedError

logger = logging.getLogger(__name__)


def request_otp(model, phone_number, country_code=None, create=True):
    """
    Issue a fresh code for the actor identified by phone_number.
    Creates the actor on first contact unless create is False.
    """
    now = timezone.now()
    with transaction.atomic():
        actor = model.objects.select_for_update().filter(phone_number=phone_number).first()
        if actor is None:
            if not create:
                raise NotFoundError(f'{model.__name__} not found')
            actor = model.objects.create(
                phone_number=phone_number,
                country_code=country_code or settings.DEFAULT_COUNTRY_CODE,
            )
            logger.info(f'Created {model.__name__} {actor.pk} on first OTP request')

        if actor.last_otp_sent_at:
            elapsed = (now - actor.last_otp_sent_at).total_seconds()
            cooldown = settings.OTP_RESEND_COOLDOWN_SECONDS
            if elapsed < cooldown:
                wait = math.ceil(cooldown - elapsed)
                raise RateLimitError(
                    f'Please wait {wait}s before requesting a new OTP',
                    code='OTP_RATE_LIMIT',
                    extra={'retry_after': wait},
                )

        actor.otp_code = settings.OTP_FIXED_CODE
        actor.otp_expires_at = now + timedelta(seconds=settings.OTP_TTL_SECONDS)
        actor.last_otp_sent_at = now
        actor.save(update_fields=['otp_code', 'otp_expires_at', 'last_otp_sent_at'])

    logger.info(f'OTP issued to {model.__name__} {actor.masked_phone()}')
    return actor


def verify_otp(model, phone_number, code):
    """Check the pending code and mark the actor verified. Raises on any mismatch."""
    with transaction.atomic():
        actor = model.objects.select_for_update().filter(phone_number=phone_number).first()
        if actor is None or not actor.otp_code or not actor.otp_expires_at:
            raise UnauthorizedError('OTP not requested', code='OTP_MISSING')
        if not constant_time_compare(actor.otp_code, str(code)):
            raise UnauthorizedError('Invalid OTP', code='OTP_INVALID')
        if timezone.now() > actor.otp_expires_at:
            raise UnauthorizedError('OTP expired', code='OTP_EXPIRED')
        if not actor.can_login():
            raise ForbiddenError('Account is deactivated', code='ACCOUNT_INACTIVE')

        actor.is_verified = True
        actor.otp_code = None
        actor.otp_expires_at = None
        actor.last_login = timezone.now()
        actor.save(update_fields=['is_verified', 'otp_code', 'otp_expires_at', 'last_login'])

    logger.info(f'{model.__name__} {actor.pk} verified via OTP')
    return actor
