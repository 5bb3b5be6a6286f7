import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='chat.expire_message_requests')
def expire_message_requests():
    """
    Move pending message requests past their expiry to 'expired'.
    Run every 15 minutes via Celery Beat.
    """
    from .message_requests import expire_message_requests as sweep

    count = sweep()
    if count:
        logger.info(f'Expired {count} message requests')
    return count
