import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='social.expire_follow_requests')
def expire_follow_requests():
    """
    Move pending follow requests past their expiry to 'expired'.
    Run every 15 minutes via Celery Beat.
    """
    from .services import expire_follow_requests as sweep

    count = sweep()
    if count:
        logger.info(f'Expired {count} follow requests')
    return count
