import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='calls.cleanup_stale_calls')
def cleanup_stale_calls():
    """
    Mark calls left ringing past CALL_STALE_MINUTES as missed.
    Run every 5 minutes via Celery Beat.
    """
    from .services import cleanup_stale_calls as sweep

    count = sweep()
    if count:
        logger.info(f'Closed {count} stale calls')
    return count
