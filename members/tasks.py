from celery import shared_task
import logging

from .status import reconcile_membership_statuses

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def reconcile_membership_statuses_task(self):
    """
    Scheduled daily by celery beat: persist Expired for members whose window ended
    """
    task_id = self.request.id
    logger.info(f"[Task {task_id}] Reconciling stored membership statuses")
    updated = reconcile_membership_statuses()
    return {'status': 'success', 'updated': updated}
