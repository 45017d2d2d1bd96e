import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'gymcrm.settings')

app = Celery('gymcrm')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.beat_schedule = {
    # Stored status is only a hint for reports; listings always derive it
    'reconcile-membership-statuses': {
        'task': 'members.tasks.reconcile_membership_statuses_task',
        'schedule': crontab(hour=0, minute=15),
    },
    'backfill-payment-snapshots': {
        'task': 'payments.tasks.backfill_payments_task',
        'schedule': crontab(hour=2, minute=0, day_of_week='sunday'),
        'kwargs': {'members': False, 'snapshots': True},
    },
}
