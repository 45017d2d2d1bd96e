"""
Deleting a gym owner removes every record in their tenancy.

When the database supports transactions the whole cascade runs in one
atomic block. Otherwise the steps run one by one, children first, and each
finished step is recorded on a ``CascadeDeleteJob`` so a failed run can be
resumed from the step that broke instead of leaving orphans behind.
"""
import logging

from django.db import DatabaseError, connection, transaction
from django.db.models import Q

from .models import CascadeDeleteJob, User

logger = logging.getLogger(__name__)

CASCADE_STEPS = (
    'payments',
    'member_agreements',
    'members',
    'plans',
    'trainers',
    'owner',
)


def _step_queryset(step, owner_id):
    from members.models import Member, MemberAgreement
    from payments.models import Payment
    from plans.models import GymOwnerPlan

    if step == 'payments':
        return Payment.objects.filter(gym_owner_id=owner_id)
    if step == 'member_agreements':
        return MemberAgreement.objects.filter(gym_owner_id=owner_id)
    if step == 'members':
        return Member.objects.filter(Q(created_by_id=owner_id) | Q(legacy_gym_id=owner_id))
    if step == 'plans':
        return GymOwnerPlan.objects.filter(gym_owner_id=owner_id)
    if step == 'trainers':
        return User.objects.filter(role=User.TRAINER, trainer_profile__gym_owner_id=owner_id)
    if step == 'owner':
        return User.objects.filter(pk=owner_id)
    raise ValueError(f"Unknown cascade step: {step}")


def run_cascade_step(step, owner_id):
    deleted, _ = _step_queryset(step, owner_id).delete()
    return deleted


def delete_gym_owner(owner):
    """Delete ``owner`` and everything they own. Returns the finished job."""
    job = CascadeDeleteJob.objects.create(gym_owner_id=owner.pk, gym_owner_email=owner.email)

    if not connection.features.supports_transactions:
        logger.info(f"Database has no transactions; running resumable cascade for {owner.email}")
        return resume_cascade_job(job)

    try:
        with transaction.atomic():
            counts = {step: run_cascade_step(step, owner.pk) for step in CASCADE_STEPS}
    except DatabaseError as e:
        logger.error(f"Atomic cascade delete failed for {owner.email}: {e}")
        job.status = CascadeDeleteJob.FAILED
        job.last_error = str(e)
        job.save(update_fields=['status', 'last_error', 'updated_at'])
        raise

    job.used_transaction = True
    job.completed_steps = list(CASCADE_STEPS)
    job.deleted_counts = counts
    job.status = CascadeDeleteJob.COMPLETED
    job.save()
    logger.info(f"Gym owner {owner.email} deleted atomically: {counts}")
    return job


def resume_cascade_job(job):
    """Run the steps ``job`` has not finished yet, in order."""
    job.status = CascadeDeleteJob.RUNNING
    job.save(update_fields=['status', 'updated_at'])

    for step in CASCADE_STEPS:
        if step in job.completed_steps:
            continue
        try:
            deleted = run_cascade_step(step, job.gym_owner_id)
        except DatabaseError as e:
            logger.error(f"Cascade job {job.pk} stopped at step '{step}': {e}")
            job.status = CascadeDeleteJob.FAILED
            job.last_error = f"{step}: {e}"
            job.save(update_fields=['status', 'last_error', 'updated_at'])
            raise
        job.completed_steps = [*job.completed_steps, step]
        job.deleted_counts = {**job.deleted_counts, step: deleted}
        job.save(update_fields=['completed_steps', 'deleted_counts', 'updated_at'])

    job.status = CascadeDeleteJob.COMPLETED
    job.last_error = ''
    job.save(update_fields=['status', 'last_error', 'updated_at'])
    logger.info(f"Cascade job {job.pk} completed: {job.deleted_counts}")
    return job
