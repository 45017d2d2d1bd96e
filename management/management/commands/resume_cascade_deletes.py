from django.core.management.base import BaseCommand
from django.db import DatabaseError

from management.cascade import resume_cascade_job
from management.models import CascadeDeleteJob


class Command(BaseCommand):
    help = "Resume gym-owner cascade deletes that stopped part way through."

    def handle(self, *args, **options):
        jobs = CascadeDeleteJob.objects.filter(
            status__in=[CascadeDeleteJob.FAILED, CascadeDeleteJob.RUNNING, CascadeDeleteJob.PENDING]
        ).order_by('created_at')

        if not jobs.exists():
            self.stdout.write("No unfinished cascade jobs.")
            return

        for job in jobs:
            try:
                resume_cascade_job(job)
                self.stdout.write(self.style.SUCCESS(f"{job}: {job.deleted_counts}"))
            except DatabaseError as e:
                self.stderr.write(self.style.ERROR(f"{job}: {e}"))
