from django.core.management.base import BaseCommand

from payments.backfill import backfill_payment_snapshots, backfill_payments_from_members


class Command(BaseCommand):
    help = "Create payments for legacy paid members and fill empty payment snapshots."

    def add_arguments(self, parser):
        parser.add_argument('--members', action='store_true', help="Only create payments from member records")
        parser.add_argument('--snapshots', action='store_true', help="Only fill empty payment snapshots")

    def handle(self, *args, **options):
        run_all = not (options['members'] or options['snapshots'])

        if run_all or options['members']:
            result = backfill_payments_from_members()
            self.stdout.write(self.style.SUCCESS(
                f"Members: processed {result.processed}, created {result.created}, "
                f"skipped {result.skipped}, failed {result.failed}"
            ))

        if run_all or options['snapshots']:
            result = backfill_payment_snapshots()
            self.stdout.write(self.style.SUCCESS(
                f"Snapshots: processed {result.processed}, updated {result.updated}, "
                f"skipped {result.skipped}, failed {result.failed}"
            ))
