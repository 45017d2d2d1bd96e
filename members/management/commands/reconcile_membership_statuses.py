from django.core.management.base import BaseCommand

from members.status import reconcile_membership_statuses


class Command(BaseCommand):
    help = "Store 'Expired' on members whose membership window has ended."

    def handle(self, *args, **options):
        updated = reconcile_membership_statuses()
        self.stdout.write(self.style.SUCCESS(f"Marked {updated} member(s) as Expired"))
