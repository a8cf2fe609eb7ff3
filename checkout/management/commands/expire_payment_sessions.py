from __future__ import annotations

from django.core.management.base import BaseCommand
from django.utils import timezone

from checkout.wiring import get_services


class Command(BaseCommand):
    help = "Expire unconfirmed payment sessions (cancel their pending orders and release stock)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only calculate and print how many would be expired; do not change DB.",
        )

    def handle(self, *args, **options):
        dry_run: bool = bool(options.get("dry_run"))
        gateway = get_services().gateway
        now = timezone.now()

        if dry_run:
            would_expire = gateway.due_sessions(now=now).count()
            self.stdout.write(self.style.WARNING(f"dry-run: would expire payment sessions: {would_expire}"))
            return

        expired = gateway.expire_due_sessions(now=now)
        self.stdout.write(self.style.SUCCESS(f"Expired payment sessions: {expired}"))
