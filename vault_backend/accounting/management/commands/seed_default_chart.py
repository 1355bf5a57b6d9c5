# accounting/management/commands/seed_default_chart.py

from django.core.management.base import BaseCommand

from accounting.services.ledger_store import LedgerStore


class Command(BaseCommand):
    help = "Seed the standard chart of accounts (existing codes are left untouched)"

    def handle(self, *args, **options):
        self.stdout.write("Seeding default chart of accounts...")

        accounts = LedgerStore().initialize_default_chart()
        for account in accounts:
            self.stdout.write(f"  {account.code} {account.name} ({account.account_type})")

        self.stdout.write(self.style.SUCCESS(f"Chart ready ({len(accounts)} accounts)"))
