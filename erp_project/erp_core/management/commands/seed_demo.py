from django.core.management import call_command
from django.core.management.base import BaseCommand, CommandError
from erp_core.models import Company


class Command(BaseCommand):
    help = (
        "Load the demo sawmill tenant unless a company with that name "
        "already exists (use --force to add another copy)."
    )

    def add_arguments(self, parser):
        parser.add_argument("--company", default="Demo Sawmill Pvt Ltd")
        parser.add_argument("--username", default="demo")
        parser.add_argument("--password", default="demo123")
        parser.add_argument(
            "--force",
            action="store_true",
            help="Seed even if the company name is already taken.",
        )

    def handle(self, *args, **options):
        name = options["company"].strip()
        if not name:
            raise CommandError("--company cannot be blank")

        if Company.objects.filter(name=name).exists() and not options["force"]:
            self.stdout.write(self.style.WARNING(f"{name} already seeded, skipping."))
            return

        call_command(
            "create_demo_tenant",
            company_name=name,
            username=options["username"],
            password=options["password"],
            stdout=self.stdout,
        )
        self.stdout.write(self.style.SUCCESS(f"Seeded {name}; log in as {options['username']}."))
