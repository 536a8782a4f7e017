from django.core.management.base import BaseCommand, CommandError
from erp_core.models import Company, SawmillContractor
from erp_core.services.posting import recompute_ledger_balances


class Command(BaseCommand):
    help = (
        "Rebuild ledger and contractor balances from posted entries "
        "(all companies, or the one given by --company)."
    )

    def add_arguments(self, parser):
        parser.add_argument("--company", type=str, help="Slug of a single company.")

    def handle(self, *args, **options):
        companies = Company.objects.order_by("pk")
        if options["company"]:
            companies = companies.filter(slug=options["company"])
            if not companies.exists():
                raise CommandError(f"No company with slug {options['company']!r}")

        for company in companies:
            fixed = recompute_ledger_balances(company.pk)
            contractors = SawmillContractor.objects.for_company(company)
            for contractor in contractors:
                contractor.recompute_balance()
            style = self.style.WARNING if fixed else self.style.SUCCESS
            self.stdout.write(
                style(
                    f"{company.name}: {fixed} ledger balance(s) corrected, "
                    f"{contractors.count()} contractor(s) recomputed"
                )
            )
