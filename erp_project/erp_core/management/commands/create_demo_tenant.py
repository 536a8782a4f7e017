import datetime
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.text import slugify
from erp_core.models import (Company, Ledger, Machine, ProductRate, SawMill,
                             SawmillContractor, UserRole)
from erp_core.services.posting import post_voucher
from erp_core.services.production import create_order, record_production
from erp_core.services.sawmill import record_log_input, register_log

User = get_user_model()


# Generate unique slug for company
def unique_slug_for_company(name, max_tries=100):
    # Convert company name into a slug (e.g., "Test Ltd" → "test-ltd")
    base = slugify(name) or "company"  # fall back to "company" if empty
    slug = base
    i = 1
    # If plain slug is taken, append -1, -2, etc.
    while Company.objects.filter(slug=slug).exists():
        slug = f"{base}-{i}"
        i += 1
        if i > max_tries:
            raise RuntimeError("Couldn't generate unique slug")
    return slug


class Command(BaseCommand):
    help = (
        "Create a demo tenant (company), owner, ledgers, vouchers, "
        "an order and a few sawmill logs for testing."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company-name",  # Define flag
            default="Demo Company",
            help="Name of the demo company to create.",
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo owner."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo owner."
        )

    @transaction.atomic
    def handle(self, *args, **options):
        # Read arguments from add_arguments()
        company_name = options["company_name"]
        username = options["username"]
        password = options["password"]
        today = datetime.date.today()

        # 1. Owner + company
        user, created = User.objects.get_or_create(
            username=username, defaults={"email": f"{username}@example.com"}
        )
        if created:  # if user newly created
            user.set_password(password)
            user.save()

        company, created = Company.objects.get_or_create(
            name=company_name,
            defaults={"slug": unique_slug_for_company(company_name), "owner": user},
        )
        UserRole.objects.get_or_create(
            user=user, company=company,
            defaults={"role": "owner", "full_name": username.title()},
        )
        self.stdout.write(self.style.SUCCESS(f"Company: {company} (owner {user.username}, pw={password})"))
        if not created:
            self.stdout.write(self.style.WARNING("Company already existed, nothing else created."))
            return

        # 2. Ledgers
        def ledger(name, ledger_type, opening="0.00"):
            return Ledger.objects.create(
                company=company, name=name, ledger_type=ledger_type,
                opening_balance=Decimal(opening),
            )

        cash = ledger("Cash", "cash_in_hand", "50000.00")
        bank = ledger("Bank", "bank_accounts", "200000.00")
        capital = ledger("Capital", "capital_account", "-250000.00")
        sales = ledger("Sales", "sales_accounts")
        purchases = ledger("Purchases", "purchase_accounts")
        wages = ledger("Wages", "direct_expenses")
        rent = ledger("Rent", "indirect_expenses")
        customer = ledger("Acme Traders", "sundry_debtors")
        contractor_ledger = ledger("Ravi (Contractor)", "sundry_creditors")
        self.stdout.write(self.style.SUCCESS(f"Created {Ledger.objects.for_company(company).count()} ledgers"))

        # 3. Vouchers
        post_voucher(company, "sales", today, [
            {"ledger": customer, "debit": "30000.00"},
            {"ledger": sales, "credit": "30000.00"},
        ], party_ledger=customer, narration="Timber sale", user=user)
        post_voucher(company, "purchase", today, [
            {"ledger": purchases, "debit": "12000.00"},
            {"ledger": bank, "credit": "12000.00"},
        ], narration="Log purchase", user=user)
        post_voucher(company, "payment", today, [
            {"ledger": wages, "debit": "4000.00"},
            {"ledger": rent, "debit": "2000.00"},
            {"ledger": cash, "credit": "6000.00"},
        ], narration="Wages and rent", user=user)
        post_voucher(company, "contra", today, [
            {"ledger": cash, "debit": "10000.00"},
            {"ledger": bank, "credit": "10000.00"},
        ], narration="Cash withdrawn", user=user)
        self.stdout.write(self.style.SUCCESS("Posted sales, purchase, payment and contra vouchers"))

        # 4. Production floor
        Machine.objects.create(company=company, name="Band Saw", machine_code="BS-01")
        order = create_order(
            company, user, [user.pk],
            order_no="SO-001", customer_name="Acme Traders",
            customer_email="orders@acme.example", product="Pine planks 4x2",
            ordered_quantity=Decimal("100"),
        )
        record_production(order, user, Decimal("40"))
        self.stdout.write(self.style.SUCCESS(f"Created order {order.order_no}"))

        # 5. Sawmill
        mill = SawMill.objects.create(company=company, name="Main Yard")
        contractor = SawmillContractor.objects.create(
            company=company, saw_mill=mill, name="Ravi", ledger=contractor_ledger
        )
        for tag, girth, length in (("T-001", "120", "4"), ("T-002", "95", "3.5")):
            register_log(company, user, tag, Decimal(girth), Decimal(length), saw_mill=mill)
        log = company.logs.get(tag_number="T-001")
        record_log_input(
            company, girth=Decimal("120"), length=Decimal("13"), rate_per_cft=Decimal("12"),
            contractor=contractor, log=log, saw_mill=mill, user=user,
        )
        ProductRate.objects.create(company=company, product_type="main_material", rate_per_unit=Decimal("1400"))
        ProductRate.objects.create(company=company, product_type="firewood", rate_per_unit=Decimal("4"), unit="KG")
        self.stdout.write(self.style.SUCCESS("Created saw mill, contractor and logs"))
        self.stdout.write(self.style.SUCCESS("Demo tenant setup complete!"))
