from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F
from ..managers import LedgerManager
from .entitymembership import Company

# Chart-of-accounts groups a ledger can be placed under
LEDGER_TYPES = [
    # Liabilities / capital
    ("capital_account", "Capital Account"),
    ("reserves_and_surplus", "Reserves & Surplus"),
    ("secured_loans", "Secured Loans"),
    ("unsecured_loans", "Unsecured Loans"),
    ("loans_liability", "Loans (Liability)"),
    ("duties_and_taxes", "Duties & Taxes"),
    ("sundry_creditors", "Sundry Creditors"),
    ("suspense_account", "Suspense Account"),
    ("current_liabilities", "Current Liabilities"),
    ("bank_od_account", "Bank OD Account"),
    ("provisions", "Provisions"),
    ("profit_and_loss_account", "Profit & Loss A/c"),
    # Assets
    ("fixed_assets", "Fixed Assets"),
    ("investments", "Investments"),
    ("current_assets", "Current Assets"),
    ("sundry_debtors", "Sundry Debtors"),
    ("cash_in_hand", "Cash-in-Hand"),
    ("bank_accounts", "Bank Accounts"),
    ("stock_in_hand", "Stock-in-Hand"),
    ("deposits_assets", "Deposits (Asset)"),
    ("loans_and_advances_assets", "Loans & Advances (Asset)"),
    ("misc_expenses_asset", "Misc. Expenses (Asset)"),
    ("branch_divisions", "Branch / Divisions"),
    # Revenue side
    ("sales_accounts", "Sales Accounts"),
    ("direct_incomes", "Direct Incomes"),
    ("indirect_incomes", "Indirect Incomes"),
    ("purchase_accounts", "Purchase Accounts"),
    ("direct_expenses", "Direct Expenses"),
    ("indirect_expenses", "Indirect Expenses"),
]

# Groupings used by reports
TRADING_INCOME_TYPES = ("sales_accounts", "direct_incomes")
TRADING_EXPENSE_TYPES = ("purchase_accounts", "direct_expenses")
INDIRECT_INCOME_TYPES = ("indirect_incomes",)
INDIRECT_EXPENSE_TYPES = ("indirect_expenses",)
INCOME_TYPES = TRADING_INCOME_TYPES + INDIRECT_INCOME_TYPES
EXPENSE_TYPES = TRADING_EXPENSE_TYPES + INDIRECT_EXPENSE_TYPES

LIABILITY_TYPES = (
    "capital_account",
    "reserves_and_surplus",
    "secured_loans",
    "unsecured_loans",
    "loans_liability",
    "duties_and_taxes",
    "sundry_creditors",
    "suspense_account",
    "current_liabilities",
    "bank_od_account",
    "provisions",
    "profit_and_loss_account",
)
ASSET_TYPES = (
    "fixed_assets",
    "investments",
    "current_assets",
    "sundry_debtors",
    "cash_in_hand",
    "bank_accounts",
    "stock_in_hand",
    "deposits_assets",
    "loans_and_advances_assets",
    "misc_expenses_asset",
    "branch_divisions",
)
# Cash and bank ledgers, the only ones a contra voucher may touch
CASH_BANK_TYPES = ("cash_in_hand", "bank_accounts", "bank_od_account")


class Ledger(models.Model):
    """
    A named account in a company's chart of accounts.
    - name is unique per company
    - opening_balance is signed: debit positive, credit negative
    - current_balance = opening_balance + Σ(debit − credit) of every entry
      posted against it. Posting services keep it in step; the
      recompute_ledger_balances task rebuilds it from entries.
    """

    company = models.ForeignKey(  # Each ledger belongs to one company
        Company,  # All reports must filter by company to prevent data leaks
        on_delete=models.CASCADE,
        related_name="ledgers",
    )
    name = models.CharField(max_length=200)  # "Cash", "HDFC Bank", "Sales @18%"

    ledger_type = models.CharField(
        max_length=40,
        choices=LEDGER_TYPES,
    )

    opening_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    # Never edited by hand, see save()
    current_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    # Party details, used by debtor / creditor ledgers
    gstin = models.CharField(max_length=15, blank=True)
    contact_person = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)

    # “soft deactivate” ledgers (hide in UI, stop new postings)
    # without deleting history
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = LedgerManager()

    class Meta:
        indexes = [
            # For reports grouped by ledger_type (P&L, Balance Sheet)
            models.Index(fields=["company", "ledger_type"], name="ledger_company_type_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"], name="uq_company_ledger_name"
            )
        ]

    def __str__(self):
        return f"{self.name} ({self.get_ledger_type_display()})"

    @property
    def is_liability(self):
        return self.ledger_type in LIABILITY_TYPES

    def clean(self):
        if not (self.name or "").strip():
            raise ValidationError("Ledger name is required.")
        if self.gstin and len(self.gstin) != 15:
            raise ValidationError("GSTIN must be exactly 15 characters.")

    def save(self, *args, **kwargs):
        """
        New ledgers start with current_balance = opening_balance.
        On update current_balance is never written from the instance
        (a concurrent posting may have moved it); a changed opening balance
        shifts it by the difference instead.
        """
        self.full_clean()
        if not self.pk:
            self.current_balance = self.opening_balance
            return super().save(*args, **kwargs)

        old_opening = (
            Ledger.objects.filter(pk=self.pk)
            .values_list("opening_balance", flat=True)
            .first()
        )
        if old_opening is None:
            # row vanished or pk was set by hand: plain insert
            self.current_balance = self.opening_balance
            return super().save(*args, **kwargs)

        update_fields = kwargs.pop("update_fields", None)
        if update_fields is None:
            update_fields = [
                f.name for f in self._meta.concrete_fields if not f.primary_key
            ]
        update_fields = [f for f in update_fields if f != "current_balance"]
        super().save(*args, update_fields=update_fields, **kwargs)

        delta = Decimal(self.opening_balance) - old_opening
        if delta:
            Ledger.objects.filter(pk=self.pk).update(
                current_balance=F("current_balance") + delta
            )
        self.refresh_from_db(fields=["current_balance"])
