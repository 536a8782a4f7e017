from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager, VoucherEntryQuerySet
from .entitymembership import Company
from .ledger import Ledger

VOUCHER_TYPES = [
    ("sales", "Sales"),
    ("purchase", "Purchase"),
    ("payment", "Payment"),
    ("receipt", "Receipt"),
    ("journal", "Journal"),
    ("contra", "Contra"),
    ("debit_note", "Debit Note"),
    ("credit_note", "Credit Note"),
    ("stock_journal", "Stock Journal"),
]

# Prefix used when numbering vouchers: JV-00001, CNT-00042, ...
VOUCHER_PREFIXES = {
    "sales": "SAL",
    "purchase": "PUR",
    "payment": "PAY",
    "receipt": "RCT",
    "journal": "JV",
    "contra": "CNT",
    "debit_note": "DN",
    "credit_note": "CN",
    "stock_journal": "SJ",
}

# Largest allowed gap between total debits and total credits
BALANCE_TOLERANCE = Decimal("0.01")


# ---------- Voucher (Header) & VoucherEntry ----------
class Voucher(models.Model):  # Represents one accounting transaction
    # Multi-tenant: every voucher belongs to a company
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="vouchers"
    )
    voucher_number = models.CharField(max_length=50)
    voucher_date = models.DateField()
    voucher_type = models.CharField(max_length=20, choices=VOUCHER_TYPES)
    # The customer / supplier / contractor the voucher is about (optional)
    party_ledger = models.ForeignKey(
        Ledger,
        null=True,
        blank=True,
        on_delete=models.PROTECT,  # Prevent breaking historical ledger
        related_name="party_vouchers",
    )
    # Σ debit of the entries, stored for listings
    total_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    narration = models.TextField(blank=True)
    # Track user who created it
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # Speed up day book & date range reports
        indexes = [
            models.Index(fields=["company", "voucher_date"], name="voucher_company_date_idx"),
            models.Index(fields=["company", "voucher_type"], name="voucher_company_type_idx"),
        ]
        constraints = [
            # Within one company and voucher type, each number is used once
            # Across companies, duplicates are allowed
            models.UniqueConstraint(
                fields=["company", "voucher_type", "voucher_number"],
                name="uq_voucher_company_type_number",
            )
        ]

    def __str__(self):
        return f"{self.voucher_number} {self.voucher_date} [{self.voucher_type}]"

    # Aggregate all debit and credit amounts across voucher’s entries
    def compute_totals(self):
        """Return debits, credits sums for entries"""
        aggs = self.entries.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    # True if double-entry rule holds within the tolerance
    def is_balanced(self):
        debit, credit = self.compute_totals()
        return abs(debit - credit) <= BALANCE_TOLERANCE

    def clean(self):
        if self.party_ledger_id and self.party_ledger.company_id != self.company_id:
            raise ValidationError(
                "Party ledger must belong to the same company as the voucher."
            )


class VoucherEntry(models.Model):  # Stores one debit or credit leg
    """
    Each entry belongs to a voucher and to a ledger.
    Exactly one of debit_amount / credit_amount is non-zero.
    """

    voucher = models.ForeignKey(
        Voucher,
        on_delete=models.CASCADE,
        related_name="entries",
    )
    # Can’t delete a ledger while entries point to it
    ledger = models.ForeignKey(
        Ledger, on_delete=models.PROTECT, related_name="entries"
    )
    debit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    narration = models.CharField(max_length=400, blank=True)

    objects = VoucherEntryQuerySet.as_manager()

    class Meta:
        # For fast queries like “all entries for this ledger”
        indexes = [
            models.Index(fields=["ledger", "voucher"], name="ventry_ledger_voucher_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(debit_amount__gte=0) &
                    models.Q(credit_amount__gte=0)
                ),
                name="ve_non_negative_amounts",
            ),
            # one side must carry the amount
            models.CheckConstraint(
                condition=~(models.Q(debit_amount=0) &
                            models.Q(credit_amount=0)),
                name="ve_debit_or_credit_nonzero",
            ),
            # but never both
            models.CheckConstraint(
                condition=~(models.Q(debit_amount__gt=0) &
                            models.Q(credit_amount__gt=0)),
                name="ve_not_both_debit_and_credit",
            ),
        ]

    def __str__(self):
        db = self.debit_amount or 0
        cr = self.credit_amount or 0
        return f"{self.voucher_id} | {self.ledger_id} | D:{db} C:{cr}"

    @property
    def net_amount(self):
        """debit − credit, the entry's effect on its ledger's balance."""
        return (self.debit_amount or Decimal("0")) - (self.credit_amount or Decimal("0"))


class VoucherSequence(models.Model):
    """
    Last number handed out per (company, voucher type).
    Locked with select_for_update while a voucher is posted, so two
    concurrent postings never get the same number.
    """

    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="voucher_sequences"
    )
    voucher_type = models.CharField(max_length=20, choices=VOUCHER_TYPES)
    last_number = models.PositiveIntegerField(default=0)

    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "voucher_type"],
                name="uq_voucher_sequence_company_type",
            )
        ]

    def __str__(self):
        return f"{self.company_id}:{self.voucher_type} @ {self.last_number}"
