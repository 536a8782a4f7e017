from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from django.core.exceptions import ValidationError
from ..exceptions import UnbalancedVoucherError
from ..models import Ledger
from ..models.ledger import CASH_BANK_TYPES
from ..models.voucher import BALANCE_TOLERANCE, VOUCHER_PREFIXES

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
# money columns are max_digits=18, decimal_places=2
AMOUNT_LIMIT = Decimal("1e16")


@dataclass
class EntryLine:
    """One validated debit or credit leg, ready to be written."""
    ledger: Ledger
    debit: Decimal
    credit: Decimal
    narration: str = ""

    @property
    def net(self):
        return self.debit - self.credit


def to_amount(value, field="amount", limit=AMOUNT_LIMIT):
    """Parse a money value into a 2 d.p. Decimal, rejecting junk and
    anything whose magnitude does not fit a money column."""
    if value in (None, ""):
        return ZERO
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise ValidationError(f"Invalid {field}: {value!r}")
        if abs(amount) >= limit:
            raise ValidationError(f"{field} is too large: {value!r}")
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}")


def _ledger_pk(raw):
    pk = getattr(raw, "pk", raw)
    if pk in (None, ""):
        raise ValidationError("Every entry needs a ledger.")
    try:
        return int(pk)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid ledger: {raw!r}")


def _entry_field(entry, *names):
    for name in names:
        if name in entry:
            return entry[name]
    return None


# --------------------------------------
# Voucher validation (runs before writes)
# --------------------------------------
def validate_voucher_entries(company, voucher_type, entries):
    """
    Check a voucher's entries and return (lines, total_debit, total_credit).

    `entries` is a list of dicts with a ledger (instance or id under
    "ledger" / "ledger_id"), a "debit" and a "credit" amount and an
    optional "narration".

    Rejected with ValidationError:
      - unknown voucher type, no entries
      - negative amounts, an entry with both or neither side set
      - entries that are not dicts
      - a ledger from another company, an inactive one or one that does not exist
      - contra vouchers touching anything but cash / bank ledgers
    Rejected with UnbalancedVoucherError:
      - |Σ debit − Σ credit| > 0.01
    """
    if voucher_type not in VOUCHER_PREFIXES:
        raise ValidationError(f"Unknown voucher type: {voucher_type}")
    if not entries:
        raise ValidationError("Voucher must have at least one entry.")
    if not isinstance(entries, (list, tuple)):
        raise ValidationError("Entries must be a list.")
    for position, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(
                f"Entry {position}: expected an object with a ledger and an amount."
            )

    # Resolve ledger ids in one query
    raw_ledgers = [_entry_field(e, "ledger", "ledger_id") for e in entries]
    ids = [_ledger_pk(raw) for raw in raw_ledgers]
    found = Ledger.objects.in_bulk(set(ids))

    lines = []
    for position, (entry, raw, pk) in enumerate(zip(entries, raw_ledgers, ids), start=1):
        ledger = found.get(pk)
        if ledger is None:
            raise ValidationError(f"Entry {position}: ledger {raw} does not exist.")
        # Enforce tenant consistency
        if ledger.company_id != company.pk:
            raise ValidationError(
                f"Entry {position}: ledger '{ledger.name}' belongs to another company."
            )
        if not ledger.is_active:
            raise ValidationError(
                f"Entry {position}: ledger '{ledger.name}' is inactive and takes no new postings."
            )

        debit = to_amount(_entry_field(entry, "debit", "debit_amount"), "debit")
        credit = to_amount(_entry_field(entry, "credit", "credit_amount"), "credit")
        if debit < 0 or credit < 0:
            raise ValidationError(f"Entry {position}: amounts cannot be negative.")
        if debit == 0 and credit == 0:
            raise ValidationError(f"Entry {position}: enter a debit or a credit amount.")
        if debit > 0 and credit > 0:
            raise ValidationError(
                f"Entry {position}: an entry is either a debit or a credit, not both."
            )

        if voucher_type == "contra" and ledger.ledger_type not in CASH_BANK_TYPES:
            raise ValidationError(
                f"Contra vouchers only move money between cash and bank ledgers "
                f"('{ledger.name}' is {ledger.get_ledger_type_display()})."
            )

        lines.append(
            EntryLine(
                ledger=ledger,
                debit=debit,
                credit=credit,
                narration=(entry.get("narration") or "").strip(),
            )
        )

    # Enforce double-entry rule
    total_debit = sum((line.debit for line in lines), ZERO)
    total_credit = sum((line.credit for line in lines), ZERO)
    if abs(total_debit - total_credit) > BALANCE_TOLERANCE:
        raise UnbalancedVoucherError(
            f"Voucher not balanced: debits={total_debit}, credits={total_credit}"
        )
    return lines, total_debit, total_credit
