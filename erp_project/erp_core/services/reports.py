"""
Financial reports built from posted voucher entries.

Every report is its own dataclass (LedgerStatement, TrialBalance,
ProfitAndLoss, BalanceSheet, DayBook) with an ``as_dict()`` for JSON views.
The arithmetic lives in small pure functions (running_balances,
compute_profit_and_loss) so it can be tested without a database.
"""
import datetime
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Optional
from django.core.exceptions import ValidationError
from django.db import models
from ..models import Ledger, Voucher, VoucherEntry
from ..models.ledger import (ASSET_TYPES, EXPENSE_TYPES,
                             INCOME_TYPES, INDIRECT_EXPENSE_TYPES,
                             INDIRECT_INCOME_TYPES)

ZERO = Decimal("0.00")


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class ReportMixin:
    kind = ""

    def as_dict(self):
        data = _jsonable(asdict(self))
        data["kind"] = self.kind
        return data


def parse_date(value, field_name="date"):
    """Accept a date, an ISO string or None."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r} (expected YYYY-MM-DD)")


def _check_range(from_date, to_date):
    if from_date and to_date and from_date > to_date:
        raise ValidationError("from_date must not be after to_date")


def _ledger_sums(company, from_date=None, to_date=None, before=None):
    """{ledger_id: (Σ debit, Σ credit)} for entries in the window."""
    qs = VoucherEntry.objects.for_company(company).in_range(from_date, to_date)
    if before:
        qs = qs.filter(voucher__voucher_date__lt=before)
    rows = qs.values("ledger_id").annotate(
        debit=models.Sum("debit_amount"), credit=models.Sum("credit_amount")
    )
    return {r["ledger_id"]: (r["debit"] or ZERO, r["credit"] or ZERO) for r in rows}


# ---------- Ledger statement ----------
@dataclass
class StatementRow:
    date: datetime.date
    voucher_id: int
    voucher_number: str
    voucher_type: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    narration: str = ""


@dataclass
class LedgerStatement(ReportMixin):
    ledger_id: int
    ledger_name: str
    from_date: Optional[datetime.date]
    to_date: Optional[datetime.date]
    opening_balance: Decimal
    rows: list = field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    closing_balance: Decimal = ZERO
    kind = "ledger_statement"


def running_balances(opening, movements):
    """
    Left fold: balance[i] = balance[i-1] + debit[i] − credit[i].
    `movements` is an iterable of (debit, credit); returns the list of
    balances after each movement (empty list for no movements).
    """
    balance = opening
    out = []
    for debit, credit in movements:
        balance = balance + debit - credit
        out.append(balance)
    return out


def ledger_statement(ledger, from_date=None, to_date=None, as_of=None):
    """
    Entries of one ledger in date order with a running balance.

    The fold always starts from the ledger's stored opening balance and
    only takes the entries inside the range, so a from_date statement shows
    the movement of that period. `as_of` is a shorthand for to_date.
    Entries on the same date keep insertion order (voucher id, entry id).
    """
    from_date = parse_date(from_date, "from_date")
    to_date = parse_date(to_date or as_of, "to_date")
    _check_range(from_date, to_date)

    opening = ledger.opening_balance
    entries = list(
        VoucherEntry.objects.filter(ledger=ledger)
        .in_range(from_date, to_date)
        .select_related("voucher")
        .order_by("voucher__voucher_date", "voucher_id", "id")
    )
    balances = running_balances(
        opening, ((e.debit_amount, e.credit_amount) for e in entries)
    )
    rows = [
        StatementRow(
            date=e.voucher.voucher_date,
            voucher_id=e.voucher_id,
            voucher_number=e.voucher.voucher_number,
            voucher_type=e.voucher.voucher_type,
            debit=e.debit_amount,
            credit=e.credit_amount,
            balance=bal,
            narration=e.narration or e.voucher.narration,
        )
        for e, bal in zip(entries, balances)
    ]
    return LedgerStatement(
        ledger_id=ledger.pk,
        ledger_name=ledger.name,
        from_date=from_date,
        to_date=to_date,
        opening_balance=opening,
        rows=rows,
        total_debit=sum((r.debit for r in rows), ZERO),
        total_credit=sum((r.credit for r in rows), ZERO),
        closing_balance=balances[-1] if balances else opening,
    )


# ---------- Trial balance ----------
@dataclass
class TrialBalanceRow:
    ledger_id: int
    name: str
    ledger_type: str
    opening: Decimal
    debit: Decimal
    credit: Decimal
    closing: Decimal


@dataclass
class TrialBalance(ReportMixin):
    from_date: Optional[datetime.date]
    to_date: Optional[datetime.date]
    rows: list = field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    total_closing_debit: Decimal = ZERO
    total_closing_credit: Decimal = ZERO
    kind = "trial_balance"

    @property
    def is_balanced(self):
        return self.total_closing_debit == self.total_closing_credit


def trial_balance(company, from_date=None, to_date=None, include_zero=False):
    """
    Per ledger: opening, Σ debit, Σ credit in range and
    closing = opening + debit − credit. Positive closings total on the
    Dr side, negative ones (as absolute values) on the Cr side.
    """
    from_date = parse_date(from_date, "from_date")
    to_date = parse_date(to_date, "to_date")
    _check_range(from_date, to_date)

    in_range = _ledger_sums(company, from_date, to_date)
    prior = _ledger_sums(company, before=from_date) if from_date else {}

    report = TrialBalance(from_date=from_date, to_date=to_date)
    for ledger in Ledger.objects.for_company(company).order_by("ledger_type", "name"):
        p_debit, p_credit = prior.get(ledger.pk, (ZERO, ZERO))
        opening = ledger.opening_balance + p_debit - p_credit
        debit, credit = in_range.get(ledger.pk, (ZERO, ZERO))
        closing = opening + debit - credit
        if not include_zero and not (opening or debit or credit):
            continue
        report.rows.append(
            TrialBalanceRow(
                ledger_id=ledger.pk,
                name=ledger.name,
                ledger_type=ledger.ledger_type,
                opening=opening,
                debit=debit,
                credit=credit,
                closing=closing,
            )
        )
        report.total_debit += debit
        report.total_credit += credit
        if closing > 0:
            report.total_closing_debit += closing
        else:
            report.total_closing_credit += -closing
    return report


# ---------- Profit & Loss ----------
@dataclass
class ProfitAndLossFigures:
    gross_profit: Decimal
    net_profit: Decimal


def compute_profit_and_loss(
    sales,
    purchases,
    direct_expenses,
    indirect_expenses,
    indirect_income,
    opening_stock=ZERO,
    direct_incomes=ZERO,
    closing_stock=ZERO,
):
    """
    gross = sales + direct incomes + closing stock
            − (opening stock + purchases + direct expenses)
    net   = gross + indirect income − indirect expenses
    """
    gross = (sales + direct_incomes + closing_stock) - (
        opening_stock + purchases + direct_expenses
    )
    net = gross + indirect_income - indirect_expenses
    return ProfitAndLossFigures(gross_profit=gross, net_profit=net)


@dataclass
class StatementLine:
    label: str
    amount: Decimal
    ledger_id: Optional[int] = None


@dataclass
class ProfitAndLoss(ReportMixin):
    from_date: Optional[datetime.date]
    to_date: Optional[datetime.date]
    sales: Decimal
    direct_incomes: Decimal
    purchases: Decimal
    direct_expenses: Decimal
    indirect_incomes: Decimal
    indirect_expenses: Decimal
    opening_stock: Decimal
    closing_stock: Decimal
    gross_profit: Decimal
    net_profit: Decimal
    # two-column layout, trading section then profit & loss section
    trading_expenditure: list = field(default_factory=list)
    trading_income: list = field(default_factory=list)
    expenditure: list = field(default_factory=list)
    income: list = field(default_factory=list)
    trading_total: Decimal = ZERO
    total: Decimal = ZERO
    kind = "profit_and_loss"


def _group_lines(ledgers, sums, income):
    lines = []
    for ledger in ledgers:
        debit, credit = sums.get(ledger.pk, (ZERO, ZERO))
        amount = credit - debit if income else debit - credit
        if amount:
            lines.append(StatementLine(label=ledger.name, amount=amount, ledger_id=ledger.pk))
    return lines


def _total(lines):
    return sum((line.amount for line in lines), ZERO)


def profit_and_loss(company, from_date=None, to_date=None, opening_stock=None, closing_stock=None):
    """
    Trading + P&L account for the range.
    Income ledgers accumulate credit − debit, expense ledgers debit − credit.
    opening_stock and closing_stock are counted figures supplied by the
    caller and default to zero; stock ledgers stay on the balance sheet.

    Placement: a profit is shown on the expenditure side (so both columns
    total the same), a loss on the income side, as its absolute value.
    """
    from_date = parse_date(from_date, "from_date")
    to_date = parse_date(to_date, "to_date")
    _check_range(from_date, to_date)

    sums = _ledger_sums(company, from_date, to_date)
    by_type = {}
    revenue_ledgers = Ledger.objects.of_types(company, INCOME_TYPES + EXPENSE_TYPES)
    for ledger in revenue_ledgers.order_by("name"):
        by_type.setdefault(ledger.ledger_type, []).append(ledger)

    def lines_for(types, income):
        out = []
        for t in types:
            out.extend(_group_lines(by_type.get(t, []), sums, income))
        return out

    sales_lines = lines_for(("sales_accounts",), income=True)
    direct_income_lines = lines_for(("direct_incomes",), income=True)
    purchase_lines = lines_for(("purchase_accounts",), income=False)
    direct_expense_lines = lines_for(("direct_expenses",), income=False)
    indirect_income_lines = lines_for(INDIRECT_INCOME_TYPES, income=True)
    indirect_expense_lines = lines_for(INDIRECT_EXPENSE_TYPES, income=False)

    opening_stock = Decimal(opening_stock or 0)
    closing_stock = Decimal(closing_stock or 0)

    sales = _total(sales_lines)
    direct_incomes = _total(direct_income_lines)
    purchases = _total(purchase_lines)
    direct_expenses = _total(direct_expense_lines)
    indirect_incomes = _total(indirect_income_lines)
    indirect_expenses = _total(indirect_expense_lines)

    figures = compute_profit_and_loss(
        sales=sales,
        purchases=purchases,
        direct_expenses=direct_expenses,
        indirect_expenses=indirect_expenses,
        indirect_income=indirect_incomes,
        opening_stock=opening_stock,
        direct_incomes=direct_incomes,
        closing_stock=closing_stock,
    )
    gross, net = figures.gross_profit, figures.net_profit

    # Trading section
    trading_expenditure = []
    if opening_stock:
        trading_expenditure.append(StatementLine("Opening Stock", opening_stock))
    trading_expenditure += purchase_lines + direct_expense_lines
    trading_income = sales_lines + direct_income_lines
    if closing_stock:
        trading_income.append(StatementLine("Closing Stock", closing_stock))
    if gross > 0:
        trading_expenditure.append(StatementLine("Gross Profit c/o", gross))
    elif gross < 0:
        trading_income.append(StatementLine("Gross Loss c/o", -gross))

    # Profit & Loss section
    expenditure = []
    income = []
    if gross > 0:
        income.append(StatementLine("Gross Profit b/f", gross))
    elif gross < 0:
        expenditure.append(StatementLine("Gross Loss b/f", -gross))
    expenditure += indirect_expense_lines
    income += indirect_income_lines
    if net > 0:
        expenditure.append(StatementLine("Net Profit", net))
    elif net < 0:
        income.append(StatementLine("Net Loss", -net))

    return ProfitAndLoss(
        from_date=from_date,
        to_date=to_date,
        sales=sales,
        direct_incomes=direct_incomes,
        purchases=purchases,
        direct_expenses=direct_expenses,
        indirect_incomes=indirect_incomes,
        indirect_expenses=indirect_expenses,
        opening_stock=opening_stock,
        closing_stock=closing_stock,
        gross_profit=gross,
        net_profit=net,
        trading_expenditure=trading_expenditure,
        trading_income=trading_income,
        expenditure=expenditure,
        income=income,
        trading_total=max(_total(trading_expenditure), _total(trading_income)),
        total=max(_total(expenditure), _total(income)),
    )


# ---------- Balance sheet ----------
@dataclass
class BalanceSheet(ReportMixin):
    as_of: Optional[datetime.date]
    liabilities: list = field(default_factory=list)
    assets: list = field(default_factory=list)
    profit_or_loss: Decimal = ZERO
    total_liabilities: Decimal = ZERO
    total_assets: Decimal = ZERO
    kind = "balance_sheet"


def balance_sheet(company, as_of=None):
    """
    Liability ledgers are shown with their credit balance
    −(opening + Σ(debit − credit)); asset ledgers with their debit balance.
    The difference (assets − liabilities) is the result of the revenue
    ledgers: a profit goes on the liabilities side, a loss on the assets side.
    """
    as_of = parse_date(as_of, "as_of")
    sums = _ledger_sums(company, to_date=as_of)

    report = BalanceSheet(as_of=as_of)
    for ledger in Ledger.objects.for_company(company).order_by("ledger_type", "name"):
        debit, credit = sums.get(ledger.pk, (ZERO, ZERO))
        balance = ledger.opening_balance + debit - credit
        if not balance:
            continue
        if ledger.is_liability:
            report.liabilities.append(StatementLine(ledger.name, -balance, ledger.pk))
        elif ledger.ledger_type in ASSET_TYPES:
            report.assets.append(StatementLine(ledger.name, balance, ledger.pk))

    liabilities = _total(report.liabilities)
    assets = _total(report.assets)
    difference = assets - liabilities
    report.profit_or_loss = difference
    if difference > 0:
        report.liabilities.append(StatementLine("Profit for the Year", difference))
    elif difference < 0:
        report.assets.append(StatementLine("Loss for the Year", -difference))
    report.total_liabilities = _total(report.liabilities)
    report.total_assets = _total(report.assets)
    return report


# ---------- Day book ----------
@dataclass
class DayBookEntry:
    ledger_id: int
    ledger_name: str
    debit: Decimal
    credit: Decimal


@dataclass
class DayBookVoucher:
    voucher_id: int
    voucher_number: str
    voucher_type: str
    voucher_date: datetime.date
    narration: str
    total_amount: Decimal
    entries: list = field(default_factory=list)


@dataclass
class DayBook(ReportMixin):
    from_date: Optional[datetime.date]
    to_date: Optional[datetime.date]
    vouchers: list = field(default_factory=list)
    total_debit: Decimal = ZERO
    total_credit: Decimal = ZERO
    kind = "day_book"


def day_book(company, from_date=None, to_date=None, voucher_type=None):
    """Vouchers in the range, by date then creation, with their entries."""
    from_date = parse_date(from_date, "from_date")
    to_date = parse_date(to_date, "to_date")
    _check_range(from_date, to_date)

    qs = Voucher.objects.for_company(company)
    if from_date:
        qs = qs.filter(voucher_date__gte=from_date)
    if to_date:
        qs = qs.filter(voucher_date__lte=to_date)
    if voucher_type:
        qs = qs.filter(voucher_type=voucher_type)
    qs = qs.order_by("voucher_date", "created_at", "id").prefetch_related(
        models.Prefetch(
            "entries",
            queryset=VoucherEntry.objects.select_related("ledger").order_by("id"),
        )
    )

    report = DayBook(from_date=from_date, to_date=to_date)
    for voucher in qs:
        entries = [
            DayBookEntry(
                ledger_id=e.ledger_id,
                ledger_name=e.ledger.name,
                debit=e.debit_amount,
                credit=e.credit_amount,
            )
            for e in voucher.entries.all()
        ]
        report.vouchers.append(
            DayBookVoucher(
                voucher_id=voucher.pk,
                voucher_number=voucher.voucher_number,
                voucher_type=voucher.voucher_type,
                voucher_date=voucher.voucher_date,
                narration=voucher.narration,
                total_amount=voucher.total_amount,
                entries=entries,
            )
        )
        report.total_debit += sum((e.debit for e in entries), ZERO)
        report.total_credit += sum((e.credit for e in entries), ZERO)
    return report


# One builder per report kind; views dispatch through this table
REPORT_BUILDERS = {
    "trial_balance": trial_balance,
    "profit_and_loss": profit_and_loss,
    "balance_sheet": balance_sheet,
    "day_book": day_book,
}


def build_report(kind, company, **params):
    try:
        builder = REPORT_BUILDERS[kind]
    except KeyError:
        raise ValidationError(f"Unknown report: {kind}")
    return builder(company, **params)
