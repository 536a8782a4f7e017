import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from erp_core.services.posting import post_voucher
from erp_core.services.reports import (balance_sheet, build_report, day_book,
                                       ledger_statement, profit_and_loss,
                                       trial_balance)

from .utils import make_company, make_ledger

D = Decimal


class ReportTestBase(TestCase):
    """
    A small year of books:
      capital 100000 brought in as bank balance,
      sales 100000, purchases 60000, wages 10000,
      rent 8000, interest received 2000, stock ledger 5000.
    """

    def setUp(self):
        self.company = make_company("Books Co")
        c = self.company
        self.bank = make_ledger(c, "Bank", "bank_accounts", "100000.00")
        self.capital = make_ledger(c, "Capital", "capital_account", "-105000.00")
        self.stock = make_ledger(c, "Stock", "stock_in_hand", "5000.00")
        self.sales = make_ledger(c, "Sales", "sales_accounts")
        self.purchases = make_ledger(c, "Purchases", "purchase_accounts")
        self.wages = make_ledger(c, "Wages", "direct_expenses")
        self.rent = make_ledger(c, "Rent", "indirect_expenses")
        self.interest = make_ledger(c, "Interest Received", "indirect_incomes")

        self.post("sales", datetime.date(2025, 4, 5), self.bank, self.sales, "100000.00")
        self.post("purchase", datetime.date(2025, 4, 2), self.purchases, self.bank, "60000.00")
        self.post("payment", datetime.date(2025, 4, 20), self.wages, self.bank, "10000.00")
        self.post("payment", datetime.date(2025, 5, 1), self.rent, self.bank, "8000.00")
        self.post("receipt", datetime.date(2025, 5, 3), self.bank, self.interest, "2000.00")

    def post(self, voucher_type, date, debit_ledger, credit_ledger, amount):
        return post_voucher(
            self.company, voucher_type, date,
            [
                {"ledger": debit_ledger, "debit": amount},
                {"ledger": credit_ledger, "credit": amount},
            ],
        )


class LedgerStatementTests(ReportTestBase):

    def test_running_balance_in_date_order(self):
        statement = ledger_statement(self.bank)

        # purchase (Apr 2) comes before sale (Apr 5) although posted later
        self.assertEqual(
            [row.voucher_type for row in statement.rows],
            ["purchase", "sales", "payment", "payment", "receipt"],
        )
        self.assertEqual(
            [row.balance for row in statement.rows],
            [D("40000.00"), D("140000.00"), D("130000.00"), D("122000.00"), D("124000.00")],
        )
        self.assertEqual(statement.opening_balance, D("100000.00"))
        self.assertEqual(statement.closing_balance, D("124000.00"))
        self.bank.refresh_from_db()
        self.assertEqual(statement.closing_balance, self.bank.current_balance)

    def test_from_date_folds_from_the_stored_opening(self):
        statement = ledger_statement(self.bank, from_date="2025-05-01")

        # only the May rent and interest are folded
        self.assertEqual(statement.opening_balance, D("100000.00"))
        self.assertEqual(
            [row.balance for row in statement.rows], [D("92000.00"), D("94000.00")]
        )
        self.assertEqual(statement.closing_balance, D("94000.00"))

    def test_empty_range_keeps_opening(self):
        statement = ledger_statement(self.bank, from_date="2026-01-01")
        self.assertEqual(statement.rows, [])
        self.assertEqual(statement.closing_balance, D("100000.00"))

    def test_as_dict_is_json_ready(self):
        data = ledger_statement(self.bank, as_of="2025-04-05").as_dict()
        self.assertEqual(data["kind"], "ledger_statement")
        self.assertEqual(data["closing_balance"], "140000.00")
        self.assertEqual(data["rows"][0]["date"], "2025-04-02")

    def test_bad_dates_are_rejected(self):
        with self.assertRaises(ValidationError):
            ledger_statement(self.bank, from_date="05/01/2025")
        with self.assertRaises(ValidationError):
            ledger_statement(self.bank, from_date="2025-06-01", to_date="2025-05-01")


class TrialBalanceTests(ReportTestBase):

    def test_closing_debits_equal_closing_credits(self):
        report = trial_balance(self.company)

        self.assertTrue(report.is_balanced)
        self.assertEqual(report.total_debit, report.total_credit)
        self.assertEqual(report.total_debit, D("180000.00"))

    def test_rows_show_opening_movement_and_closing(self):
        report = trial_balance(self.company, from_date="2025-05-01", to_date="2025-05-31")
        bank = next(r for r in report.rows if r.ledger_id == self.bank.pk)

        self.assertEqual(bank.opening, D("130000.00"))
        self.assertEqual(bank.debit, D("2000.00"))
        self.assertEqual(bank.credit, D("8000.00"))
        self.assertEqual(bank.closing, D("124000.00"))

    def test_zero_rows_only_on_request(self):
        make_ledger(self.company, "Unused", "current_assets")
        names = [r.name for r in trial_balance(self.company).rows]
        self.assertNotIn("Unused", names)
        names = [r.name for r in trial_balance(self.company, include_zero=True).rows]
        self.assertIn("Unused", names)


class ProfitAndLossTests(ReportTestBase):

    def test_gross_and_net_profit(self):
        report = profit_and_loss(self.company)

        # 100000 - (60000 + 10000)
        self.assertEqual(report.gross_profit, D("30000.00"))
        # 30000 + 2000 - 8000
        self.assertEqual(report.net_profit, D("24000.00"))
        self.assertEqual(report.opening_stock, D("0.00"))

    def test_supplied_opening_stock_reduces_gross_profit(self):
        report = profit_and_loss(self.company, opening_stock="5000.00")
        self.assertEqual(report.gross_profit, D("25000.00"))
        self.assertEqual(report.net_profit, D("19000.00"))
        self.assertEqual(report.trading_expenditure[0].label, "Opening Stock")

    def test_net_profit_matches_balance_sheet(self):
        self.assertEqual(
            profit_and_loss(self.company).net_profit,
            balance_sheet(self.company).profit_or_loss,
        )
        self.assertEqual(
            profit_and_loss(self.company, to_date="2025-04-30").net_profit,
            balance_sheet(self.company, as_of="2025-04-30").profit_or_loss,
        )

    def test_period_without_entries_shows_no_result(self):
        report = profit_and_loss(self.company, from_date="2027-04-01", to_date="2028-03-31")
        self.assertEqual(report.net_profit, D("0.00"))
        self.assertEqual(report.expenditure, [])

    def test_profit_sits_on_the_expenditure_side(self):
        report = profit_and_loss(self.company)

        self.assertEqual(report.trading_expenditure[-1].label, "Gross Profit c/o")
        self.assertEqual(report.income[0].label, "Gross Profit b/f")
        self.assertEqual(report.expenditure[-1].label, "Net Profit")
        self.assertEqual(report.expenditure[-1].amount, D("24000.00"))
        # both columns add up to the same figure
        self.assertEqual(sum(l.amount for l in report.expenditure), report.total)
        self.assertEqual(sum(l.amount for l in report.income), report.total)
        self.assertEqual(report.trading_total, D("100000.00"))

    def test_loss_sits_on_the_income_side(self):
        self.post("payment", datetime.date(2025, 5, 10), self.rent, self.bank, "40000.00")
        report = profit_and_loss(self.company)

        self.assertEqual(report.net_profit, D("-16000.00"))
        self.assertEqual(report.income[-1].label, "Net Loss")
        self.assertEqual(report.income[-1].amount, D("16000.00"))

    def test_closing_stock_is_counted(self):
        report = profit_and_loss(self.company, closing_stock=D("7000.00"))
        self.assertEqual(report.gross_profit, D("37000.00"))
        self.assertEqual(report.trading_income[-1].label, "Closing Stock")

    def test_range_limits_the_figures(self):
        report = profit_and_loss(self.company, from_date="2025-05-01", opening_stock=0)
        self.assertEqual(report.sales, D("0.00"))
        self.assertEqual(report.net_profit, D("-6000.00"))


class BalanceSheetTests(ReportTestBase):

    def test_both_sides_agree(self):
        report = balance_sheet(self.company)

        # assets: bank 124000 + stock 5000; liabilities: capital 105000
        self.assertEqual(report.total_assets, report.total_liabilities)
        self.assertEqual(report.total_assets, D("129000.00"))
        self.assertEqual(report.profit_or_loss, D("24000.00"))
        self.assertEqual(report.liabilities[-1].label, "Profit for the Year")

    def test_as_of_date(self):
        report = balance_sheet(self.company, as_of="2025-04-03")
        bank = next(l for l in report.assets if l.ledger_id == self.bank.pk)
        self.assertEqual(bank.amount, D("40000.00"))


class DayBookTests(ReportTestBase):

    def test_vouchers_by_date_with_entries(self):
        report = day_book(self.company, from_date="2025-04-01", to_date="2025-04-30")

        self.assertEqual(
            [v.voucher_date for v in report.vouchers],
            [datetime.date(2025, 4, 2), datetime.date(2025, 4, 5), datetime.date(2025, 4, 20)],
        )
        self.assertEqual(len(report.vouchers[0].entries), 2)
        self.assertEqual(report.total_debit, report.total_credit)

    def test_filter_by_type(self):
        report = day_book(self.company, voucher_type="payment")
        self.assertEqual(len(report.vouchers), 2)

    def test_build_report_dispatches_by_kind(self):
        self.assertEqual(build_report("day_book", self.company).kind, "day_book")
        self.assertEqual(build_report("balance_sheet", self.company).kind, "balance_sheet")
        with self.assertRaises(ValidationError):
            build_report("cash_flow", self.company)
