from decimal import Decimal

import pytest

from erp_core.models.production import derive_order_status
from erp_core.services.measurements import (calculate_cft, girth_cm_to_inch,
                                            hoppus_cft, parse_size,
                                            quantize_cft, sawn_cft,
                                            yield_percent)
from erp_core.services.reports import compute_profit_and_loss, running_balances

""" Timber volumes """


def test_log_cft_uses_girth_squared_length_and_factor():
    # 30 × 30 × 4 × 2.2072 / 10000 = 0.794592
    assert calculate_cft(30, 4) == Decimal("0.794592")
    assert quantize_cft(calculate_cft(30, 4)) == Decimal("0.795")


def test_log_cft_accepts_strings_and_decimals():
    assert calculate_cft("120", "4") == calculate_cft(Decimal("120"), Decimal("4"))


def test_girth_converted_to_inches():
    assert quantize_cft(girth_cm_to_inch(Decimal("254"))) == Decimal("100.000")


def test_hoppus_cft_for_several_logs():
    # 2.54 cm is exactly 1 inch: 48² × 1 × 1 / 2304 = 1
    assert hoppus_cft(Decimal("121.92"), 1, 1) == Decimal("1")
    assert hoppus_cft(Decimal("121.92"), 10, 3) == Decimal("30")


def test_sawn_cft_of_planks():
    # 4" × 2" × 12 ft × 6 pieces / 144 = 4 cft
    assert sawn_cft(4, 2, 12, 6) == Decimal("4")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("4x2", (Decimal("4"), Decimal("2"))),
        ("4 X 2", (Decimal("4"), Decimal("2"))),
        ("6*1.5", (Decimal("6"), Decimal("1.5"))),
        ("", None),
        ("4x2x1", None),
        ("axb", None),
    ],
)
def test_parse_size(text, expected):
    assert parse_size(text) == expected


def test_yield_percent_is_zero_without_input():
    assert yield_percent(0, 10) == Decimal("0.00")
    assert yield_percent(Decimal("200"), Decimal("130")) == Decimal("65.00")


""" Order status """


@pytest.mark.parametrize(
    "ordered, produced, dispatched, status",
    [
        (100, 0, 0, "pending"),
        (100, 40, 0, "in_production"),
        (100, 60, 30, "partially_dispatched"),
        (100, 100, 100, "completed"),
        (100, 120, 110, "completed"),
    ],
)
def test_order_status_follows_quantities(ordered, produced, dispatched, status):
    assert derive_order_status(ordered, produced, dispatched) == status


""" Report arithmetic """


def test_running_balance_is_a_left_fold():
    movements = [(Decimal("100"), Decimal("0")), (Decimal("0"), Decimal("30")), (Decimal("5"), Decimal("0"))]
    assert running_balances(Decimal("50"), movements) == [
        Decimal("150"), Decimal("120"), Decimal("125"),
    ]
    assert running_balances(Decimal("50"), []) == []


def test_profit_and_loss_figures():
    figures = compute_profit_and_loss(
        sales=Decimal("100000"),
        purchases=Decimal("60000"),
        direct_expenses=Decimal("10000"),
        indirect_expenses=Decimal("8000"),
        indirect_income=Decimal("2000"),
        opening_stock=Decimal("5000"),
    )
    assert figures.gross_profit == Decimal("25000")
    assert figures.net_profit == Decimal("19000")


def test_closing_stock_and_direct_income_raise_gross_profit():
    figures = compute_profit_and_loss(
        sales=Decimal("1000"),
        purchases=Decimal("1500"),
        direct_expenses=Decimal("0"),
        indirect_expenses=Decimal("0"),
        indirect_income=Decimal("0"),
        direct_incomes=Decimal("100"),
        closing_stock=Decimal("300"),
    )
    assert figures.gross_profit == Decimal("-100")
    assert figures.net_profit == Decimal("-100")
