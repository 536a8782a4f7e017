"""
Timber volume helpers used by the sawmill module.

All functions are pure: same inputs, same output, no database access.
They work on Decimal so stored values match what reports add up.
"""
from decimal import ROUND_HALF_UP, Decimal

CM_PER_INCH = Decimal("2.54")
LOG_CFT_FACTOR = Decimal("2.2072")
HOPPUS_DIVISOR = Decimal("2304")   # (girth_in / 4)² × length_ft / 144
SAWN_DIVISOR = Decimal("144")      # inches × inches × feet -> cubic feet

CFT_PLACES = Decimal("0.001")
INCH_PLACES = Decimal("1E-10")
MONEY_PLACES = Decimal("0.01")


def _d(value):
    # accept int / float / str / Decimal
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_cft(value):
    return _d(value).quantize(CFT_PLACES, rounding=ROUND_HALF_UP)


def quantize_money(value):
    return _d(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantize_inch(value):
    return _d(value).quantize(INCH_PLACES, rounding=ROUND_HALF_UP)


def girth_cm_to_inch(girth_cm):
    """girth_cm / 2.54, unrounded."""
    return _d(girth_cm) / CM_PER_INCH


def calculate_cft(girth_cm, length_m):
    """Log volume in cubic feet: girth_cm² × length_m × 2.2072 / 10000."""
    girth = _d(girth_cm)
    return girth * girth * _d(length_m) * LOG_CFT_FACTOR / Decimal("10000")


def hoppus_cft(girth_cm, length_ft, quantity=1):
    """Volume of logs fed to a saw: (girth_cm / 2.54)² × length_ft × qty / 2304."""
    girth_in = girth_cm_to_inch(girth_cm)
    return girth_in * girth_in * _d(length_ft) * _d(quantity) / HOPPUS_DIVISOR


def sawn_cft(height_in, width_in, length_ft, quantity=1):
    """Volume of sawn planks: h × w × l × qty / 144."""
    return _d(height_in) * _d(width_in) * _d(length_ft) * _d(quantity) / SAWN_DIVISOR


def parse_size(size):
    """
    Read a plank size such as "4x2", "4 X 2" or "4*2" into (height, width).
    Returns None when the text is not two numbers.
    """
    if not size:
        return None
    text = str(size).lower().replace("*", "x").replace(" ", "")
    parts = text.split("x")
    if len(parts) != 2:
        return None
    try:
        return Decimal(parts[0]), Decimal(parts[1])
    except ArithmeticError:
        return None


def yield_percent(input_cft, output_cft):
    """Output as a share of input, 0 when nothing went in."""
    input_cft = _d(input_cft)
    if input_cft <= 0:
        return Decimal("0.00")
    return quantize_money(_d(output_cft) / input_cft * 100)
