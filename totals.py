import math
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Iterable

from config import config
from models import ItemKind, LineItem, Totals

CENTS = Decimal("0.01")
# enough digits to quantize any finite double to the cent
MONEY_PRECISION = 400

def compute_totals(items: Iterable[LineItem]) -> Totals:
    """Subtotal of charges, sum of discounts and their difference.

    The total is not clamped; discounts larger than the charges give a
    negative figure.
    """
    items = list(items)
    subtotal = math.fsum(item.amount for item in items if item.kind == ItemKind.CHARGE)
    discount_total = math.fsum(item.amount for item in items if item.kind == ItemKind.DISCOUNT)
    return Totals(
        subtotal=subtotal,
        discount_total=discount_total,
        total=subtotal - discount_total,
    )

def round_money(amount: float) -> Decimal:
    """Round half-up to two fraction digits"""
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        return Decimal(repr(float(amount))).quantize(CENTS, rounding=ROUND_HALF_UP)

def format_currency(amount: float, symbol: str = None) -> str:
    """Format amount as currency"""
    symbol = config.CURRENCY_SYMBOL if symbol is None else symbol
    value = round_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{value.copy_abs():,.2f}"

def format_discount(amount: float, symbol: str = None) -> str:
    return f"- {format_currency(amount, symbol)}"

def formatted_totals(totals: Totals) -> dict:
    return {
        "subtotal": format_currency(totals.subtotal),
        "discount_total": format_discount(totals.discount_total),
        "total": format_currency(totals.total),
    }
