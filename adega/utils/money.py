# adega/utils/money.py

from decimal import Decimal, ROUND_HALF_UP

Money = Decimal
ZERO = Decimal("0")

def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def round_money(x: Money) -> Money:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

def format_brl(x) -> str:
    """Format like pt-BR currency: 1234.5 -> 'R$ 1.234,50'."""
    n = round_money(x)
    sign = "-" if n < 0 else ""
    s = f"{abs(n):,.2f}"                       # 1,234.50
    s = s.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {s}"
