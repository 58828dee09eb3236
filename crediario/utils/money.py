"""Money formatting helpers (amounts are integer cents throughout)"""


def format_brl(amount_cents: int) -> str:
    """Format cents as Brazilian reais, e.g. 123456 -> 'R$ 1.234,56'"""
    sign = "-" if amount_cents < 0 else ""
    reais, cents = divmod(abs(amount_cents), 100)
    grouped = f"{reais:,}".replace(",", ".")
    return f"{sign}R$ {grouped},{cents:02d}"
