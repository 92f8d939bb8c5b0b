from decimal import Decimal, ROUND_HALF_UP, ROUND_DOWN

CENT = Decimal("0.01")


def to_money(amount) -> Decimal:
    if amount is None:
        return Decimal("0.00")
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def money_float(amount) -> float:
    return float(to_money(amount))


def percentage(part, whole) -> float:
    """part/whole as a percentage rounded to 2 places; 0 when whole is 0."""
    whole = Decimal(str(whole or 0))
    if whole == 0:
        return 0.0
    return float((Decimal(str(part or 0)) * 100 / whole).quantize(CENT, rounding=ROUND_HALF_UP))


def split_amount(amount, parts: int):
    """Split `amount` into `parts` cent values; the last one absorbs the remainder."""
    total = to_money(amount)
    share = (total / parts).quantize(CENT, rounding=ROUND_DOWN)
    shares = [share] * (parts - 1)
    shares.append(total - share * (parts - 1))
    return shares


def format_brl_currency(amount) -> str:
    """R$ 1.234,56"""
    if amount is None:
        return "R$ 0,00"
    amount = to_money(amount)
    sign = "-" if amount < 0 else ""
    integer_part, decimal_part = f"{abs(amount):.2f}".split(".")

    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)

    return f"{sign}R$ {'.'.join(groups)},{decimal_part}"
