# colorfest_analytics/core/formatting.py
from __future__ import annotations

import math
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

MONTHS_IT = ["Gen", "Feb", "Mar", "Apr", "Mag", "Giu", "Lug", "Ago", "Set", "Ott", "Nov", "Dic"]


def format_day_label(d: date) -> str:
    return f"{d.day} {MONTHS_IT[d.month - 1]}"


def format_date_it(d: date) -> str:
    return f"{format_day_label(d)} {d.year}"


def format_period_it(start: date, end: date) -> str:
    if start == end:
        return format_date_it(start)
    return f"{format_date_it(start)} – {format_date_it(end)}"


def round_half_up(value: float, digits: int = 1) -> float:
    q = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def round_int(value: float) -> int:
    """Half rounds towards +inf (same as Math.round on the dashboard)."""
    return int(math.floor(value + 0.5))


def format_int_it(n: int) -> str:
    return f"{n:,}".replace(",", ".")


def format_pct_it(value: float) -> str:
    return f"{round_half_up(value, 1):.1f}".replace(".", ",") + "%"
