from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

_COMPACT_UNITS = (
    (Decimal("1000000000"), "B"),
    (Decimal("1000000"), "M"),
    (Decimal("1000"), "K"),
)


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_currency(value: Decimal, symbol: str = "") -> str:
    cents = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if cents < 0 else ""
    return f"{sign}{symbol}{abs(cents):,.2f}"


def format_percentage(value: Decimal) -> str:
    return f"{format_decimal(value)}%"


def format_compact_currency(value: Decimal, symbol: str = "$") -> str:
    """Short form for large amounts: 1_200_000 -> "$1.2M", 500_000 -> "$500K"."""
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    for threshold, suffix in _COMPACT_UNITS:
        if magnitude >= threshold:
            scaled = (magnitude / threshold).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
            return f"{sign}{symbol}{format_decimal(scaled)}{suffix}"
    return f"{sign}{symbol}{format_decimal(magnitude.quantize(Decimal('1'), rounding=ROUND_HALF_UP))}"


def render_table(headers: tuple[str, ...], rows: list[tuple[str, ...]], *, align_left: int = 1) -> list[str]:
    """Fixed-width text table; the first ``align_left`` columns are left aligned, the rest right aligned."""
    widths = [max(len(header), max((len(row[index]) for row in rows), default=0)) for index, header in enumerate(headers)]

    def _line(cells: tuple[str, ...]) -> str:
        return " ".join(
            f"{cell:<{width}}" if index < align_left else f"{cell:>{width}}"
            for index, (cell, width) in enumerate(zip(cells, widths))
        ).rstrip()

    header = _line(headers)
    lines = [header, "-" * len(header)]
    lines.extend(_line(row) for row in rows)
    return lines
