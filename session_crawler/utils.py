"""Shared parsing helpers for scraped text."""

import re

CURRENCY_MAP = {
    "¥": "CNY",
    "￥": "CNY",
    "元": "CNY",
    "rmb": "CNY",
    "cny": "CNY",
    "€": "EUR",
    "eur": "EUR",
    "$": "USD",
    "usd": "USD",
}

# Counters on Chinese storefronts abbreviate ten-thousands.
_COUNT_MULTIPLIERS = {"万": 10_000, "w": 10_000, "k": 1_000, "亿": 100_000_000}


def parse_price(price_text: str | None) -> tuple[float | None, str | None]:
    """Parse price text into (amount, currency).

    Handles formats like:
    - "¥ 1,299.00"
    - "￥59.90-89.00" (the lower bound is used)
    - "27,56 €"
    """
    if not price_text:
        return None, None

    text = price_text.strip().lower()

    currency = None
    for symbol, normalized in CURRENCY_MAP.items():
        if symbol in text:
            currency = normalized
            text = text.replace(symbol, "")
            break

    if not (match := re.search(r"[\d][\d\s.,]*", text)):
        return None, currency

    num = match.group(0).replace(" ", "").replace("\xa0", "").rstrip(".,")

    last_comma = num.rfind(",")
    last_dot = num.rfind(".")

    if last_comma != -1 and last_dot != -1:
        # Assume last separator is decimal; the other is thousands.
        if last_comma > last_dot:
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")
    elif last_comma != -1:
        digits_after = len(num) - last_comma - 1
        if 1 <= digits_after <= 2:
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")

    try:
        return float(num), currency
    except ValueError:
        return None, currency


def parse_count(text: str | None) -> int | None:
    """Parse a counter such as "2.3万+人付款", "月销 1,024" or "共 4,400 件"."""
    if not text:
        return None

    lowered = text.strip().lower()
    if not (match := re.search(r"(\d[\d,]*(?:\.\d+)?)\s*(万|亿|w|k)?", lowered)):
        return None

    number = float(match.group(1).replace(",", ""))
    if unit := match.group(2):
        number *= _COUNT_MULTIPLIERS[unit]
    return int(number)


def parse_float(text: str | None) -> float | None:
    if not text:
        return None
    if match := re.search(r"\d+(?:\.\d+)?", text.replace(",", "")):
        return float(match.group(0))
    return None
