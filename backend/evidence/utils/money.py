"""
Shared money utilities.

Handles the amount formats found in order confirmations and receipts:
- US: 1,234.56
- Plain: 1234.56 or 1234
- Currency prefixed: $1,234.56, HK$ 88.00, USD 12.00
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union
import re

from evidence.config import settings

TWO_PLACES = Decimal('0.01')

# Prefixed dollar variants are listed before the bare symbols so that
# "HK$" is never read as "$".
PREFIXED_SYMBOLS = {
    'US$': 'USD',
    'CA$': 'CAD',
    'AU$': 'AUD',
    'HK$': 'HKD',
    'NT$': 'TWD',
    'MX$': 'MXN',
    'S$': 'SGD',
    'A$': 'AUD',
    'C$': 'CAD',
    'R$': 'BRL',
}

BARE_SYMBOLS = {
    '$': 'USD',
    '€': 'EUR',
    '£': 'GBP',
    '¥': 'JPY',
    '₩': 'KRW',
    '₹': 'INR',
    '₽': 'RUB',
    '฿': 'THB',
    '₫': 'VND',
}

# ISO codes recognised in receipt text (upper-case only)
CURRENCY_CODES = (
    'USD', 'EUR', 'GBP', 'JPY', 'KRW', 'CNY', 'CAD', 'AUD', 'NZD', 'CHF',
    'INR', 'SGD', 'HKD', 'TWD', 'MXN', 'BRL', 'RUB', 'THB', 'VND', 'SEK',
    'NOK', 'DKK', 'PLN',
)

SYMBOL_PATTERN = (
    r'(?<![A-Za-z])(?:' + '|'.join(re.escape(s) for s in PREFIXED_SYMBOLS) + r')'
    r'|[' + ''.join(re.escape(s) for s in BARE_SYMBOLS) + r']'
)
CODE_PATTERN = r'(?:' + '|'.join(CURRENCY_CODES) + r')'
AMOUNT_PATTERN = r'\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?'


def currency_for_symbol(symbol: Optional[str]) -> Optional[str]:
    """Map a currency symbol ("C$", "€") or ISO code to its ISO code."""
    if not symbol:
        return None
    symbol = symbol.strip()
    if symbol.upper() in CURRENCY_CODES:
        return symbol.upper()
    if symbol.upper() in PREFIXED_SYMBOLS:
        return PREFIXED_SYMBOLS[symbol.upper()]
    return BARE_SYMBOLS.get(symbol)


def parse_money(amount_str: str) -> Optional[Decimal]:
    """
    Parse a US-formatted money string.

    Args:
        amount_str: String containing amount (e.g., "$1,234.56", "12.00 USD")

    Returns:
        Decimal amount or None if parsing fails

    Examples:
        >>> parse_money("$1,234.56")
        Decimal('1234.56')
        >>> parse_money("HK$ 88")
        Decimal('88')
    """
    if not amount_str or not isinstance(amount_str, str):
        return None

    cleaned = re.sub(SYMBOL_PATTERN, '', amount_str)
    cleaned = re.sub(r'\b[A-Z]{3}\b', '', cleaned)
    cleaned = cleaned.replace(',', '').replace(' ', '').strip()

    if not cleaned:
        return None

    try:
        return Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return None


def is_plausible_total(amount: Optional[Decimal]) -> bool:
    """Receipt totals are positive and below the configured ceiling."""
    return amount is not None and 0 < amount < settings.MAX_PLAUSIBLE_AMOUNT


def to_decimal(value: Union[Decimal, int, float, str, None]) -> Optional[Decimal]:
    """Coerce user or OCR supplied numbers to Decimal without float noise."""
    if value is None or value == '':
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        return parse_money(value)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def format_amount(amount: Union[Decimal, int, float, str, None]) -> str:
    """
    Format an amount as the fixed two-decimal string stored in drafts.

    Examples:
        >>> format_amount(Decimal('49.9'))
        '49.90'
        >>> format_amount(None)
        ''
    """
    value = to_decimal(amount)
    if value is None:
        return ''
    try:
        return str(value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # Non-finite, or too many digits to hold two places
        return ''
