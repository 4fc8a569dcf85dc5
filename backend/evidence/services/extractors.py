"""
Heuristic field extractors for order confirmations and receipts.

Each extractor is independent and order-sensitive: its pattern table is
evaluated top to bottom and the first accepted match wins. Extractors return
None when nothing usable is found; they never guess a default.
"""

import logging
import re
from decimal import Decimal
from typing import List, Optional, Tuple

from evidence.config import settings
from evidence.utils.dates import normalize_date
from evidence.utils.money import (
    AMOUNT_PATTERN,
    CODE_PATTERN,
    SYMBOL_PATTERN,
    currency_for_symbol,
    is_plausible_total,
    parse_money,
)
from evidence.utils.patterns import PatternSpec, first_match

logger = logging.getLogger(__name__)

# Candidate name: stops at line ends, commas, pipes, "<" and sentence ends,
# but keeps dots inside names such as "Amazon.com".
NAME = r'((?:[^\n\r,|<!.]|\.(?![\s.]|$))+)'

CORPORATE_SUFFIX_RE = re.compile(r'[\s,]+(?:Inc|LLC|L\.L\.C|Ltd|Corp|Co|Company)\.?$', re.IGNORECASE)
TRAILING_ADDRESS_RE = re.compile(r'\s*<[^>]*>?\s*$')


# --------------------------------------------------------------------------
# Vendor
# --------------------------------------------------------------------------

KNOWN_VENDORS = [
    PatternSpec('amazon', r'\bamazon(?:\.com|\.ca|\.co\.uk)?\b', 'Your Amazon.com order', value='Amazon'),
    PatternSpec('ebay', r'\bebay\b', 'eBay order confirmed', value='eBay'),
    PatternSpec('walmart', r'\bwalmart\b', 'Walmart.com receipt', value='Walmart'),
    PatternSpec('target', r'\btarget(?:\.com)?\b(?!\s+(?:date|price|amount))', 'Target order', value='Target'),
    PatternSpec('costco', r'\bcostco\b', 'Costco Wholesale', value='Costco'),
    PatternSpec('best_buy', r'\bbest\s*buy\b', 'BestBuy.com', value='Best Buy'),
    PatternSpec('home_depot', r'\bhome\s*depot\b', 'The Home Depot', value='The Home Depot'),
    PatternSpec('lowes', r"\blowe'?s\b", "Lowe's", value="Lowe's"),
    PatternSpec('staples', r'\bstaples\b', 'Staples order', value='Staples'),
    PatternSpec('office_depot', r'\boffice\s*depot\b', 'Office Depot OfficeMax', value='Office Depot'),
    PatternSpec('etsy', r'\betsy\b', 'Etsy purchase', value='Etsy'),
    PatternSpec('apple', r'\bapple\b(?!\s*pay)', 'Your receipt from Apple', value='Apple',
                notes='Apple Pay is a payment method, not a vendor'),
    PatternSpec('google', r'\bgoogle\b(?!\s*pay)', 'Google Workspace', value='Google',
                notes='Google Pay is a payment method, not a vendor'),
    PatternSpec('microsoft', r'\bmicrosoft\b', 'Microsoft 365', value='Microsoft'),
    PatternSpec('adobe', r'\badobe\b', 'Adobe Creative Cloud', value='Adobe'),
    PatternSpec('dropbox', r'\bdropbox\b', 'Dropbox Plus', value='Dropbox'),
    PatternSpec('zoom', r'\bzoom\.us\b|\bzoom\s+video\b', 'Zoom Video Communications', value='Zoom'),
    PatternSpec('netflix', r'\bnetflix\b', 'Netflix membership', value='Netflix'),
    PatternSpec('spotify', r'\bspotify\b', 'Spotify Premium', value='Spotify'),
    PatternSpec('uber_eats', r'\buber\s*eats\b', 'Uber Eats order', value='Uber Eats'),
    PatternSpec('uber', r'\buber\b', 'Thanks for riding with Uber', value='Uber'),
    PatternSpec('lyft', r'\blyft\b', 'Lyft ride receipt', value='Lyft'),
    PatternSpec('doordash', r'\bdoor\s*dash\b', 'DoorDash order', value='DoorDash'),
    PatternSpec('grubhub', r'\bgrubhub\b', 'Grubhub order', value='Grubhub'),
    PatternSpec('starbucks', r'\bstarbucks\b', 'Starbucks Card', value='Starbucks'),
    PatternSpec('airbnb', r'\bairbnb\b', 'Airbnb reservation', value='Airbnb'),
]

# Payment rails that are also merchants; only used when no label names a seller
PAYMENT_RAIL_VENDORS = [
    PatternSpec('paypal', r'\bpaypal\b', 'PayPal receipt', value='PayPal'),
]

VENDOR_PATTERNS = [
    PatternSpec(
        name='seller_label',
        pattern=r'(?:\b(?:sold|shipped)\s+by[:\s]+|\b(?:seller|merchant|store|shop|retailer)\s*:\s*)' + NAME,
        example='Sold by: XYZ Corp',
    ),
    PatternSpec(
        name='from_line',
        pattern=r'^\s*from\s*:\s*([^\n\r]+)',
        example='From: Acme Supplies <orders@acme.com>',
        flags=re.IGNORECASE | re.MULTILINE,
    ),
    PatternSpec(
        name='thank_you_purchase',
        pattern=r'thank\s+you\s+for\s+(?:your\s+)?(?:purchase|order|shopping)\s+(?:at|from|with)\s+' + NAME,
        example='Thank you for your purchase at Blue Bottle Coffee',
    ),
    PatternSpec(
        name='your_order_at',
        pattern=r'your\s+order\s+(?:at|from|with)\s+' + NAME,
        example='Your order from Acme Supplies',
    ),
    PatternSpec(
        name='document_from',
        pattern=r'(?:order|confirmation|receipt)\s+from\s+' + NAME,
        example='Receipt from Blue Bottle Coffee',
    ),
    PatternSpec(
        name='purchased_from',
        pattern=r'purchased\s+from\s+' + NAME,
        example='Purchased from Acme Supplies',
    ),
]

GENERIC_SENDER_RE = re.compile(
    r'^(?:no-?reply|do-?not-?reply|orders?|receipts?|support|info|billing|notifications?|mail)$',
    re.IGNORECASE,
)


def clean_vendor_name(name: str) -> str:
    """Strip address remnants, quotes, corporate suffixes and trailing punctuation."""
    name = TRAILING_ADDRESS_RE.sub('', name.strip())
    name = name.strip().strip('"\'').strip()
    name = CORPORATE_SUFFIX_RE.sub('', name)
    return name.rstrip(' .,:;-').strip()


def vendor_from_sender(sender: str) -> Optional[str]:
    """
    Derive a vendor from a From: value.

    Uses the display name when present, otherwise the sender's domain.

    Examples:
        >>> vendor_from_sender('"Blue Bottle" <orders@bluebottle.com>')
        'Blue Bottle'
        >>> vendor_from_sender('receipts@acmesupplies.com')
        'Acmesupplies'
    """
    if not sender:
        return None

    display = re.match(r'^\s*"?([^"<]+?)"?\s*<', sender)
    if display:
        name = clean_vendor_name(display.group(1))
        name = re.sub(r'\s*\b(?:no-?reply|do-?not-?reply)\b\s*', ' ', name, flags=re.IGNORECASE).strip()
        if len(name) > 1 and '@' not in name:
            return name

    address = re.search(r'([\w.+-]+)@([\w-]+)(?:\.[\w-]+)*', sender)
    if address:
        domain = address.group(2)
        # mail.vendor.com / email.vendor.com style subdomains
        if GENERIC_SENDER_RE.match(domain) or domain.lower() in ('email', 'e', 'em', 'mg', 'news'):
            labels = re.findall(r'@[\w.-]+', sender)[0][1:].split('.')
            domain = labels[-2] if len(labels) >= 2 else domain
        return domain[:1].upper() + domain[1:]

    name = clean_vendor_name(sender)
    return name if len(name) > 1 else None


def _accept_vendor(spec: PatternSpec, match: re.Match) -> Optional[str]:
    raw = match.group(1)
    if spec.name == 'from_line':
        candidate = vendor_from_sender(raw)
    else:
        candidate = clean_vendor_name(raw)

    if candidate and 2 <= len(candidate) <= 99:
        return candidate
    return None


def extract_vendor(text: str, normalized_text: str) -> Optional[str]:
    """
    Extract the merchant name.

    Known brands outrank every label-based pattern. Payment rails such as
    PayPal only name the vendor when nothing else does.

    Args:
        text: Line-preserving text
        normalized_text: Whitespace-collapsed text

    Returns:
        Vendor name or None
    """
    brand = first_match(KNOWN_VENDORS, [normalized_text, text], lambda spec, m: spec.value)
    if brand:
        return brand

    labelled = first_match(VENDOR_PATTERNS, [text, normalized_text], _accept_vendor)
    if labelled:
        return labelled

    return first_match(PAYMENT_RAIL_VENDORS, [normalized_text], lambda spec, m: spec.value)


# --------------------------------------------------------------------------
# Date
# --------------------------------------------------------------------------

DATE_LABEL = r'(?:transaction\s+date|order\s+date|invoice\s+date|date|placed\s+on|purchased(?:\s+on)?)'
WEEKDAY = r'(?:(?:mon|tue|wed|thu|fri|sat|sun)[a-z]*\.?,?\s+)?'
NUMERIC_DATE = r'(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})(?!\d)'
TEXTUAL_DATE = (
    r'(' + WEEKDAY + r'(?:[A-Za-z]{3,9}\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}'
    r'|\d{1,2}(?:st|nd|rd|th)?\s+[A-Za-z]{3,9}\.?,?\s+\d{4}))'
)
# An RFC 2822 header date ("Tue, 6 Jan 2026 09:12:00") is a send time, not a transaction date
NOT_HEADER_TIME = r'(?!\s+\d{1,2}:\d{2})'
FULL_MONTHS = r'(?:January|February|March|April|May|June|July|August|September|October|November|December)'
SHORT_MONTHS = r'(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sept|Sep|Oct|Nov|Dec)'

DATE_PATTERNS = [
    PatternSpec(
        name='label_numeric',
        pattern=r'\b' + DATE_LABEL + r'\s*:?\s*' + NUMERIC_DATE,
        example='Order Date: 01/06/2026',
    ),
    PatternSpec(
        name='label_textual',
        pattern=r'\b' + DATE_LABEL + r'\s*:?\s*' + TEXTUAL_DATE + NOT_HEADER_TIME,
        example='Placed on January 6, 2026',
    ),
    PatternSpec(
        name='iso',
        pattern=r'\b(\d{4}-\d{2}-\d{2})\b',
        example='2026-01-06',
    ),
    PatternSpec(
        name='full_month',
        pattern=r'\b(' + FULL_MONTHS + r'\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4})\b',
        example='January 6, 2026',
    ),
    PatternSpec(
        name='short_month',
        pattern=r'\b(' + SHORT_MONTHS + r'\.?\s+\d{1,2},?\s+\d{4})\b',
        example='Jan. 6, 2026',
    ),
    PatternSpec(
        name='numeric',
        pattern=r'(?<![\d/\-])' + NUMERIC_DATE,
        example='1/6/26',
    ),
]


def extract_date(text: str, normalized_text: str) -> Optional[str]:
    """Extract the transaction date as ISO YYYY-MM-DD."""
    return first_match(DATE_PATTERNS, [normalized_text, text], lambda spec, m: normalize_date(m.group(1)))


# --------------------------------------------------------------------------
# Amount + currency
# --------------------------------------------------------------------------

TOTAL_LABEL = (
    r'(?:order\s+total|grand\s+total|total\s+amount|total\s+charged|amount\s+charged|you\s+paid|'
    r'transaction\s+total|transaction\s+amount|total|transaction|payment|charged|amount)'
)
SYMBOL = r'(?P<symbol>' + SYMBOL_PATTERN + r')'
AMOUNT = r'(?P<amount>' + AMOUNT_PATTERN + r')'
CODE_AFTER = r'(?:\s*(?-i:(?P<code>' + CODE_PATTERN + r'))\b)?'

TOTAL_PATTERNS = [
    PatternSpec(
        name='labelled_total',
        pattern=r'\b' + TOTAL_LABEL + r'\b\s*(?:\([^)]{0,30}\))?\s*[:\-]?\s*' + SYMBOL + r'?\s*' + AMOUNT + r'(?!\d)' + CODE_AFTER,
        example='Order Total: $49.99',
        notes='Symbol optional; an amount without symbol must carry decimals',
    ),
]

GENERIC_AMOUNT_PATTERNS = [
    PatternSpec(
        name='symbol_amount',
        pattern=SYMBOL + r'\s*' + AMOUNT + r'(?!\d)' + CODE_AFTER,
        example='$15.00 CAD',
    ),
    PatternSpec(
        name='code_amount',
        pattern=r'(?-i:\b(?P<code>' + CODE_PATTERN + r'))\s*' + AMOUNT + r'(?!\d)',
        example='USD 12.50',
    ),
    PatternSpec(
        name='amount_code',
        pattern=r'(?<![\d.,])' + AMOUNT + r'\s*(?-i:(?P<code>' + CODE_PATTERN + r')\b)',
        example='12.50 EUR',
    ),
]

CURRENCY_CODE_RE = re.compile(r'\b(' + CODE_PATTERN + r')\b')


def _collect_amounts(specs: List[PatternSpec], text: str, require_marker: bool) -> List[Tuple[Decimal, Optional[str]]]:
    """All plausible (amount, currency) matches for a pattern table."""
    found: List[Tuple[Decimal, Optional[str]]] = []
    for spec in specs:
        for match in spec.finditer(text):
            groups = match.groupdict()
            raw_amount = groups.get('amount')
            currency = currency_for_symbol(groups.get('code')) or currency_for_symbol(groups.get('symbol'))

            # "Payment 1 of 2" is not an amount
            if require_marker and currency is None and '.' not in raw_amount:
                continue

            amount = parse_money(raw_amount)
            if is_plausible_total(amount):
                found.append((amount, currency))
    return found


def _largest(candidates: List[Tuple[Decimal, Optional[str]]]) -> Optional[Tuple[Decimal, Optional[str]]]:
    best = None
    for amount, currency in candidates:
        if best is None or amount > best[0]:
            best = (amount, currency)
    return best


def extract_amount_and_currency(text: str, normalized_text: str) -> Tuple[Optional[Decimal], Optional[str]]:
    """
    Extract the total amount and its currency.

    Pass 1 looks at total-labelled amounts, pass 2 (only when pass 1 found
    nothing) at any symbol- or code-marked amount. In both passes the largest
    plausible amount wins, since subtotal, tax and total usually all appear
    and the grand total is the largest.

    Returns:
        (total, currency); currency is None only when no total was found
    """
    best = _largest(_collect_amounts(TOTAL_PATTERNS, normalized_text, require_marker=True))
    if best is None:
        best = _largest(_collect_amounts(GENERIC_AMOUNT_PATTERNS, normalized_text, require_marker=False))
    if best is None:
        return None, None

    total, currency = best
    if currency is None:
        code = CURRENCY_CODE_RE.search(normalized_text) or CURRENCY_CODE_RE.search(text)
        currency = code.group(1) if code else settings.DEFAULT_CURRENCY

    return total, currency


# --------------------------------------------------------------------------
# Order number
# --------------------------------------------------------------------------

ORDER_NUMBER_PATTERNS = [
    PatternSpec(
        name='labelled_reference',
        pattern=(
            r'\b(?:order|confirmation|invoice|reference|tracking)\b'
            r'(?:\s*(?:number|num|no\.?|id|code))?(?:\s+is)?\s*[#:]*\s*'
            r'(?=[A-Z0-9\-]*\d)([A-Z0-9][A-Z0-9\-]{4,29})\b'
        ),
        example='Order #112-4567890-1234567',
    ),
    PatternSpec(
        name='hash_reference',
        pattern=r'#\s*(?=[A-Z0-9\-]*\d)([A-Z0-9][A-Z0-9\-]{4,29})\b',
        example='#W123456789',
    ),
    PatternSpec(
        name='numeric_order',
        pattern=r'\b(?:order|confirmation)\b[\s#:]*(\d{3,}[\-\d]*)',
        example='Order 4821',
    ),
]


def extract_order_number(normalized_text: str) -> Optional[str]:
    return first_match(ORDER_NUMBER_PATTERNS, [normalized_text], lambda spec, m: m.group(1).strip('-') or None)


# --------------------------------------------------------------------------
# Payment method
# --------------------------------------------------------------------------

PAYMENT_KEYWORDS = {
    'cash': 'cash',
    'check': 'check',
    'cheque': 'check',
    'debit': 'debit',
    'credit': 'credit',
}

PAYMENT_METHOD_PATTERNS = [
    PatternSpec('paid_with_keyword',
                r'\bpaid\s+(?:with|by|via|using|in)\s+(?:a\s+|your\s+)?(cash|check|cheque|debit|credit)\b',
                'Paid with debit card'),
    PatternSpec('debit_card', r'\bdebit\s+card\b|\b(?:visa|mastercard)\s+debit\b', 'Visa Debit', value='debit'),
    PatternSpec('credit_card', r'\bcredit\s+card\b', 'Charged to your credit card', value='credit'),
    PatternSpec('card_network', r'\b(?:visa|master\s*card|amex|american\s+express|discover|jcb|diners\s+club|union\s*pay)\b',
                'Visa ending in 4242', value='credit'),
    PatternSpec('wallet_credit', r'\b(?:apple\s*pay|google\s*pay|samsung\s*pay|paypal)\b', 'Paid with Apple Pay', value='credit'),
    PatternSpec('wallet_debit', r'\b(?:venmo|zelle)\b', 'Sent with Zelle', value='debit'),
    PatternSpec('cash', r'\b(?:cash\s+(?:tendered|payment|paid)|paid\s+in\s+cash|payment\s+method\s*:?\s*cash)\b',
                'Cash tendered', value='cash'),
    PatternSpec('check', r'\b(?:check|cheque)\s*(?:no\.?|number|#)\s*\d+|\bpayment\s+method\s*:?\s*(?:check|cheque)\b',
                'Check #1043', value='check'),
    PatternSpec('card_ending', r'\bcard\s+(?:ending|ends)\s+(?:in|with)\s*:?\s*\d{4}\b', 'Card ending in 4242', value='credit'),
    PatternSpec('bare_ending', r'\bending\s+in\s*:?\s*\d{4}\b|\*{2,}\s*\d{4}\b', '****4242', value='credit'),
]


def _payment_value(spec: PatternSpec, match: re.Match) -> Optional[str]:
    if spec.value:
        return spec.value
    return PAYMENT_KEYWORDS.get(match.group(1).lower())


def extract_payment_method(normalized_text: str) -> Optional[str]:
    """Map payment mentions to credit, debit, cash or check."""
    return first_match(PAYMENT_METHOD_PATTERNS, [normalized_text], _payment_value)


# --------------------------------------------------------------------------
# Line items
# --------------------------------------------------------------------------

ITEM_NAME = r"([A-Za-z][A-Za-z0-9 ,'&()/.+\-]+?)"
# A bare integer is part of the name ("Pack of 10"), not a price
PRICE = r'(?:[$€£¥]\s*\d[\d,]*(?:\.\d{2})?|\d[\d,]*\.\d{2})'

ITEM_PATTERNS = [
    PatternSpec(
        name='quantity_prefixed',
        pattern=r'^\s*(\d+)\s*[x×]\s+([^\n$€£¥]+?)(?:\s+' + PRICE + r')?\s*$',
        example='2 x USB-C Cable $9.99',
        flags=re.IGNORECASE | re.MULTILINE,
    ),
    PatternSpec(
        name='dash_price',
        pattern=r'^\s*' + ITEM_NAME + r'\s*[-–—]\s*[$€£¥]\s*\d[\d,]*(?:\.\d{2})?\s*$',
        example='Wireless Mouse - $24.99',
        flags=re.MULTILINE,
    ),
    PatternSpec(
        name='trailing_price',
        pattern=r'^\s*' + ITEM_NAME + r'\s+[$€£¥]?\d[\d,]*\.\d{2}\s*$',
        example='Printer Paper 500 Sheets $12.49',
        flags=re.MULTILINE,
    ),
]

COMMON_WORDS = (
    'subtotal', 'total', 'tax', 'shipping', 'discount', 'free',
    'order', 'confirmation', 'thank', 'you', 'your', 'the',
    'item', 'items', 'qty', 'quantity', 'price', 'amount',
)


def is_common_word(text: str) -> bool:
    """True for labels such as "Total" or "Shipping & Handling"."""
    return any(text == word or text.startswith(word + ' ') for word in COMMON_WORDS)


def extract_items(text: str) -> Optional[List[str]]:
    """
    Extract candidate line item names from line-preserving text.

    Patterns are tried in order; once 3 or more items are held no further
    patterns are scanned.
    """
    items: List[str] = []
    seen = set()
    limit = settings.MAX_EXTRACTED_ITEMS

    for spec in ITEM_PATTERNS:
        for match in spec.finditer(text):
            item = (match.group(match.lastindex) or '').strip()
            item = item.rstrip(' -–—:')
            key = item.lower()
            if not (2 < len(item) < 100) or key in seen or is_common_word(key):
                continue
            seen.add(key)
            items.append(item)
        if len(items) >= 3:
            break

    return items[:limit] or None
