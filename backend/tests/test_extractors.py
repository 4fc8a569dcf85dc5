"""
Test suite for heuristic field extractors.

Tests cover:
- Vendor: known-brand precedence, label patterns, sender fallback
- Date, total + currency, order number, payment method
- Line item candidates
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from decimal import Decimal

import pytest

from evidence.services.extractors import (
    KNOWN_VENDORS,
    PAYMENT_RAIL_VENDORS,
    VENDOR_PATTERNS,
    DATE_PATTERNS,
    extract_amount_and_currency,
    extract_date,
    extract_items,
    extract_order_number,
    extract_payment_method,
    extract_vendor,
    vendor_from_sender,
)
from evidence.utils.text import normalize


def vendor_of(content):
    views = normalize(content)
    return extract_vendor(views.text, views.normalized_text)


def date_of(content):
    views = normalize(content)
    return extract_date(views.text, views.normalized_text)


def total_of(content):
    views = normalize(content)
    return extract_amount_and_currency(views.text, views.normalized_text)


class TestPatternTables:
    """Every documented example must be matched by its own pattern."""

    @pytest.mark.parametrize("spec", KNOWN_VENDORS + PAYMENT_RAIL_VENDORS + VENDOR_PATTERNS + DATE_PATTERNS, ids=lambda s: s.name)
    def test_examples_match(self, spec):
        assert spec.search(spec.example) is not None


class TestVendorExtraction:

    def test_known_brand_beats_labels(self):
        text = "Sold by: Northwind Traders\nFulfilled by Amazon.com"
        assert vendor_of(text) == "Amazon"

    def test_seller_label(self):
        assert vendor_of("Sold by: Northwind Traders\nTotal: $12.00") == "Northwind Traders"

    def test_corporate_suffix_removed(self):
        assert vendor_of("Merchant: Northwind Traders, Inc.") == "Northwind Traders"

    def test_thank_you_for_purchase(self):
        assert vendor_of("Thank you for your purchase at Blue Bottle Coffee!") == "Blue Bottle Coffee"

    def test_receipt_from(self):
        assert vendor_of("Your receipt from Blue Bottle Coffee\nTotal $5.50") == "Blue Bottle Coffee"

    def test_from_line_uses_display_name(self):
        assert vendor_of("From: Acme Supplies <orders@acmesupplies.com>\nTotal: $5.00") == "Acme Supplies"

    def test_apple_pay_is_not_apple(self):
        text = "Paid with Apple Pay\nReceipt from Blue Bottle Coffee"
        assert vendor_of(text) == "Blue Bottle Coffee"

    def test_paypal_payment_is_not_vendor(self):
        text = "Thank you for your purchase at Blue Bottle Coffee\nTotal: $4.50\nPaid with PayPal"
        assert vendor_of(text) == "Blue Bottle Coffee"

    def test_paypal_when_nothing_else_names_vendor(self):
        assert vendor_of("Your PayPal receipt\nTotal: $4.50") == "PayPal"

    def test_keeps_dotted_names(self):
        assert vendor_of("Order from Booking.com\nTotal: $80.00") == "Booking.com"

    def test_no_vendor(self):
        assert vendor_of("Total: $5.00") is None


class TestVendorFromSender:

    def test_display_name(self):
        assert vendor_from_sender('"Blue Bottle" <orders@bluebottle.com>') == "Blue Bottle"

    def test_bare_address_uses_domain(self):
        assert vendor_from_sender("receipts@acmesupplies.com") == "Acmesupplies"

    def test_generic_mail_subdomain(self):
        assert vendor_from_sender("orders@mail.acme.com") == "Acme"

    def test_empty(self):
        assert vendor_from_sender('') is None


class TestDateExtraction:

    def test_labelled_numeric(self):
        assert date_of("Order Date: 01/06/2026") == "2026-01-06"

    def test_labelled_textual(self):
        assert date_of("Placed on January 6, 2026") == "2026-01-06"

    def test_invalid_labelled_date_falls_through(self):
        assert date_of("Date: 13/45/2026\nShipped January 6, 2026") == "2026-01-06"

    def test_header_timestamp_is_not_labelled_date(self):
        text = "Date: Thu, 8 Jan 2026 10:00:00 -0800\nOrder Date: January 6, 2026"
        assert date_of(text) == "2026-01-06"

    def test_day_first_labelled_date(self):
        assert date_of("Invoice date: 6 January 2026") == "2026-01-06"

    def test_html_date(self):
        assert date_of("<p>Order date: <b>Jan 6, 2026</b></p>") == "2026-01-06"

    def test_no_date(self):
        assert date_of("Total: $5.00") is None


class TestAmountExtraction:

    def test_total_is_largest_labelled_amount(self):
        assert total_of("Subtotal $10.00 Tax $1.00 Total $11.00") == (Decimal('11.00'), 'USD')

    def test_thousands_separator_and_trailing_code(self):
        assert total_of("Order Total: 1,234.56 EUR") == (Decimal('1234.56'), 'EUR')

    def test_code_beats_dollar_symbol(self):
        assert total_of("Total: $15.00 CAD") == (Decimal('15.00'), 'CAD')
        assert total_of("Amount due $15.00 CAD") == (Decimal('15.00'), 'CAD')

    def test_prefixed_symbol(self):
        assert total_of("Total: C$ 20.00") == (Decimal('20.00'), 'CAD')

    def test_euro_symbol(self):
        assert total_of("Grand total €45.50") == (Decimal('45.50'), 'EUR')

    def test_currency_code_elsewhere(self):
        assert total_of("Total: 25.00\nCurrency: EUR") == (Decimal('25.00'), 'EUR')

    def test_default_currency(self):
        assert total_of("Total: 25.00") == (Decimal('25.00'), 'USD')

    def test_unmarked_integer_is_not_a_total(self):
        assert total_of("Payment 1 of 2") == (None, None)

    def test_generic_fallback(self):
        assert total_of("Your card was charged for 2 items: $7.25 and $12.75") == (Decimal('12.75'), 'USD')

    def test_no_amount(self):
        assert total_of("Thanks for shopping!") == (None, None)


class TestOrderNumberExtraction:

    @pytest.mark.parametrize("text,expected", [
        ("Order #112-4567890-1234567", "112-4567890-1234567"),
        ("Your order number is 12345", "12345"),
        ("Confirmation: ABC12345", "ABC12345"),
        ("Reference #W123456789", "W123456789"),
        ("Thanks! Order 4821 is on its way", "4821"),
    ])
    def test_order_numbers(self, text, expected):
        assert extract_order_number(normalize(text).normalized_text) == expected

    def test_words_are_not_order_numbers(self):
        assert extract_order_number("Order Date: January 6") is None


class TestPaymentMethodExtraction:

    @pytest.mark.parametrize("text,expected", [
        ("Paid with debit card", "debit"),
        ("Paid by credit", "credit"),
        ("Visa Debit ending in 1234", "debit"),
        ("Visa ending in 4242", "credit"),
        ("Paid with Apple Pay", "credit"),
        ("Sent with Zelle", "debit"),
        ("Cash tendered $20.00", "cash"),
        ("Check #1043", "check"),
        ("Card ending in 9876", "credit"),
        ("Charged to ****1111", "credit"),
    ])
    def test_payment_methods(self, text, expected):
        assert extract_payment_method(text) == expected

    def test_no_payment_method(self):
        assert extract_payment_method("Total: $5.00") is None


class TestItemExtraction:

    def test_quantity_prefixed_items(self):
        text = "2 x USB-C Cable $9.99\n1 x Mouse Pad $4.99\nSubtotal $14.98"
        assert extract_items(text) == ["USB-C Cable", "Mouse Pad"]

    def test_quantity_prefixed_bare_number_stays_in_name(self):
        text = "2 x Pack of 10\n1 x Mouse Pad 4.99"
        assert extract_items(text) == ["Pack of 10", "Mouse Pad"]

    def test_trailing_price_skips_summary_lines(self):
        text = (
            "Printer Paper 500 Sheets $12.49\n"
            "Ink Cartridge Black $24.99\n"
            "Subtotal $37.48\n"
            "Tax $3.00\n"
            "Total $40.48"
        )
        assert extract_items(text) == ["Printer Paper 500 Sheets", "Ink Cartridge Black"]

    def test_dash_price_dedupes(self):
        text = "Wireless Mouse - $24.99\nwireless mouse - $24.99\nDesk Lamp - $30.00"
        assert extract_items(text) == ["Wireless Mouse", "Desk Lamp"]

    def test_item_cap(self):
        text = "\n".join(f"Widget Model {chr(65 + i)} $1.00" for i in range(25))
        assert len(extract_items(text)) == 20

    def test_no_items(self):
        assert extract_items("Thanks for your order!") is None
