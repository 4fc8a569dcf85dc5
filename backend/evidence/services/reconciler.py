"""
Reconciliation of OCR output, parsed email data and user edits into one
transaction draft.

Merge policy: an incoming value is written only while the draft field is
still unset, so the first populating source wins until the user edits the
field. Re-running population is a no-op for fields already written.
Callers must finish one merge before starting another on the same draft.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Union

from evidence.config import settings
from evidence.models.email import ParsedEmailData
from evidence.models.receipt import (
    DRAFT_FIELDS,
    EXPENSE_CATEGORIES,
    LineItem,
    OCRItem,
    OCRResult,
    TransactionDraft,
)
from evidence.utils.money import TWO_PLACES, format_amount, to_decimal

logger = logging.getLogger(__name__)

MONEY_FIELDS = ('amount', 'subtotal', 'tax', 'tip')
TOTAL_TARGETS = ('amount', 'subtotal')
EDITABLE_ITEM_FIELDS = ('name', 'qty', 'unit_price', 'selected')


def ocr_items_to_line_items(items: Iterable[Union[OCRItem, str]]) -> List[LineItem]:
    """
    Convert OCR items into editable line items.

    Legacy string items become qty 1 at price 0. Structured items keep their
    qty (default 1); when only an amount is given, unit price is amount / qty.

    Examples:
        "Coffee beans" -> qty 1, unit_price 0
        OCRItem(name="Paper", qty=2, amount=9.00) -> qty 2, unit_price 4.50
    """
    line_items = []
    for item in items:
        if isinstance(item, str):
            line_items.append(LineItem(name=item))
            continue

        qty = item.qty if item.qty is not None and item.qty > 0 else Decimal('1')
        if item.unit_price is not None:
            unit_price = item.unit_price
        elif item.amount is not None:
            unit_price = item.amount / qty
            if qty != 1:
                unit_price = unit_price.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        else:
            unit_price = Decimal('0')

        line_items.append(LineItem(name=item.name, qty=qty, unit_price=max(unit_price, Decimal('0'))))
    return line_items


def email_items_to_line_items(names: Optional[Iterable[str]]) -> List[LineItem]:
    """Email item candidates carry no prices: qty 1 at price 0."""
    return [LineItem(name=name) for name in names or []]


class Reconciler:
    """Merges evidence sources into a TransactionDraft."""

    def is_unset(self, draft: TransactionDraft, field: str) -> bool:
        """
        Whether a population source may still write this field.

        Category counts as unset only while it holds the default sentinel.
        """
        if field in draft.user_fields:
            return False
        value = getattr(draft, field)
        if field == 'category':
            return value == settings.DEFAULT_CATEGORY
        return value == ''

    def _populate(self, draft: TransactionDraft, values: Dict[str, Any], items: List[LineItem], source: str) -> List[str]:
        written = []
        for field, value in values.items():
            if value is None or value == '':
                continue
            if not self.is_unset(draft, field):
                continue
            if field in MONEY_FIELDS:
                value = format_amount(value)
                if not value:
                    continue
            setattr(draft, field, str(value))
            written.append(field)

        if items and not draft.items:
            draft.items = items
            written.append('items')

        logger.debug("Populated draft", extra={
            "source": source,
            "fields_written": written
        })
        return written

    def populate_from_ocr(self, draft: TransactionDraft, ocr: OCRResult) -> List[str]:
        """
        Fill unset draft fields from an OCR result.

        Args:
            draft: Draft to update in place
            ocr: OCR collaborator output

        Returns:
            Names of the fields that were written
        """
        category = ocr.category
        if category and category not in EXPENSE_CATEGORIES:
            logger.warning("Ignoring unknown OCR category", extra={
                "category": category
            })
            category = None

        values = {
            'date': ocr.date,
            'vendor': ocr.vendor,
            'amount': ocr.amount,
            'subtotal': ocr.subtotal,
            'tax': ocr.tax,
            'tip': ocr.tip,
            'currency': ocr.currency,
            'category': category,
            'payment_method': ocr.payment_method,
        }
        return self._populate(draft, values, ocr_items_to_line_items(ocr.items), source='ocr')

    def populate_from_email(self, draft: TransactionDraft, parsed: ParsedEmailData) -> List[str]:
        """
        Fill unset draft fields from parsed email data.

        The email total lands in the draft amount.
        """
        values = {
            'date': parsed.date,
            'vendor': parsed.vendor,
            'amount': parsed.total,
            'currency': parsed.currency,
            'payment_method': parsed.payment_method,
        }
        return self._populate(draft, values, email_items_to_line_items(parsed.items), source='email')

    def apply_user_edit(self, draft: TransactionDraft, field: str, value: str) -> TransactionDraft:
        """
        Write a user-typed value; the field is never populated again.

        Raises:
            ValueError: Unknown field or unknown category
        """
        if field not in DRAFT_FIELDS:
            raise ValueError(f"Unknown draft field: {field}")
        if field == 'category' and value not in EXPENSE_CATEGORIES:
            raise ValueError(f"Unknown category: {value}")

        setattr(draft, field, value if value is not None else '')
        draft.user_fields.add(field)
        return draft

    # Line items

    def _find_item(self, draft: TransactionDraft, item_id: str) -> LineItem:
        for item in draft.items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    def add_item(
        self,
        draft: TransactionDraft,
        name: str = '',
        qty: Union[Decimal, int, str] = 1,
        unit_price: Union[Decimal, int, str] = 0
    ) -> LineItem:
        item = LineItem(
            name=name,
            qty=self._non_negative('qty', qty),
            unit_price=self._non_negative('unit_price', unit_price),
        )
        draft.items.append(item)
        return item

    def remove_item(self, draft: TransactionDraft, item_id: str) -> None:
        item = self._find_item(draft, item_id)
        draft.items.remove(item)

    def update_item(self, draft: TransactionDraft, item_id: str, **changes: Any) -> LineItem:
        """
        Edit an item's name, qty, unit price or selection.

        amount is derived from qty and unit price and cannot be edited.

        Raises:
            KeyError: No item with this id
            ValueError: amount edit, unknown field, or negative/invalid number
        """
        if 'amount' in changes:
            raise ValueError("Line item amount is computed from qty and unit_price")
        unknown = set(changes) - set(EDITABLE_ITEM_FIELDS)
        if unknown:
            raise ValueError(f"Unknown line item fields: {', '.join(sorted(unknown))}")

        item = self._find_item(draft, item_id)
        for field, value in changes.items():
            if field in ('qty', 'unit_price'):
                value = self._non_negative(field, value)
            setattr(item, field, value)
        return item

    def toggle_item(self, draft: TransactionDraft, item_id: str) -> bool:
        item = self._find_item(draft, item_id)
        item.selected = not item.selected
        return item.selected

    def select_all(self, draft: TransactionDraft, selected: bool = True) -> None:
        for item in draft.items:
            item.selected = selected

    def selected_total(self, draft: TransactionDraft) -> Decimal:
        return sum((item.amount for item in draft.items if item.selected), Decimal('0'))

    def apply_selected_total(self, draft: TransactionDraft, field: str = 'amount') -> str:
        """
        Overwrite the amount or subtotal with the selected items' total.

        Only called on explicit user action, so the field counts as user-set.
        """
        if field not in TOTAL_TARGETS:
            raise ValueError(f"Selected total can only be applied to {' or '.join(TOTAL_TARGETS)}")

        value = format_amount(self.selected_total(draft))
        setattr(draft, field, value)
        draft.user_fields.add(field)

        logger.debug("Applied selected items total", extra={
            "field": field,
            "value": value
        })
        return value

    def _non_negative(self, field: str, value: Any) -> Decimal:
        number = to_decimal(value)
        if number is None or not number.is_finite():
            raise ValueError(f"Invalid {field}: {value!r}")
        if number < 0:
            raise ValueError(f"{field} cannot be negative")
        return number
