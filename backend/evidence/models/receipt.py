"""
Pydantic models for OCR results, line items and the editable transaction draft.
"""

import uuid
from pydantic import BaseModel, Field, computed_field
from typing import Dict, Optional, List, Set, Union, Literal
from decimal import Decimal

from evidence.config import settings
from evidence.models.email import ParsedEmailData

DocumentType = Literal['receipt', 'invoice', 'payment_proof', 'online_order', 'other']

# IRS Schedule C expense categories (value -> form line)
EXPENSE_CATEGORIES = {
    'advertising': '8',
    'car_truck': '9',
    'commissions': '10',
    'contract_labor': '11',
    'depletion': '12',
    'depreciation': '13',
    'employee_benefits': '14',
    'insurance': '15',
    'interest_mortgage': '16a',
    'interest_other': '16b',
    'legal_professional': '17',
    'office_expense': '18',
    'pension_profit_sharing': '19',
    'rent_lease_vehicles': '20a',
    'rent_lease_equipment': '20b',
    'repairs_maintenance': '21',
    'supplies': '22',
    'taxes_licenses': '23',
    'travel': '24a',
    'meals': '24b',
    'utilities': '25',
    'wages': '26',
    'other': '27a',
}

# Scalar draft fields, in form order
DRAFT_FIELDS = (
    'date',
    'vendor',
    'amount',
    'subtotal',
    'tax',
    'tip',
    'currency',
    'category',
    'payment_method',
    'notes',
    'business_purpose',
)


def new_item_id() -> str:
    return f"item_{uuid.uuid4().hex[:12]}"


class OCRItem(BaseModel):
    """Structured line item as returned by the OCR collaborator."""
    name: str
    qty: Optional[Decimal] = None
    unit_price: Optional[Decimal] = Field(default=None, alias='unitPrice')
    amount: Optional[Decimal] = None

    class Config:
        populate_by_name = True


class OCRResult(BaseModel):
    """
    Best-effort structured guess from the external OCR service.

    Items may be legacy bare strings or OCRItem objects.
    """
    date: Optional[str] = None
    vendor: Optional[str] = None
    amount: Optional[Decimal] = None
    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    tip: Optional[Decimal] = None
    currency: Optional[str] = None
    items: List[Union[OCRItem, str]] = Field(default_factory=list)
    category: Optional[str] = None
    payment_method: Optional[str] = Field(default=None, alias='paymentMethod')
    document_type: Optional[DocumentType] = Field(default=None, alias='documentType')
    confidence: Optional[int] = None

    class Config:
        populate_by_name = True


class LineItem(BaseModel):
    """
    Editable line item belonging to exactly one draft.

    amount is always qty * unit_price; it is computed, never stored.
    """
    id: str = Field(default_factory=new_item_id)
    name: str = ''
    qty: Decimal = Field(default=Decimal('1'), ge=0)
    unit_price: Decimal = Field(default=Decimal('0'), ge=0, alias='unitPrice')
    selected: bool = True

    class Config:
        populate_by_name = True
        validate_assignment = True

    @computed_field
    @property
    def amount(self) -> Decimal:
        return self.qty * self.unit_price


class TransactionDraft(BaseModel):
    """
    Form state being reconciled from OCR, parsed email and user edits.

    Scalar values are strings as typed in the form; empty string is unset.
    user_fields records which fields the user has written.
    """
    date: str = ''
    vendor: str = ''
    amount: str = ''
    subtotal: str = ''
    tax: str = ''
    tip: str = ''
    currency: str = ''
    category: str = Field(default_factory=lambda: settings.DEFAULT_CATEGORY)
    payment_method: str = ''
    notes: str = ''
    business_purpose: str = ''
    items: List[LineItem] = Field(default_factory=list)
    user_fields: Set[str] = Field(default_factory=set)

    @property
    def effective_currency(self) -> str:
        return self.currency or settings.DEFAULT_CURRENCY


class ReconcileRequest(BaseModel):
    """
    Stateless merge request.

    edits are applied first as user edits, then OCR and email data fill
    whatever is still unset.
    """
    draft: TransactionDraft = Field(default_factory=TransactionDraft)
    edits: Dict[str, str] = Field(default_factory=dict)
    ocr: Optional[OCRResult] = None
    email: Optional[ParsedEmailData] = None


class ReconcileResponse(BaseModel):
    draft: TransactionDraft
    fields_written: Dict[str, List[str]] = Field(default_factory=dict)
    selected_total: Decimal
