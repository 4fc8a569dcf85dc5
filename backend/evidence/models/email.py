"""
Pydantic models for parsed email evidence.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from decimal import Decimal

PaymentMethod = Literal['credit', 'debit', 'cash', 'check']


class ParsedEmailData(BaseModel):
    """
    Heuristic extraction result.

    Every field except raw_text is optional; None means "not found".
    """
    vendor: Optional[str] = None
    date: Optional[str] = None  # ISO YYYY-MM-DD
    total: Optional[Decimal] = None
    currency: Optional[str] = None
    order_number: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    items: Optional[List[str]] = None
    raw_text: str = ''


class ValidationResult(BaseModel):
    """Completeness score for a ParsedEmailData. Derived, never stored."""
    is_valid: bool
    confidence: int = Field(ge=0, le=100)
    missing_fields: List[str] = Field(default_factory=list)


class AttachmentInfo(BaseModel):
    """Attachment metadata for API responses (bytes are not echoed)."""
    filename: str
    content_type: str
    size: int


class EnvelopeSummary(BaseModel):
    """Header-level view of a decoded EML file."""
    from_: Optional[str] = Field(default=None, alias='from')
    to: Optional[str] = None
    subject: Optional[str] = None
    date: Optional[str] = None
    has_html: bool = False
    attachments: List[AttachmentInfo] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class EvidenceResponse(BaseModel):
    """API response for a parsed piece of email evidence."""
    parsed: ParsedEmailData
    validation: ValidationResult
    message: str
    envelope: Optional[EnvelopeSummary] = None


class ParseTextRequest(BaseModel):
    """Pasted confirmation email, plain text or HTML."""
    text: str
