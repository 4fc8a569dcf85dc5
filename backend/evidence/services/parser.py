"""
Email parser service for extracting structured transaction data from
order confirmation emails and EML files.
"""

import html
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from evidence.models.email import ParsedEmailData
from evidence.models.envelope import MimeEnvelope
from evidence.services import extractors
from evidence.services.mime import MimeDecoder
from evidence.utils.dates import normalize_date
from evidence.utils.text import normalize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedEml:
    """Decoded EML envelope together with its heuristic extraction."""
    envelope: MimeEnvelope
    parsed: ParsedEmailData


class EmailParser:
    """Service for parsing email text and extracting transaction fields."""

    def __init__(self, mime_decoder: Optional[MimeDecoder] = None):
        self.mime_decoder = mime_decoder or MimeDecoder()

    def _run(self, field_name: str, extractor: Callable[..., Any], *args) -> Any:
        """Run one extractor; a failure only loses that field."""
        try:
            return extractor(*args)
        except Exception as e:
            logger.warning("Extractor failed", extra={
                "field": field_name,
                "error": str(e)
            }, exc_info=True)
            return None

    def parse(self, email_text: str) -> ParsedEmailData:
        """
        Parse email confirmation text (plain text or HTML).

        Args:
            email_text: Pasted email text or raw HTML

        Returns:
            ParsedEmailData; fields that were not found are None
        """
        views = normalize(email_text or '')
        text, normalized_text = views.text, views.normalized_text

        total, currency = self._run('total', extractors.extract_amount_and_currency, text, normalized_text) or (None, None)

        result = ParsedEmailData(
            vendor=self._run('vendor', extractors.extract_vendor, text, normalized_text),
            date=self._run('date', extractors.extract_date, text, normalized_text),
            total=total,
            currency=currency,
            order_number=self._run('order_number', extractors.extract_order_number, normalized_text),
            payment_method=self._run('payment_method', extractors.extract_payment_method, normalized_text),
            items=self._run('items', extractors.extract_items, text),
            raw_text=text,
        )

        logger.debug("Parsed email text", extra={
            "vendor": result.vendor,
            "date": result.date,
            "total": str(result.total) if result.total is not None else None,
            "currency": result.currency,
            "item_count": len(result.items or []),
        })
        return result

    def parse_eml(self, raw: Union[bytes, str]) -> ParsedEml:
        """
        Decode an EML file and extract transaction fields from it.

        The HTML body is preferred over plain text. Date, From and Subject
        headers are prepended to help extraction, and they are used directly
        when the body yields no date or vendor.

        Args:
            raw: EML bytes or text

        Returns:
            ParsedEml with the envelope and the parsed data
        """
        envelope = self.mime_decoder.decode(raw)

        enriched = envelope.html or envelope.body
        # Header lines must survive HTML conversion as separate lines
        if envelope.html:
            separator, quote = "<br>\n", lambda value: html.escape(value, quote=False)
        else:
            separator, quote = "\n", str
        for label, value in (("Subject", envelope.subject), ("From", envelope.from_), ("Date", envelope.date)):
            if value:
                enriched = f"{label}: {quote(value)}{separator}{enriched}"

        parsed = self.parse(enriched)

        updates = {}
        if not parsed.date and envelope.date:
            updates['date'] = normalize_date(envelope.date)
        if not parsed.vendor and envelope.from_:
            updates['vendor'] = extractors.vendor_from_sender(envelope.from_)
        if updates:
            parsed = parsed.model_copy(update=updates)

        logger.info("Parsed EML file", extra={
            "subject": envelope.subject,
            "attachment_count": len(envelope.attachments),
            "has_html": envelope.html is not None,
            "vendor": parsed.vendor,
        })
        return ParsedEml(envelope=envelope, parsed=parsed)
