"""
Evidence ingestion service: the boundary between callers and the
extraction pipeline.

Parsing never raises to the caller. A failure inside the pipeline is logged
and reported as a zero-confidence validation result.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple, Union

from evidence.models.email import (
    AttachmentInfo,
    EnvelopeSummary,
    EvidenceResponse,
    ParsedEmailData,
    ValidationResult,
)
from evidence.models.envelope import MimeEnvelope
from evidence.services.parser import EmailParser
from evidence.services.validator import parsing_failed_result, status_message, validate_parsed_email

logger = logging.getLogger(__name__)

EML_CONTENT_TYPES = ('message/rfc822',)
EML_EXTENSIONS = ('.eml',)


@dataclass(frozen=True)
class EvidenceResult:
    """Parsed fields, their validation and the envelope for EML input."""
    parsed: ParsedEmailData
    validation: ValidationResult
    message: str
    envelope: Optional[MimeEnvelope] = None

    def to_response(self) -> EvidenceResponse:
        summary = None
        if self.envelope is not None:
            summary = EnvelopeSummary(
                from_=self.envelope.from_,
                to=self.envelope.to,
                subject=self.envelope.subject,
                date=self.envelope.date,
                has_html=self.envelope.html is not None,
                attachments=[
                    AttachmentInfo(filename=a.filename, content_type=a.content_type, size=a.size)
                    for a in self.envelope.attachments
                ],
            )
        return EvidenceResponse(
            parsed=self.parsed,
            validation=self.validation,
            message=self.message,
            envelope=summary,
        )


class CancellationToken:
    """Cooperative cancellation flag shared between a batch and its caller."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class BatchResult:
    results: List[Tuple[str, EvidenceResult]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    cancelled: bool = False


def is_eml_file(filename: Optional[str], content_type: Optional[str] = None) -> bool:
    """
    Check if an uploaded file is an EML message.

    Examples:
        >>> is_eml_file("receipt.EML")
        True
        >>> is_eml_file("scan.pdf", "application/pdf")
        False
    """
    if content_type and content_type.split(';', 1)[0].strip().lower() in EML_CONTENT_TYPES:
        return True
    return bool(filename) and filename.lower().endswith(EML_EXTENSIONS)


class EvidenceService:
    """Service for turning pasted emails and EML files into parsed evidence."""

    def __init__(self, parser: Optional[EmailParser] = None):
        self.parser = parser or EmailParser()

    def _result(self, parsed: ParsedEmailData, envelope: Optional[MimeEnvelope] = None) -> EvidenceResult:
        validation = validate_parsed_email(parsed)
        return EvidenceResult(
            parsed=parsed,
            validation=validation,
            message=status_message(validation),
            envelope=envelope,
        )

    def _failed(self, raw_text: str = '') -> EvidenceResult:
        validation = parsing_failed_result()
        return EvidenceResult(
            parsed=ParsedEmailData(raw_text=raw_text),
            validation=validation,
            message=status_message(validation),
        )

    def parse_email_text(self, text: str) -> EvidenceResult:
        """
        Parse pasted email text (plain or HTML).

        Args:
            text: Email content as pasted by the user

        Returns:
            EvidenceResult with the parsed fields and validation
        """
        try:
            parsed = self.parser.parse(text)
        except Exception as e:
            logger.error("Failed to parse email text", extra={
                "text_length": len(text or ''),
                "error": str(e)
            }, exc_info=True)
            return self._failed(raw_text=text or '')

        result = self._result(parsed)
        logger.info("Parsed email text", extra={
            "confidence": result.validation.confidence,
            "is_valid": result.validation.is_valid
        })
        return result

    def parse_eml_file(self, data: Union[bytes, str], filename: Optional[str] = None) -> EvidenceResult:
        """
        Decode and parse an EML file.

        Args:
            data: Raw EML bytes
            filename: Original file name, for logging

        Returns:
            EvidenceResult including the decoded envelope
        """
        try:
            parsed_eml = self.parser.parse_eml(data)
        except Exception as e:
            logger.error("Failed to parse EML file", extra={
                "eml_filename": filename,
                "size_bytes": len(data or b''),
                "error": str(e)
            }, exc_info=True)
            return self._failed()

        result = self._result(parsed_eml.parsed, parsed_eml.envelope)
        logger.info("Parsed EML file", extra={
            "eml_filename": filename,
            "confidence": result.validation.confidence,
            "attachment_count": len(parsed_eml.envelope.attachments)
        })
        return result

    def parse_batch(
        self,
        files: Iterable[Tuple[str, bytes]],
        cancel_token: Optional[CancellationToken] = None
    ) -> BatchResult:
        """
        Parse several EML files in order.

        Cancellation is checked between files; a file already being parsed
        always completes.

        Args:
            files: (filename, bytes) pairs
            cancel_token: Token the caller may cancel while the batch runs

        Returns:
            BatchResult with per-file results and skipped non-EML names
        """
        batch = BatchResult()

        for filename, data in files:
            if cancel_token is not None and cancel_token.cancelled:
                batch.cancelled = True
                logger.info("Batch parsing cancelled", extra={
                    "files_parsed": len(batch.results)
                })
                break

            if not is_eml_file(filename):
                logger.debug("Skipping non-EML file in batch", extra={
                    "eml_filename": filename
                })
                batch.skipped.append(filename)
                continue

            batch.results.append((filename, self.parse_eml_file(data, filename=filename)))

        logger.info("Batch parsing complete", extra={
            "files_parsed": len(batch.results),
            "files_skipped": len(batch.skipped),
            "cancelled": batch.cancelled
        })
        return batch
