"""
Completeness scoring for parsed email evidence.
"""

import logging

from evidence.config import settings
from evidence.models.email import ParsedEmailData, ValidationResult

logger = logging.getLogger(__name__)

# Field weights (sum to 100)
FIELD_WEIGHTS = {
    'vendor': 30,        # Needed for categorization
    'date': 25,
    'total': 30,         # Most critical field
    'order_number': 10,
    'items': 5,
}

# Fields reported as missing, in display order
REQUIRED_FIELDS = ('vendor', 'date', 'total')

PARSING_FAILED = 'parsing failed'


def _present(data: ParsedEmailData, field: str) -> bool:
    value = getattr(data, field)
    if field == 'total':
        return value is not None and value > 0
    return bool(value)


def validate_parsed_email(data: ParsedEmailData) -> ValidationResult:
    """
    Score how complete a parsed email is.

    Args:
        data: Parser output

    Returns:
        ValidationResult; valid when confidence reaches MIN_VALID_CONFIDENCE

    Examples:
        Vendor, date and total found, no order number or items: 85, valid.
        Only a total found: 30, invalid, missing ['vendor', 'date'].
    """
    confidence = sum(weight for field, weight in FIELD_WEIGHTS.items() if _present(data, field))
    missing = [field for field in REQUIRED_FIELDS if not _present(data, field)]

    result = ValidationResult(
        is_valid=confidence >= settings.MIN_VALID_CONFIDENCE,
        confidence=confidence,
        missing_fields=missing,
    )
    logger.debug("Validated parsed email", extra={
        "confidence": confidence,
        "missing_fields": missing
    })
    return result


def parsing_failed_result() -> ValidationResult:
    """Result reported when the extraction pipeline itself failed."""
    return ValidationResult(is_valid=False, confidence=0, missing_fields=[PARSING_FAILED])


def status_message(validation: ValidationResult) -> str:
    """Human readable summary shown next to the parsed fields."""
    if validation.is_valid:
        return f"Email parsed successfully! Confidence: {validation.confidence}%"
    message = f"Email parsed with {validation.confidence}% confidence."
    if validation.missing_fields:
        message += f" Missing: {', '.join(validation.missing_fields)}"
    return message
