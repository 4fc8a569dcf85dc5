"""
MIME header and body codecs.

Decodes RFC 2047 encoded words in header values and the base64 /
quoted-printable content-transfer-encodings used by bodies and attachments.
Every decoder degrades to returning its input instead of raising.
"""

import base64
import binascii
import codecs
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

ENCODED_WORD_RE = re.compile(r'=\?([^?\s]+)\?([BbQq])\?([^?]*)\?=')
ADJACENT_WORDS_RE = re.compile(r'(\?=)\s+(=\?)')
SOFT_LINE_BREAK_RE = re.compile(rb'=\r?\n')
HEX_ESCAPE_RE = re.compile(rb'=([0-9A-Fa-f]{2})')
WHITESPACE_RE = re.compile(r'\s+')


def _resolve_charset(charset: Optional[str]) -> str:
    """Return a usable codec name, falling back to UTF-8."""
    if not charset:
        return 'utf-8'
    try:
        return codecs.lookup(charset.strip().strip('"\'')).name
    except LookupError:
        logger.debug("Unknown charset, using utf-8", extra={"charset": charset})
        return 'utf-8'


def decode_base64_bytes(data: str) -> bytes:
    """
    Decode base64 text that may contain line breaks or stray whitespace.

    Raises:
        binascii.Error: If the payload is not valid base64
    """
    cleaned = WHITESPACE_RE.sub('', data)
    # Some mailers drop trailing padding
    cleaned += '=' * (-len(cleaned) % 4)
    return base64.b64decode(cleaned, validate=True)


def decode_quoted_printable_bytes(data: str) -> bytes:
    """Collapse soft line breaks, then replace =XX escapes with raw bytes."""
    raw = data.encode('utf-8')
    raw = SOFT_LINE_BREAK_RE.sub(b'', raw)
    return HEX_ESCAPE_RE.sub(lambda m: bytes([int(m.group(1), 16)]), raw)


def decode_transfer_encoding(body: str, encoding: Optional[str]) -> bytes:
    """
    Decode a part body to bytes according to its Content-Transfer-Encoding.

    Args:
        body: Encoded body text
        encoding: Header value ("base64", "quoted-printable", "7bit", ...)

    Returns:
        Decoded bytes; unknown or absent encodings are passed through
    """
    enc = (encoding or '').strip().lower()

    if enc == 'base64':
        try:
            return decode_base64_bytes(body)
        except (binascii.Error, ValueError):
            logger.warning("Invalid base64 body, keeping raw content", extra={
                "length": len(body)
            })
            return body.encode('utf-8', errors='replace')

    if enc == 'quoted-printable':
        return decode_quoted_printable_bytes(body)

    return body.encode('utf-8', errors='replace')


def decode_body(body: str, encoding: Optional[str], charset: Optional[str] = None) -> str:
    """
    Decode a text part body to a string.

    Base64 payloads are decoded as UTF-8 (or the declared charset) so
    non-ASCII vendor names survive.
    """
    enc = (encoding or '').strip().lower()
    if enc not in ('base64', 'quoted-printable'):
        return body

    data = decode_transfer_encoding(body, enc)
    return data.decode(_resolve_charset(charset), errors='replace')


def _decode_encoded_word(match: re.Match) -> str:
    charset, encoding, text = match.groups()
    try:
        if encoding.upper() == 'B':
            data = decode_base64_bytes(text)
        else:
            data = decode_quoted_printable_bytes(text.replace('_', ' '))
        return data.decode(_resolve_charset(charset))
    except (binascii.Error, ValueError, UnicodeDecodeError):
        logger.debug("Could not decode encoded word", extra={"word": match.group(0)})
        return match.group(0)


def decode_header_value(value: Optional[str]) -> Optional[str]:
    """
    Decode RFC 2047 encoded words embedded in a header value.

    Args:
        value: Raw header value, e.g. "=?UTF-8?B?Q2Fmw6k=?= receipt"

    Returns:
        Decoded value, or None for an empty header

    Examples:
        >>> decode_header_value("=?UTF-8?Q?Caf=C3=A9_Luna?=")
        'Café Luna'
    """
    if not value:
        return None

    # Whitespace between adjacent encoded words is not significant
    value = ADJACENT_WORDS_RE.sub(r'\1\2', value)
    return ENCODED_WORD_RE.sub(_decode_encoded_word, value)
