"""
EML (RFC 822 / RFC 2045) decoder.

Recovers headers, plain and HTML bodies, and attachments from a raw email
without an email library. Structural anomalies degrade to a simpler reading
of the message (whole body as plain text) instead of raising.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple, Union

from evidence.config import settings
from evidence.models.envelope import Attachment, MimeEnvelope, MimePart
from evidence.utils.header_codec import decode_body, decode_header_value, decode_transfer_encoding

logger = logging.getLogger(__name__)

BOUNDARY_RE = re.compile(r'boundary=["\']?([^"\';\s]+)["\']?', re.IGNORECASE)
CHARSET_RE = re.compile(r'charset=["\']?([^"\';\s]+)["\']?', re.IGNORECASE)
FILENAME_RE = re.compile(r'filename\*?=["\']?([^"\';\r\n]+)["\']?', re.IGNORECASE)
NAME_RE = re.compile(r'\bname=["\']?([^"\';\r\n]+)["\']?', re.IGNORECASE)
FOLDED_LINE_RE = re.compile(r'\r?\n[ \t]+')


def split_header_body(content: str) -> Tuple[Optional[str], str]:
    """
    Split a message or part at its first blank line.

    Whichever of CRLF CRLF or LF LF occurs first is used.

    Returns:
        (header_block, body); header_block is None when there is no separator
    """
    crlf = content.find('\r\n\r\n')
    lf = content.find('\n\n')

    if crlf != -1 and (lf == -1 or crlf < lf):
        return content[:crlf], content[crlf + 4:]
    if lf != -1:
        return content[:lf], content[lf + 2:]
    return None, content


def parse_headers(block: str) -> Dict[str, str]:
    """
    Parse a header block into a lower-cased name -> value map.

    Continuation lines (leading space or tab) are unfolded into the previous
    header. The first occurrence of a repeated header wins.
    """
    headers: Dict[str, str] = {}
    for line in re.split(r'\r?\n', FOLDED_LINE_RE.sub(' ', block)):
        colon = line.find(':')
        if colon <= 0:
            continue
        name = line[:colon].strip().lower()
        headers.setdefault(name, line[colon + 1:].strip())
    return headers


def get_boundary(content_type: str) -> Optional[str]:
    match = BOUNDARY_RE.search(content_type or '')
    return match.group(1) if match else None


def get_charset(content_type: str) -> Optional[str]:
    match = CHARSET_RE.search(content_type or '')
    return match.group(1) if match else None


def media_type(content_type: str) -> str:
    """'image/PNG; name="a.png"' -> 'image/png'"""
    return (content_type or '').split(';', 1)[0].strip().lower()


class MimeDecoder:
    """Decoder for raw EML files."""

    def __init__(self, max_depth: Optional[int] = None):
        self.max_depth = max_depth if max_depth is not None else settings.MAX_MULTIPART_DEPTH

    def decode(self, raw: Union[bytes, str]) -> MimeEnvelope:
        """
        Decode a raw EML message.

        Args:
            raw: EML bytes or text

        Returns:
            Immutable MimeEnvelope
        """
        if isinstance(raw, (bytes, bytearray)):
            content = bytes(raw).decode('utf-8', errors='replace')
        else:
            content = raw or ''

        header_block, body_section = split_header_body(content)
        if header_block is None:
            logger.debug("No header/body separator, treating whole content as body")
            return MimeEnvelope(body=content)

        headers = parse_headers(header_block)
        content_type = headers.get('content-type', '')
        boundary = get_boundary(content_type)

        fields = {
            'from_': decode_header_value(headers.get('from')),
            'to': decode_header_value(headers.get('to')),
            'subject': decode_header_value(headers.get('subject')),
            'date': headers.get('date') or None,
            'headers': headers,
        }

        if boundary:
            parts = self.flatten_multipart(body_section, boundary)
            if parts:
                body, html, attachments = self._classify_parts(parts)
                return MimeEnvelope(body=body, html=html, attachments=tuple(attachments), **fields)

            logger.warning("Multipart body without usable parts, degrading to plain text", extra={
                "boundary": boundary,
                "body_length": len(body_section)
            })
            return MimeEnvelope(body=body_section, **fields)

        encoding = headers.get('content-transfer-encoding')
        decoded = decode_body(body_section, encoding, get_charset(content_type))
        if 'text/html' in content_type.lower():
            return MimeEnvelope(body=decoded, html=decoded, **fields)
        return MimeEnvelope(body=decoded, **fields)

    def flatten_multipart(self, body: str, boundary: str, depth: int = 0) -> List[MimePart]:
        """
        Split a multipart body into a flat list of leaf parts.

        Nested multipart containers are recursed into and their parts
        spliced in place. Containers deeper than max_depth are kept as opaque
        leaves.

        Args:
            body: Multipart body text
            boundary: Boundary parameter from the Content-Type header
            depth: Current nesting depth

        Returns:
            Leaf parts in document order; empty when the boundary never occurs
        """
        delimiter = f'--{boundary}'
        sections = body.split(delimiter)

        parts: List[MimePart] = []
        for section in sections[1:]:
            stripped = section.strip()
            # Closing sentinel (and the epilogue after it)
            if stripped == '' or stripped.startswith('--'):
                continue

            # Drop the rest of the delimiter line
            section = re.sub(r'^[ \t]*\r?\n', '', section, count=1)
            if section.startswith(('\r\n', '\n')):
                # No part headers: implicit text/plain
                part_headers_block, part_body = '', section
            else:
                part_headers_block, part_body = split_header_body(section)
            if part_headers_block is None:
                logger.debug("Skipping part without header/body separator", extra={
                    "boundary": boundary,
                    "depth": depth
                })
                continue

            part_headers = parse_headers(part_headers_block)
            part_body = part_body.strip('\r\n')

            nested = get_boundary(part_headers.get('content-type', ''))
            if nested:
                if depth + 1 < self.max_depth:
                    parts.extend(self.flatten_multipart(part_body, nested, depth + 1))
                    continue
                logger.warning("Multipart nesting too deep, keeping container as leaf", extra={
                    "depth": depth + 1,
                    "max_depth": self.max_depth
                })

            parts.append(MimePart(headers=part_headers, body=part_body))

        return parts

    def _classify_parts(self, parts: List[MimePart]) -> Tuple[str, Optional[str], List[Attachment]]:
        """Sort flattened parts into plain body, HTML body and attachments."""
        body = ''
        html: Optional[str] = None
        attachments: List[Attachment] = []

        for part in parts:
            content_type = part.content_type
            charset = get_charset(content_type)

            if 'attachment' in part.disposition.lower():
                attachments.append(self._to_attachment(part))
            elif 'text/html' in content_type:
                if html is None:
                    html = decode_body(part.body, part.transfer_encoding, charset)
            elif 'text/plain' in content_type or not content_type:
                # multipart/alternative repeats the body; keep the first
                if not body:
                    body = decode_body(part.body, part.transfer_encoding, charset)

        return body, html, attachments

    def _to_attachment(self, part: MimePart) -> Attachment:
        match = FILENAME_RE.search(part.disposition) or NAME_RE.search(part.headers.get('content-type', ''))
        filename = decode_header_value(match.group(1).strip()) if match else None

        attachment = Attachment(
            filename=filename or 'attachment',
            content_type=media_type(part.headers.get('content-type', '')) or 'application/octet-stream',
            content=decode_transfer_encoding(part.body, part.transfer_encoding),
        )
        logger.debug("Extracted attachment", extra={
            "attachment_filename": attachment.filename,
            "size_bytes": attachment.size,
            "mime_type": attachment.content_type
        })
        return attachment
