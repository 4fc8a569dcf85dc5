"""
Value objects produced by the MIME decoder.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Attachment:
    """A decoded attachment; content holds raw bytes, not base64 text."""
    filename: str
    content_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class MimePart:
    """One leaf of a flattened multipart body, still transfer-encoded."""
    headers: Dict[str, str]
    body: str

    @property
    def content_type(self) -> str:
        return self.headers.get('content-type', '').lower()

    @property
    def transfer_encoding(self) -> Optional[str]:
        return self.headers.get('content-transfer-encoding')

    @property
    def disposition(self) -> str:
        return self.headers.get('content-disposition', '')


@dataclass(frozen=True)
class MimeEnvelope:
    """Decoded EML message. Built once per file, never mutated."""
    from_: Optional[str] = None
    to: Optional[str] = None
    subject: Optional[str] = None
    date: Optional[str] = None
    body: str = ''
    html: Optional[str] = None
    attachments: Tuple[Attachment, ...] = ()
    headers: Dict[str, str] = field(default_factory=dict, repr=False)
