"""
Helpers for attachments recovered from EML files.

Image and PDF attachments are handed to the OCR upload path as regular
uploaded files.
"""

import io
import logging
from typing import Iterable, List

from starlette.datastructures import Headers, UploadFile

from evidence.models.envelope import Attachment

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = 'application/pdf'


def get_image_attachments(attachments: Iterable[Attachment]) -> List[Attachment]:
    return [a for a in attachments if a.content_type.lower().startswith('image/')]


def get_pdf_attachments(attachments: Iterable[Attachment]) -> List[Attachment]:
    return [a for a in attachments if a.content_type.lower() == PDF_CONTENT_TYPE]


def attachment_to_file(attachment: Attachment) -> UploadFile:
    """
    Materialize an attachment as an UploadFile over its decoded bytes.

    Args:
        attachment: Decoded EML attachment

    Returns:
        UploadFile carrying the attachment's filename and content type
    """
    upload = UploadFile(
        file=io.BytesIO(attachment.content),
        size=attachment.size,
        filename=attachment.filename,
        headers=Headers({'content-type': attachment.content_type}),
    )
    logger.debug("Converted attachment to upload file", extra={
        "attachment_filename": attachment.filename,
        "mime_type": attachment.content_type,
        "size_bytes": attachment.size
    })
    return upload
