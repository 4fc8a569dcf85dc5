"""
Parse API router: pasted email text, EML uploads, validation and draft
reconciliation. Nothing is persisted.
"""

import logging

from fastapi import APIRouter, File, HTTPException, UploadFile

from evidence.config import settings
from evidence.models.email import EvidenceResponse, ParsedEmailData, ParseTextRequest
from evidence.models.receipt import ReconcileRequest, ReconcileResponse
from evidence.services.ingestion import EvidenceService, is_eml_file
from evidence.services.reconciler import Reconciler
from evidence.services.validator import status_message, validate_parsed_email

router = APIRouter(prefix="/parse", tags=["parse"])
logger = logging.getLogger(__name__)

evidence_service = EvidenceService()
reconciler = Reconciler()


@router.post("/text", response_model=EvidenceResponse)
async def parse_text(request: ParseTextRequest):
    """
    Parse a pasted order confirmation email.

    Returns:
        Parsed fields, validation and a status message
    """
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="Email text is empty")

    return evidence_service.parse_email_text(request.text).to_response()


@router.post("/eml", response_model=EvidenceResponse)
async def parse_eml(file: UploadFile = File(...)):
    """
    Parse an uploaded .eml file.

    Attachments are listed in the envelope summary; their bytes are not
    returned.
    """
    if not is_eml_file(file.filename, file.content_type):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type: {file.content_type}. Expected an .eml file"
        )

    file_data = await file.read()
    file_size_mb = len(file_data) / (1024 * 1024)

    if file_size_mb > settings.MAX_EML_SIZE_MB:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {file_size_mb:.2f}MB. Maximum: {settings.MAX_EML_SIZE_MB}MB"
        )

    logger.info("EML file uploaded", extra={
        "eml_filename": file.filename,
        "size_bytes": len(file_data)
    })
    return evidence_service.parse_eml_file(file_data, filename=file.filename).to_response()


@router.post("/validate")
async def validate(parsed: ParsedEmailData):
    """Score already-parsed (possibly hand-corrected) email data."""
    validation = validate_parsed_email(parsed)
    return {
        "validation": validation,
        "message": status_message(validation)
    }


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile(request: ReconcileRequest):
    """
    Merge user edits, OCR output and parsed email data into a draft.

    User edits are applied first; OCR then email fill the remaining unset
    fields.
    """
    draft = request.draft
    fields_written = {}

    try:
        for field, value in request.edits.items():
            reconciler.apply_user_edit(draft, field, value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if request.ocr is not None:
        fields_written['ocr'] = reconciler.populate_from_ocr(draft, request.ocr)
    if request.email is not None:
        fields_written['email'] = reconciler.populate_from_email(draft, request.email)

    logger.debug("Reconciled draft", extra={
        "fields_written": fields_written,
        "user_fields": sorted(draft.user_fields)
    })
    return ReconcileResponse(
        draft=draft,
        fields_written=fields_written,
        selected_total=reconciler.selected_total(draft),
    )
