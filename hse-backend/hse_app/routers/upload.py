from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile, status

from ..catalog import Catalog, Month, Project, get_catalog
from ..config import settings
from ..dependencies import resolve_month, resolve_project
from ..models import UploadResponse
from ..services.decoder import SUPPORTED_EXTENSIONS, DecodeError, decode, is_supported
from ..services.extractor import extract

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload/{project_id}/{month_id}", response_model=UploadResponse)
def upload_report(
    hsefile: Optional[UploadFile] = File(default=None),
    contract_id: Optional[str] = Form(default=None, alias="contractId"),
    project: Project = Depends(resolve_project),
    month: Month = Depends(resolve_month),
    catalog: Catalog = Depends(get_catalog),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> UploadResponse:
    if hsefile is None or not hsefile.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    contract_id = (contract_id or "").strip() or None
    if contract_id and not project.has_contract(contract_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contract not found")
    if not is_supported(hsefile.filename):
        allowed = ", ".join(SUPPORTED_EXTENSIONS)
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported file type. Allowed: {allowed}",
        )

    data = hsefile.file.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Upload too large")

    try:
        text = decode(data, hsefile.filename)
    except DecodeError as exc:
        logger.warning("decode failed filename=%s request_id=%s: %s", hsefile.filename, x_request_id, exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Failed to extract text") from exc

    extracted = extract(text, catalog.indicators)
    logger.info(
        "upload project_id=%s month_id=%s contract_id=%s filename=%s found=%s request_id=%s",
        project.id,
        month.id,
        contract_id,
        hsefile.filename,
        extracted.found_count(),
        x_request_id,
    )
    return UploadResponse(
        filename=hsefile.filename,
        contractId=contract_id,
        extracted=extracted,
        rawTextPreview=text[: settings.raw_text_preview_chars],
    )
