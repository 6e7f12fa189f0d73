"""
Router for document upload and extraction.

Handles:
- PDF upload, staging and field extraction
"""

import logging
import tempfile
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ..config import Settings, get_settings
from ..models import ExtractionResponse
from ..services.extraction_service import (
    ExtractionService,
    StagedUpload,
    get_extraction_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


def _stage_upload(content: bytes, upload_dir: Path) -> Path:
    """Write upload content to a temporary file in the upload directory."""
    upload_dir.mkdir(parents=True, exist_ok=True)
    staged = tempfile.NamedTemporaryFile(dir=upload_dir, suffix=".pdf", delete=False)
    path = Path(staged.name)
    try:
        with staged:
            staged.write(content)
    except OSError:
        # A partial write (disk full, quota) must not leave the file behind
        path.unlink(missing_ok=True)
        raise
    return path


@router.post("/upload", response_model=ExtractionResponse)
async def upload_document(
    file: Annotated[UploadFile | None, File(description="PDF file to extract")] = None,
    service: ExtractionService = Depends(get_extraction_service),
    settings: Settings = Depends(get_settings),
) -> ExtractionResponse:
    """
    Upload a PDF and extract its business fields.

    Uses AI Foundry when configured and falls back to local pattern matching
    otherwise, or when the AI call fails. The result is also saved as a JSON
    file in the output directory.
    """
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded",
        )

    try:
        if not file.filename or not file.filename.lower().endswith(".pdf"):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only PDF files are accepted",
            )

        content = await file.read()
        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Empty file provided",
            )

        if len(content) > settings.max_upload_size_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File exceeds the {settings.max_upload_size_mb} MB limit",
            )

        logger.info("Received PDF: %s (%d bytes)", file.filename, len(content))

        try:
            staged_path = _stage_upload(content, settings.upload_dir)
        except OSError as e:
            logger.error("Could not stage upload %s: %s", file.filename, e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Could not store uploaded file",
            )

        upload = StagedUpload(
            path=staged_path,
            original_name=file.filename,
            size=len(content),
        )

        # ExtractionError is mapped to an HTTP error by the app's exception handler
        return await service.extract_data(upload)

    finally:
        await file.close()
