"""
Document upload routes.
"""

import asyncio

import structlog
from fastapi import APIRouter, File, HTTPException, Query, Request, UploadFile

from sowdiff.models.api import UploadResponse
from sowdiff.models.document import ParsedDocument

logger = structlog.get_logger(__name__)
router = APIRouter()


async def read_upload(request: Request, file: UploadFile) -> bytes:
    """Read an uploaded DOCX, rejecting anything that is not one."""
    settings = request.app.state.settings

    # Validate file type
    if not file.filename or not file.filename.lower().endswith(".docx"):
        raise HTTPException(status_code=400, detail="Only .docx files are accepted")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail=f"{file.filename} is empty")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"{file.filename} exceeds the {settings.max_upload_bytes} byte upload limit",
        )
    return content


async def parse_upload(request: Request, file: UploadFile, include_formatting: bool = True) -> ParsedDocument:
    content = await read_upload(request, file)
    loader = request.app.state.loader
    return await asyncio.to_thread(loader.load_bytes, content, file.filename, include_formatting)


@router.post("/upload", response_model=UploadResponse)
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    include_formatting: bool = Query(default=True, description="Keep run and paragraph formatting"),
) -> UploadResponse:
    """
    Upload a DOCX document and split it into sections.
    """
    document = await parse_upload(request, file, include_formatting)

    logger.info(
        "document_uploaded",
        document_id=document.id,
        filename=document.filename,
        sections=len(document.sections),
    )
    return UploadResponse.from_document(document)
