"""
Alignment, review and formatting analysis routes.
"""

import structlog
from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile

from sowdiff.api.routes.documents import read_upload
from sowdiff.models.analysis import MatchStrategy
from sowdiff.models.api import (
    AlignRequest,
    AlignResponse,
    AnalyzeRequest,
    AnalyzeResponse,
    CompareResponse,
    FormattingRequest,
    FormattingResponse,
)
from sowdiff.services.comparison_service import ComparisonService
from sowdiff.services.document_loader import output_filename

logger = structlog.get_logger(__name__)
router = APIRouter()


def _comparison(request: Request) -> ComparisonService:
    return request.app.state.comparison


@router.post("/align", response_model=AlignResponse)
async def align_documents(request: Request, body: AlignRequest) -> AlignResponse:
    """
    Align draft sections onto template sections.
    """
    alignment = _comparison(request).align(body.template, body.draft, body.strategy)
    return AlignResponse(alignment=alignment, mapping=alignment.mapping)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_documents(request: Request, body: AnalyzeRequest) -> AnalyzeResponse:
    """
    Review every draft section and the document as a whole with the language model.
    """
    service = _comparison(request)
    if service.review is None:
        raise HTTPException(
            status_code=503,
            detail="AI review is not configured. Set ANTHROPIC_API_KEY, OPENAI_API_KEY or AZURE_OPENAI_API_KEY.",
        )

    alignment = service.align(body.template, body.draft, body.strategy)
    analysis = await service.analyze(body.template, body.draft, alignment)
    return AnalyzeResponse(alignment=alignment, analysis=analysis)


@router.post("/formatting", response_model=FormattingResponse)
async def analyze_formatting(request: Request, body: FormattingRequest) -> FormattingResponse:
    """
    Compare formatting of aligned sections and scan acronyms and jargon.
    """
    service = _comparison(request)
    alignment = service.align(body.template, body.draft, body.strategy)
    formatting = await service.analyze_formatting(body.template, body.draft, alignment)
    return FormattingResponse(alignment=alignment, formatting=formatting)


@router.post("/compare", response_model=CompareResponse)
async def compare_documents(
    request: Request,
    template: UploadFile = File(..., description="Reference template (.docx)"),
    draft: UploadFile = File(..., description="Draft under review (.docx)"),
    strategy: MatchStrategy = Form(default=MatchStrategy.LENIENT),
    include_ai: bool = Form(default=True),
) -> CompareResponse:
    """
    Upload a template and a draft and produce the full comparison report.
    """
    service = _comparison(request)
    template_data = await read_upload(request, template)
    draft_data = await read_upload(request, draft)

    template_doc, draft_doc = await service.parse_pair(
        template_data, template.filename, draft_data, draft.filename
    )
    report = await service.compare(template_doc, draft_doc, strategy, include_ai)

    logger.info(
        "comparison_served",
        template=template.filename,
        draft=draft.filename,
        sections=len(report.sections),
    )
    return CompareResponse(report=report, output_filename=output_filename(draft.filename))
