"""
reports.py — Report Generation & Export Endpoints

POST /generate  multipart upload -> JSON report
POST /export    JSON report -> PDF / DOCX / JSON download

Nothing is written to disk: uploads are read into memory, the report is
built for this request only, and exports are streamed straight back.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ..config import settings
from ..core.pipeline import NoFilesError, generate_report
from ..core.report_generator import EXPORT_MEDIA_TYPES, RENDERERS, export_filename
from ..models.schemas import Report, Tone, UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_uploads(uploads: Optional[List[UploadFile]]) -> list[UploadedFile]:
    files = []
    for upload in uploads or []:
        # Browsers send an empty part when no file was picked.
        if not upload.filename:
            continue
        contents = await upload.read()

        size_mb = round(len(contents) / (1024 * 1024), 2)
        if size_mb > settings.MAX_FILE_SIZE_MB:
            raise HTTPException(
                status_code=400,
                detail=f"File '{upload.filename}' too large ({size_mb} MB). Maximum allowed: {settings.MAX_FILE_SIZE_MB} MB",
            )

        files.append(
            UploadedFile(data=contents, filename=upload.filename, media_type=upload.content_type or None)
        )
    return files


@router.post("/generate")
async def generate(
    files: Optional[List[UploadFile]] = File(None),
    title: str = Form(""),
    tone: Tone = Form("neutral"),
    web_search: bool = Form(False, alias="webSearch"),
):
    """
    Generate a structured report from uploaded documents.

    Form fields:
        - files: one or more documents (PDF, DOCX, TXT, MD, JSON, CSV, XLSX)
        - title: optional report title
        - tone: neutral | formal | casual
        - webSearch: "true" to enrich the report with web search results

    Returns the report as camelCase JSON, or 400 text/plain when no file
    was supplied.
    """
    uploaded = await _read_uploads(files)

    try:
        report = await generate_report(uploaded, title=title, tone=tone, web_search=web_search)
    except NoFilesError as e:
        return PlainTextResponse(str(e), status_code=400)

    return JSONResponse(report.to_json_dict())


@router.post("/export")
async def export_report(report: Report, format: str = Query("pdf")):
    """
    Render a previously generated report as a downloadable file.

    Query params:
        - format: "pdf", "docx" or "json"
    """
    fmt = format.lower().strip()
    if fmt not in RENDERERS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported format '{format}'. Use one of: {', '.join(RENDERERS)}.",
        )

    try:
        content = RENDERERS[fmt](report)
    except Exception as e:
        logger.exception("[Export] Rendering %s failed", fmt)
        raise HTTPException(status_code=500, detail=f"Report export failed: {str(e)}")

    filename = export_filename(report, fmt)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
