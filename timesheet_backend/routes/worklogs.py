from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from timesheet_backend.application import get_transform_service
from timesheet_backend.domain import ExportedDocument, ProcessedWorklog

router = APIRouter(prefix="/worklogs", tags=["worklogs"])


async def _read_text(upload: UploadFile) -> str:
    try:
        raw = await upload.read()
    finally:
        await upload.close()
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"{upload.filename} is not UTF-8 text") from exc


async def _process(worklog: UploadFile, areas: UploadFile | None) -> ProcessedWorklog:
    if not worklog.filename:
        raise HTTPException(status_code=400, detail="Uploaded file must have a filename")
    worklog_text = await _read_text(worklog)
    areas_text = await _read_text(areas) if areas is not None and areas.filename else None
    service = get_transform_service()
    return service.process(worklog_text, worklog.filename, areas_text)


def _download(document: ExportedDocument) -> Response:
    disposition = f"attachment; filename*=UTF-8''{quote(document.filename)}"
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": disposition},
    )


@router.post("/preview")
async def preview_worklog(
    worklog: UploadFile = File(...),
    areas: UploadFile | None = File(None),
    weekly: bool = Form(False),
) -> dict:
    """Parse the uploads and return the rows that would be exported."""
    processed = await _process(worklog, areas)
    rows = get_transform_service().rows_for_export(processed, weekly)
    return {
        "rows": [row.model_dump(mode="json") for row in rows],
        "log": processed.log,
        "work_areas": len(processed.work_areas or {}),
    }


@router.post("/export/xlsx")
async def export_xlsx(
    worklog: UploadFile = File(...),
    areas: UploadFile | None = File(None),
    weekly: bool = Form(False),
    include_legend: bool = Form(False),
) -> Response:
    processed = await _process(worklog, areas)
    document = get_transform_service().export_xlsx(processed, weekly=weekly, include_legend=include_legend)
    return _download(document)


@router.post("/export/docx")
async def export_docx(
    worklog: UploadFile = File(...),
    template: UploadFile = File(...),
    areas: UploadFile | None = File(None),
    weekly: bool = Form(False),
    include_legend: bool = Form(False),
) -> Response:
    processed = await _process(worklog, areas)
    try:
        template_bytes = await template.read()
    finally:
        await template.close()
    document = get_transform_service().export_docx(
        processed,
        template_bytes,
        weekly=weekly,
        include_legend=include_legend,
    )
    return _download(document)
