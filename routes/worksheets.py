# routes/worksheets.py
from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from typing import Optional
import logging

from services.api_client import ApiClient
from services.session import SessionContext
from services.uploads import save_google_link, upload_worksheet
from services.worksheets import WorksheetLibrary
from .auth import get_api, require_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/worksheets", tags=["worksheets"])


class GoogleLinkRequest(BaseModel):
    url: str
    title: str
    description: Optional[str] = ""
    subject: Optional[str] = ""
    gradeLevel: Optional[str] = ""
    workbookId: Optional[str] = ""


@router.get("/")
async def list_worksheets(
    status: Optional[str] = None,
    session: SessionContext = Depends(require_session),
    api: ApiClient = Depends(get_api),
):
    params = {"status": status} if status else None
    return {"worksheets": await api.list_worksheets(params)}


@router.post("/upload")
async def upload(
    file: UploadFile = File(...),
    title: str = Form(""),
    description: str = Form(""),
    subject: str = Form(""),
    gradeLevel: str = Form(""),
    workbookId: str = Form(""),
    session: SessionContext = Depends(require_session),
    api: ApiClient = Depends(get_api),
):
    content = await file.read()
    worksheet = await upload_worksheet(
        api,
        file.filename or "worksheet",
        content,
        file.content_type or "application/octet-stream",
        title=title,
        description=description,
        subject=subject,
        gradeLevel=gradeLevel,
        workbookId=workbookId,
    )
    return {"message": "Worksheet uploaded", "worksheet": worksheet}


@router.post("/google-link")
async def google_link(
    request: GoogleLinkRequest, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)
):
    worksheet = await save_google_link(
        api,
        request.url,
        request.title,
        description=request.description,
        subject=request.subject,
        gradeLevel=request.gradeLevel,
        workbookId=request.workbookId,
    )
    return {"message": "Google link saved", "worksheet": worksheet}


@router.get("/{id}")
async def get_worksheet(id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    worksheet = await api.get_worksheet(id)
    return {"worksheet": worksheet, "status": worksheet.status, "canEdit": session.owns_or_admin(worksheet.teacherId)}


@router.get("/{id}/file")
async def get_worksheet_file(id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    return await WorksheetLibrary(api, session).get_file(id)


@router.delete("/{id}")
async def delete_worksheet(
    id: str, confirm: bool = False, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)
):
    deleted = await WorksheetLibrary(api, session).delete(id, confirmed=confirm)
    if not deleted:
        return {"deleted": False, "message": "Are you sure you want to delete this worksheet? Repeat with confirm=true."}
    return {"deleted": True, "message": "Worksheet deleted"}


@router.post("/{id}/publish")
async def toggle_publish(id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    worksheet = await WorksheetLibrary(api, session).toggle_publish(id)
    return {"worksheet": worksheet, "status": worksheet.status}
