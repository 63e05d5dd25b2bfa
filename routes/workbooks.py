# routes/workbooks.py
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List, Optional

from services.api_client import ApiClient
from services.session import SessionContext
from services.workbooks import WorkbookManager, create_workbook, list_workbooks
from .auth import get_api, require_session

router = APIRouter(prefix="/api/workbooks", tags=["workbooks"])


class WorkbookRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    subject: Optional[str] = None
    gradeLevel: Optional[str] = None


class WorksheetRef(BaseModel):
    worksheetId: str


class ReorderRequest(BaseModel):
    worksheetIds: List[str]


async def _manager(id: str, api: ApiClient, session: SessionContext) -> WorkbookManager:
    return WorkbookManager(api, session, await api.get_workbook(id))


@router.get("/")
async def list_all(status: Optional[str] = None, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    return {"workbooks": await list_workbooks(api, status)}


@router.post("/")
async def create(request: WorkbookRequest, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    workbook = await create_workbook(api, **request.model_dump(exclude_none=True))
    return {"message": "Workbook created", "workbook": workbook}


@router.get("/{id}")
async def get_one(id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    return {"workbook": await api.get_workbook(id)}


@router.put("/{id}")
async def update(id: str, request: WorkbookRequest, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    manager = await _manager(id, api, session)
    return {"workbook": await manager.update(**request.model_dump(exclude_none=True))}


@router.delete("/{id}")
async def delete(id: str, confirm: bool = False, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    manager = await _manager(id, api, session)
    deleted = await manager.delete(confirmed=confirm)
    if not deleted:
        return {"deleted": False, "message": "This will NOT delete the worksheets, only the organization. Repeat with confirm=true."}
    return {"deleted": True}


@router.post("/{id}/worksheets")
async def add_worksheet(id: str, request: WorksheetRef, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    manager = await _manager(id, api, session)
    return {"workbook": await manager.add_worksheet(request.worksheetId)}


@router.delete("/{id}/worksheets/{worksheet_id}")
async def remove_worksheet(id: str, worksheet_id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    manager = await _manager(id, api, session)
    return {"workbook": await manager.remove_worksheet(worksheet_id)}


@router.put("/{id}/reorder")
async def reorder(id: str, request: ReorderRequest, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    manager = await _manager(id, api, session)
    return {"workbook": await manager.reorder(request.worksheetIds)}
