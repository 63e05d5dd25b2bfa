# routes/editor.py
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Any, Dict, Optional
import logging

from services.api_client import ApiClient
from services.errors import PermissionDenied
from services.session import SessionContext
from services.worksheet_editor import DraftRegistry, EditorState, WorksheetEditor
from .auth import get_api, require_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/editor", tags=["editor"])

drafts = DraftRegistry()


class DraftCreate(BaseModel):
    worksheetId: Optional[str] = None


class QuestionUpdate(BaseModel):
    field: str
    value: Any = None


class OptionUpdate(BaseModel):
    value: str


def _view(draft_id: str, editor: WorksheetEditor) -> dict:
    return {
        "draftId": draft_id,
        "state": editor.state.value,
        "lastError": editor.last_error,
        "worksheet": editor.worksheet.model_dump(by_alias=True, mode="json"),
    }


@router.post("/drafts")
async def open_draft(
    request: DraftCreate, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)
):
    if request.worksheetId:
        worksheet = await api.get_worksheet(request.worksheetId)
        if not session.owns_or_admin(worksheet.teacherId):
            raise PermissionDenied("Only the worksheet's owner can edit it.")
        editor = WorksheetEditor.from_worksheet(worksheet)
    else:
        editor = WorksheetEditor()
    draft_id = drafts.open(session.user_id, editor)
    return _view(draft_id, editor)


@router.get("/drafts/{draft_id}")
async def get_draft(draft_id: str, session: SessionContext = Depends(require_session)):
    return _view(draft_id, drafts.get(draft_id, session.user_id))


@router.patch("/drafts/{draft_id}")
async def update_metadata(draft_id: str, fields: Dict[str, Any], session: SessionContext = Depends(require_session)):
    editor = drafts.get(draft_id, session.user_id)
    editor.set_metadata(**fields)
    return _view(draft_id, editor)


@router.delete("/drafts/{draft_id}")
async def discard_draft(draft_id: str, session: SessionContext = Depends(require_session)):
    drafts.discard(draft_id, session.user_id)
    return {"message": "Draft discarded"}


@router.post("/drafts/{draft_id}/questions")
async def add_question(draft_id: str, session: SessionContext = Depends(require_session)):
    editor = drafts.get(draft_id, session.user_id)
    question = editor.add_question()
    view = _view(draft_id, editor)
    view["questionId"] = question.id
    return view


@router.patch("/drafts/{draft_id}/questions/{question_id}")
async def update_question(
    draft_id: str, question_id: str, request: QuestionUpdate, session: SessionContext = Depends(require_session)
):
    editor = drafts.get(draft_id, session.user_id)
    editor.update_question(question_id, request.field, request.value)
    return _view(draft_id, editor)


@router.put("/drafts/{draft_id}/questions/{question_id}/options/{index}")
async def update_option(
    draft_id: str, question_id: str, index: int, request: OptionUpdate, session: SessionContext = Depends(require_session)
):
    editor = drafts.get(draft_id, session.user_id)
    editor.update_option(question_id, index, request.value)
    return _view(draft_id, editor)


@router.delete("/drafts/{draft_id}/questions/{question_id}")
async def remove_question(draft_id: str, question_id: str, session: SessionContext = Depends(require_session)):
    editor = drafts.get(draft_id, session.user_id)
    editor.remove_question(question_id)
    return _view(draft_id, editor)


@router.post("/drafts/{draft_id}/validate")
async def validate_draft(draft_id: str, session: SessionContext = Depends(require_session)):
    drafts.get(draft_id, session.user_id).validate()
    return {"valid": True}


@router.post("/drafts/{draft_id}/submit")
async def submit_draft(draft_id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    editor = drafts.get(draft_id, session.user_id)
    await editor.submit(api)
    view = _view(draft_id, editor)
    view["worksheetId"] = editor.worksheet_id
    if editor.state == EditorState.SAVED:
        if draft_id in drafts:
            drafts.discard(draft_id, session.user_id)
        view["draftDiscarded"] = True
        view["message"] = "Worksheet saved successfully!"
    else:
        view["draftDiscarded"] = False
        view["message"] = "Worksheet saved, but newer edits are not saved yet."
    return view
