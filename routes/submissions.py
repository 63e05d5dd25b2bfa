# routes/submissions.py
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Any, Dict

from models.submission import GradeRequest
from services.api_client import ApiClient
from services.errors import PermissionDenied
from services.session import SessionContext
from services.submissions import grade_submission, list_for_student, list_for_worksheet, submit_worksheet
from .auth import get_api, require_session

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


class SubmitRequest(BaseModel):
    worksheetId: str
    answers: Dict[str, Any] = {}


@router.post("/")
async def submit(request: SubmitRequest, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    submission = await submit_worksheet(api, request.worksheetId, request.answers)
    return {"message": "Submission received", "submission": submission}


@router.get("/student/{student_id}")
async def for_student(student_id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    if session.role == "student" and student_id != session.user_id:
        raise PermissionDenied("Students can only see their own submissions.")
    return {"submissions": await list_for_student(api, student_id)}


@router.get("/worksheet/{worksheet_id}")
async def for_worksheet(worksheet_id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    return {"submissions": await list_for_worksheet(api, worksheet_id)}


@router.get("/{id}")
async def get_submission(id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    return {"submission": await api.get_submission(id)}


@router.put("/{id}/grade")
async def grade(id: str, request: GradeRequest, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    if session.role == "student":
        raise PermissionDenied("Only teachers can grade submissions.")
    submission = await grade_submission(api, id, request.score, request.feedback)
    return {"message": "Submission graded", "submission": submission}
