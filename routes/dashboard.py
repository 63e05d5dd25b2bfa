# routes/dashboard.py
from fastapi import APIRouter, Depends

from services.api_client import ApiClient
from services.dashboard import load_student_dashboard, load_teacher_dashboard
from services.errors import PermissionDenied
from services.session import SessionContext
from .auth import get_api, require_session

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/")
async def my_dashboard(session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    if session.role == "student":
        return await load_student_dashboard(api, session)
    return await load_teacher_dashboard(api, session)


@router.get("/teacher")
async def teacher_dashboard(session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    if session.role == "student":
        raise PermissionDenied("The teacher dashboard is for teachers.")
    return await load_teacher_dashboard(api, session)


@router.get("/student")
async def student_dashboard(session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    return await load_student_dashboard(api, session)
