# routes/groups.py
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import List, Optional
import logging

from models.group import GroupCreate
from services.api_client import ApiClient
from services.group_roster import GroupRosterManager, create_group, filter_worksheets, join_by_code
from services.session import SessionContext
from .auth import get_api, require_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/groups", tags=["groups"])


class AddStudentsRequest(BaseModel):
    studentIds: List[str]


class JoinRequest(BaseModel):
    joinCode: str


class AssignRequest(BaseModel):
    worksheetId: str
    dueDate: Optional[str] = None
    instructions: Optional[str] = None


async def _loaded(group_id: str, api: ApiClient, session: SessionContext) -> GroupRosterManager:
    roster = GroupRosterManager(api, session, group_id)
    await roster.load_group()
    return roster


def _view(roster: GroupRosterManager) -> dict:
    return {
        "group": roster.group,
        "memberCount": roster.group.member_count if roster.group else 0,
        "isOwner": roster.is_owner,
    }


@router.get("/")
async def list_groups(session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    return {"groups": await api.list_groups()}


@router.post("/")
async def new_group(request: GroupCreate, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    group = await create_group(api, request.name, request.description, request.subject, request.gradeLevel)
    return {"message": "Group created", "group": group}


@router.post("/join")
async def join_group(request: JoinRequest, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    return await join_by_code(api, request.joinCode)


@router.get("/{id}")
async def get_group(id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    return _view(await _loaded(id, api, session))


@router.delete("/{id}")
async def delete_group(
    id: str, confirm: bool = False, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)
):
    roster = await _loaded(id, api, session)
    if not await roster.delete_group(confirmed=confirm):
        return {"deleted": False, "message": "Are you sure you want to delete this group? This cannot be undone."}
    return {"deleted": True, "message": "Group deleted"}


@router.get("/{id}/available-students")
async def available_students(id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    roster = await _loaded(id, api, session)
    return {"students": await roster.list_available_students()}


@router.post("/{id}/students")
async def add_students(
    id: str, request: AddStudentsRequest, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)
):
    roster = await _loaded(id, api, session)
    await roster.add_students(request.studentIds)
    return _view(roster)


@router.delete("/{id}/students/{student_id}")
async def remove_student(
    id: str,
    student_id: str,
    confirm: bool = False,
    session: SessionContext = Depends(require_session),
    api: ApiClient = Depends(get_api),
):
    roster = await _loaded(id, api, session)
    await roster.remove_student(student_id, confirmed=confirm)
    view = _view(roster)
    if not confirm:
        view["message"] = "Remove this student from the group? Repeat with confirm=true."
    return view


@router.get("/{id}/join-code")
async def join_code(id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    roster = await _loaded(id, api, session)
    return {"joinCode": roster.join_code}


@router.get("/{id}/assignments")
async def list_assignments(id: str, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)):
    roster = await _loaded(id, api, session)
    return {"assignments": await roster.list_assignments()}


@router.get("/{id}/assignable-worksheets")
async def assignable_worksheets(
    id: str, q: str = "", session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)
):
    await _loaded(id, api, session)
    return {"worksheets": filter_worksheets(await api.list_worksheets(), q)}


@router.post("/{id}/assignments")
async def assign_worksheet(
    id: str, request: AssignRequest, session: SessionContext = Depends(require_session), api: ApiClient = Depends(get_api)
):
    roster = await _loaded(id, api, session)
    assignment = await roster.assign_worksheet(request.worksheetId, request.dueDate, request.instructions)
    return {"message": "Worksheet assigned", "assignment": assignment}


@router.delete("/{id}/assignments/{assignment_id}")
async def remove_assignment(
    id: str,
    assignment_id: str,
    confirm: bool = False,
    session: SessionContext = Depends(require_session),
    api: ApiClient = Depends(get_api),
):
    roster = await _loaded(id, api, session)
    removed = await roster.remove_assignment(assignment_id, confirmed=confirm)
    return {"removed": removed}
