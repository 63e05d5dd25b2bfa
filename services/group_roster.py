# services/group_roster.py
import logging
from typing import Callable, Iterable, List, Optional

from models.assignment import GroupAssignment
from models.group import Group
from models.user import User
from services.errors import InvalidCode, NotFound, PermissionDenied, ServerRejection, ValidationError

logger = logging.getLogger(__name__)

MIN_JOIN_CODE_LENGTH = 4


def normalize_join_code(code: str) -> str:
    return (code or "").strip().upper()


async def join_by_code(api, code: str) -> dict:
    """Student side: join a group with the code the teacher shared."""
    normalized = normalize_join_code(code)
    if len(normalized) < MIN_JOIN_CODE_LENGTH:
        raise InvalidCode("Please enter a valid code")
    try:
        result = await api.join_group(normalized)
    except (ServerRejection, NotFound) as e:
        if isinstance(e, ServerRejection) and e.status_code >= 500:
            raise
        logger.warning(f"Join code {normalized} rejected: {e.message}")
        raise InvalidCode(e.message)
    logger.info(f"Joined group with code {normalized}")
    return {"message": result.get("message") or "Successfully joined group!", "group": result.get("group")}


async def create_group(api, name: str, description: str = "", subject: str = "", gradeLevel: str = "") -> Optional[Group]:
    if not (name or "").strip():
        raise ValidationError([("name", "Group name is required")])
    body = {"name": name.strip(), "description": (description or "").strip()}
    if subject and subject.strip():
        body["subject"] = subject.strip()
    if gradeLevel and gradeLevel.strip():
        body["gradeLevel"] = gradeLevel.strip()
    group = await api.create_group(body)
    logger.info(f"Group created: {group.id if group else body['name']}")
    return group


def filter_worksheets(worksheets, query: str) -> list:
    """Case-insensitive search over title, subject and description."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(worksheets)
    return [
        w
        for w in worksheets
        if any(needle in (value or "").lower() for value in (w.title, w.subject, w.description))
    ]


class GroupRosterManager:
    """Authoritative client-side view of one group's membership.

    Every mutation goes to the backend and is followed by a full reload;
    the previously loaded roster is kept whenever a call fails.
    """

    def __init__(self, api, session, group_id: str):
        self.api = api
        self.session = session
        self.group_id = group_id
        self.group: Optional[Group] = None

    async def load_group(self, group_id: Optional[str] = None) -> Group:
        # No single-group endpoint is guaranteed, so scan the full list
        target = group_id or self.group_id
        groups = await self.api.list_groups()
        for group in groups:
            if group.id == target:
                self.group_id = target
                self.group = group
                return group
        raise NotFound("Group not found")

    def _require_loaded(self) -> Group:
        if self.group is None:
            raise NotFound("Group not loaded")
        return self.group

    @property
    def is_owner(self) -> bool:
        return self.group is not None and self.session.owns(self.group.teacherId)

    def _require_owner(self, action: str) -> Group:
        group = self._require_loaded()
        if not self.session.owns(group.teacherId):
            logger.warning(f"User {self.session.user_id} may not {action} in group {group.id}")
            raise PermissionDenied()
        return group

    @property
    def join_code(self) -> Optional[str]:
        return self.group.joinCode if self.group else None

    def copy_join_code(self, copy: Callable[[str], None]) -> str:
        code = self.join_code
        if not code:
            raise NotFound("This group has no join code")
        copy(code)
        return code

    async def list_available_students(self) -> List[User]:
        """Students not yet in the group. Recomputed on every call."""
        group = self._require_loaded()
        students = await self.api.available_students()
        member_ids = group.member_ids
        return [s for s in students if s.id not in member_ids]

    async def add_students(self, student_ids: Iterable[str]) -> Group:
        group = self._require_owner("add students")
        ids = sorted(set(student_ids))
        if not ids:
            raise ValidationError([("studentIds", "Select at least one student")])
        await self.api.add_group_students(group.id, ids)
        logger.info(f"Added {len(ids)} student(s) to group {group.id}")
        return await self.load_group()

    async def remove_student(self, student_id: str, confirmed: bool = False) -> Group:
        group = self._require_owner("remove students")
        if not confirmed:
            return group
        if student_id not in group.member_ids:
            logger.info(f"Student {student_id} is not a member of group {group.id}")
            return group
        await self.api.remove_group_student(group.id, student_id)
        logger.info(f"Removed student {student_id} from group {group.id}")
        return await self.load_group()

    async def delete_group(self, confirmed: bool = False) -> bool:
        group = self._require_owner("delete the group")
        if not confirmed:
            return False
        await self.api.delete_group(group.id)
        logger.info(f"Group deleted: {group.id}")
        self.group = None
        return True

    # --- Assignments ---

    async def list_assignments(self) -> List[GroupAssignment]:
        group = self._require_loaded()
        return await self.api.list_group_assignments(group.id)

    async def assign_worksheet(
        self, worksheet_id: str, due_date: Optional[str] = None, instructions: Optional[str] = None
    ) -> Optional[GroupAssignment]:
        group = self._require_owner("assign worksheets")
        if not worksheet_id:
            raise ValidationError([("worksheetId", "Please select a worksheet")])
        body = {
            "worksheetId": worksheet_id,
            "dueDate": due_date or None,
            "instructions": (instructions or "").strip() or None,
        }
        assignment = await self.api.assign_worksheet(group.id, body)
        logger.info(f"Worksheet {worksheet_id} assigned to group {group.id}")
        return assignment

    async def remove_assignment(self, assignment_id: str, confirmed: bool = False) -> bool:
        group = self._require_owner("remove assignments")
        if not confirmed:
            return False
        await self.api.remove_group_assignment(group.id, assignment_id)
        return True
