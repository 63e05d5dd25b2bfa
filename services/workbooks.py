# services/workbooks.py
import logging
from typing import List, Optional

from models.workbook import Workbook
from services.errors import PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

WORKBOOK_FIELDS = ("title", "description", "subject", "gradeLevel")


def _body(fields: dict) -> dict:
    body = {k: v.strip() if isinstance(v, str) else v for k, v in fields.items() if k in WORKBOOK_FIELDS}
    if "title" in body and not body["title"]:
        raise ValidationError([("title", "Title is required")])
    return body


async def list_workbooks(api, status: Optional[str] = None) -> List[Workbook]:
    params = {} if not status or status == "all" else {"status": status}
    return await api.list_workbooks(params)


async def create_workbook(api, **fields) -> Optional[Workbook]:
    body = _body(fields)
    if not body.get("title"):
        raise ValidationError([("title", "Title is required")])
    return await api.create_workbook(body)


class WorkbookManager:
    """One workbook's ordered worksheet list."""

    def __init__(self, api, session, workbook: Workbook):
        self.api = api
        self.session = session
        self.workbook = workbook

    def _require_owner(self) -> None:
        if not self.session.owns_or_admin(self.workbook.teacherId):
            raise PermissionDenied("Only the workbook's owner can change it.")

    async def reload(self) -> Workbook:
        self.workbook = await self.api.get_workbook(self.workbook.id)
        return self.workbook

    async def update(self, **fields) -> Workbook:
        self._require_owner()
        updated = await self.api.update_workbook(self.workbook.id, _body(fields))
        return updated or await self.reload()

    async def delete(self, confirmed: bool = False) -> bool:
        # Only the grouping goes away; the worksheets stay
        self._require_owner()
        if not confirmed:
            return False
        await self.api.delete_workbook(self.workbook.id)
        logger.info(f"Workbook deleted: {self.workbook.id}")
        return True

    async def add_worksheet(self, worksheet_id: str) -> Workbook:
        self._require_owner()
        if worksheet_id in self.workbook.worksheetIds:
            return self.workbook
        await self.api.add_workbook_worksheet(self.workbook.id, worksheet_id)
        return await self.reload()

    async def remove_worksheet(self, worksheet_id: str) -> Workbook:
        self._require_owner()
        if worksheet_id not in self.workbook.worksheetIds:
            return self.workbook
        await self.api.remove_workbook_worksheet(self.workbook.id, worksheet_id)
        return await self.reload()

    async def reorder(self, worksheet_ids: List[str]) -> Workbook:
        self._require_owner()
        if sorted(worksheet_ids) != sorted(self.workbook.worksheetIds) or len(set(worksheet_ids)) != len(worksheet_ids):
            raise ValidationError([("worksheetIds", "New order must contain exactly the workbook's worksheets")])
        await self.api.reorder_workbook(self.workbook.id, worksheet_ids)
        return await self.reload()
