# services/worksheets.py
import logging
from typing import List, Optional

from models.worksheet import Worksheet
from services.errors import PermissionDenied

logger = logging.getLogger(__name__)


class WorksheetLibrary:
    """The teacher's list of worksheets with delete and publish toggling."""

    def __init__(self, api, session):
        self.api = api
        self.session = session
        self.worksheets: List[Worksheet] = []

    async def refresh(self, params: Optional[dict] = None) -> List[Worksheet]:
        self.worksheets = await self.api.list_worksheets(params)
        return self.worksheets

    async def get(self, worksheet_id: str) -> Worksheet:
        return await self.api.get_worksheet(worksheet_id)

    async def get_file(self, worksheet_id: str) -> dict:
        return await self.api.get_worksheet_file(worksheet_id)

    def _find(self, worksheet_id: str) -> Optional[Worksheet]:
        for w in self.worksheets:
            if w.id == worksheet_id:
                return w
        return None

    async def _require_editable(self, worksheet_id: str) -> Worksheet:
        worksheet = self._find(worksheet_id) or await self.get(worksheet_id)
        if not self.session.owns_or_admin(worksheet.teacherId):
            raise PermissionDenied("Only the worksheet's owner can change it.")
        return worksheet

    async def delete(self, worksheet_id: str, confirmed: bool = False) -> bool:
        await self._require_editable(worksheet_id)
        if not confirmed:
            return False
        await self.api.delete_worksheet(worksheet_id)
        self.worksheets = [w for w in self.worksheets if w.id != worksheet_id]
        logger.info(f"Worksheet deleted: {worksheet_id}")
        return True

    async def toggle_publish(self, worksheet_id: str) -> Worksheet:
        worksheet = await self._require_editable(worksheet_id)
        updated = await self.api.toggle_publish(worksheet_id)
        if updated is None:
            updated = worksheet.model_copy(update={"isPublished": not worksheet.isPublished})
        self.worksheets = [updated if w.id == worksheet_id else w for w in self.worksheets]
        logger.info(f"Worksheet {worksheet_id} is now {updated.status}")
        return updated

