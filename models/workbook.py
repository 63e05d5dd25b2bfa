# models/workbook.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional


class Workbook(BaseModel):
    """Ordering container for worksheets. Deleting it keeps the worksheets."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: Optional[str] = ""
    subject: Optional[str] = ""
    gradeLevel: Optional[str] = ""
    isPublished: bool = False
    teacherId: Optional[str] = None
    worksheetIds: List[str] = []
    createdAt: Optional[datetime] = None
