# models/assignment.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class WorksheetSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    subject: Optional[str] = ""


class GroupAssignment(BaseModel):
    """A worksheet assigned to every member of a group."""

    model_config = ConfigDict(extra="ignore")

    id: str
    groupId: Optional[str] = None
    worksheetId: str
    dueDate: Optional[str] = None  # ISO date as sent by the backend
    instructions: Optional[str] = None
    worksheet: Optional[WorksheetSummary] = None
    createdAt: Optional[datetime] = None
