# models/submission.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Any, Dict, Optional


class Submission(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    studentId: str
    worksheetId: str
    score: Optional[float] = Field(None, ge=0, le=100)
    status: Optional[str] = "submitted"
    answers: Dict[str, Any] = {}
    feedback: Optional[str] = None
    submittedAt: Optional[datetime] = None


class GradeRequest(BaseModel):
    score: float
    feedback: Optional[str] = None
