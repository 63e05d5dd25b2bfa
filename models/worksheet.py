# models/worksheet.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from models.question import Question, question_to_wire


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Worksheet(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    title: str = ""
    description: Optional[str] = ""
    subject: Optional[str] = ""
    gradeLevel: Optional[str] = ""
    difficulty: Optional[Difficulty] = Difficulty.BEGINNER
    estimatedTime: Optional[int] = Field(30, gt=0)  # minutes
    autoGrade: bool = True
    passScore: Optional[int] = Field(70, ge=0, le=100)
    isPublished: bool = False
    questions: List[Question] = []
    teacherId: Optional[str] = None
    workbookId: Optional[str] = None
    instructions: Optional[str] = None
    type: Optional[str] = None  # pdf, docx, image, google_doc, ...
    googleDocUrl: Optional[str] = None
    createdAt: Optional[datetime] = None

    @property
    def status(self) -> str:
        return "published" if self.isPublished else "draft"

    def to_payload(self) -> dict:
        """Body for POST/PUT /worksheets: metadata plus the full question list."""
        payload = self.model_dump(
            mode="json",
            exclude={"id", "questions", "teacherId", "createdAt", "isPublished"},
            exclude_none=True,
        )
        payload["questions"] = [question_to_wire(q) for q in self.questions]
        return payload


# Fields a teacher may set through the editor's metadata form
METADATA_FIELDS = (
    "title",
    "description",
    "subject",
    "gradeLevel",
    "difficulty",
    "estimatedTime",
    "autoGrade",
    "passScore",
    "workbookId",
    "instructions",
)
