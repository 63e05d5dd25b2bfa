# models/group.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional, Set


class StudentSummary(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    firstName: Optional[str] = ""
    lastName: Optional[str] = ""
    email: Optional[str] = None


class Member(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    studentId: str
    groupId: Optional[str] = None
    student: Optional[StudentSummary] = None
    joinedAt: Optional[datetime] = None


class Group(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: Optional[str] = ""
    subject: Optional[str] = ""
    gradeLevel: Optional[str] = ""
    teacherId: Optional[str] = None
    joinCode: Optional[str] = None
    members: List[Member] = []
    createdAt: Optional[datetime] = None

    @property
    def member_ids(self) -> Set[str]:
        return {m.studentId for m in self.members}

    @property
    def member_count(self) -> int:
        return len(self.member_ids)


class GroupCreate(BaseModel):
    name: str
    description: Optional[str] = ""
    subject: Optional[str] = ""
    gradeLevel: Optional[str] = ""
