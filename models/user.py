# models/user.py
from pydantic import BaseModel, ConfigDict
from typing import Optional

ROLES = ("student", "teacher", "admin")


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
    firstName: Optional[str] = ""
    lastName: Optional[str] = ""
    role: str = "student"

    @property
    def display_name(self) -> str:
        name = f"{self.firstName or ''} {self.lastName or ''}".strip()
        return name or (self.email or self.id)


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    confirmPassword: str
    firstName: str = ""
    lastName: str = ""
    role: str = "student"
