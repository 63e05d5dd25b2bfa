# services/session.py
import json
import logging
import os
from pathlib import Path
from typing import Callable, List, Optional

from jose import JWTError, jwt

from models.user import ROLES, User
from services.errors import ValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class MemoryTokenStore:
    """Keeps the token for the lifetime of one request or test."""

    def __init__(self, token: Optional[str] = None, user: Optional[dict] = None):
        self._data = {"token": token, "user": user} if token else None

    def load(self) -> Optional[dict]:
        return self._data

    def save(self, token: str, user: Optional[dict]) -> None:
        self._data = {"token": token, "user": user}

    def clear(self) -> None:
        self._data = None


class FileTokenStore:
    """Persists the token and user as JSON, like a browser's localStorage."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Optional[dict]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None
        if not isinstance(data, dict) or not data.get("token"):
            return None
        return data

    def save(self, token: str, user: Optional[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token, "user": user}), encoding="utf-8")
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            pass

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


def identity_from_token(token: str) -> Optional[User]:
    """Read id/role from the token's claims. The backend owns verification."""
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        logger.warning("Stored token is not a readable JWT")
        return None
    user_id = claims.get("id") or claims.get("sub")
    if not user_id:
        return None
    return User(id=str(user_id), role=claims.get("role") or "student", email=claims.get("email"))


class SessionContext:
    """Current identity and bearer token, injected into every view.

    init() reads the persisted token, teardown() clears it. Teardown runs on
    explicit logout and whenever the backend answers 401.
    """

    def __init__(self, store=None):
        self.store = store if store is not None else MemoryTokenStore()
        self.token: Optional[str] = None
        self.user: Optional[User] = None
        self._teardown_listeners: List[Callable[[str], None]] = []

    def init(self) -> "SessionContext":
        data = self.store.load()
        if not data:
            self.token, self.user = None, None
            return self
        self.token = data.get("token")
        stored_user = data.get("user")
        if stored_user:
            self.user = User.model_validate(stored_user)
        elif self.token:
            self.user = identity_from_token(self.token)
        return self

    def login(self, token: str, user: Optional[dict] = None) -> None:
        self.token = token
        self.user = User.model_validate(user) if user else identity_from_token(token)
        self.store.save(token, self.user.model_dump() if self.user else None)
        logger.info(f"Session started for user {self.user_id}")

    def set_user(self, user: User) -> None:
        self.user = user
        if self.token:
            self.store.save(self.token, user.model_dump())

    def teardown(self, reason: str = "logout") -> None:
        had_session = self.token is not None
        self.token = None
        self.user = None
        self.store.clear()
        if had_session:
            logger.info(f"Session torn down ({reason})")
        for listener in list(self._teardown_listeners):
            listener(reason)

    def on_teardown(self, listener: Callable[[str], None]) -> None:
        self._teardown_listeners.append(listener)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    @property
    def role(self) -> Optional[str]:
        return self.user.role if self.user else None

    def owns(self, teacher_id: Optional[str]) -> bool:
        return self.user_id is not None and teacher_id is not None and self.user_id == teacher_id

    def owns_or_admin(self, teacher_id: Optional[str]) -> bool:
        return self.owns(teacher_id) or self.role == "admin"


def validate_registration(form) -> dict:
    """Check a RegisterRequest and return the body for POST /auth/register."""
    errors = []
    if not form.email.strip():
        errors.append(("email", "Email is required"))
    if form.password != form.confirmPassword:
        errors.append(("confirmPassword", "Passwords do not match"))
    if len(form.password) < MIN_PASSWORD_LENGTH:
        errors.append(("password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters"))
    if form.role not in ROLES or form.role == "admin":
        errors.append(("role", "Role must be student or teacher"))
    if errors:
        raise ValidationError(errors)
    return {
        "email": form.email.strip(),
        "password": form.password,
        "firstName": form.firstName.strip(),
        "lastName": form.lastName.strip(),
        "role": form.role,
    }
