# routes/auth.py
from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordBearer
from typing import Optional
import logging

from models.user import LoginRequest, RegisterRequest
from services.api_client import ApiClient
from services.errors import Unauthorized
from services.session import MemoryTokenStore, SessionContext, validate_registration

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_session(token: Optional[str] = Depends(oauth2_scheme)) -> SessionContext:
    """Per-request session built from the caller's bearer token."""
    return SessionContext(MemoryTokenStore(token)).init()


async def get_api(session: SessionContext = Depends(get_session)):
    api = ApiClient(session)
    try:
        yield api
    finally:
        await api.aclose()


async def require_session(
    session: SessionContext = Depends(get_session), api: ApiClient = Depends(get_api)
) -> SessionContext:
    if not session.is_authenticated:
        raise Unauthorized("Please log in to continue.")
    if session.user is None:
        # Token claims carried no identity, ask the backend
        session.set_user(await api.get_me())
    return session


@router.post("/login")
async def login(request: LoginRequest, session: SessionContext = Depends(get_session), api: ApiClient = Depends(get_api)):
    logger.info(f"Login attempt for email: {request.email}")
    result = await api.login(request.email.strip(), request.password)
    session.login(result["token"], result["user"])
    if session.user is None:
        session.set_user(await api.get_me())
    return {"token": session.token, "user": session.user}


@router.post("/register")
async def register(request: RegisterRequest, session: SessionContext = Depends(get_session), api: ApiClient = Depends(get_api)):
    body = validate_registration(request)
    result = await api.register(body)
    if result["token"]:
        session.login(result["token"], result["user"])
    logger.info(f"Registered new {body['role']}: {body['email']}")
    return {"token": session.token, "user": session.user or result["user"]}


@router.get("/me")
async def me(session: SessionContext = Depends(require_session)):
    return {"user": session.user}


@router.post("/logout")
async def logout(session: SessionContext = Depends(get_session)):
    session.teardown("logout")
    return {"message": "Logged out", "redirect": "/login"}
