# main.py
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from routes import auth, dashboard, editor, groups, submissions, workbooks, worksheets
from services.errors import (
    EditorBusy,
    InvalidCode,
    NetworkFailure,
    NotFound,
    PermissionDenied,
    PortalError,
    RequestAborted,
    ServerRejection,
    Unauthorized,
    ValidationError,
)

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Campus Portal")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(worksheets.router)
app.include_router(editor.router)
app.include_router(groups.router)
app.include_router(submissions.router)
app.include_router(workbooks.router)
app.include_router(dashboard.router)


def _status_for(exc: PortalError) -> int:
    if isinstance(exc, ValidationError):
        return 422
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, Unauthorized):
        return 401
    if isinstance(exc, ServerRejection):
        return exc.status_code
    if isinstance(exc, NetworkFailure):
        return 502
    if isinstance(exc, InvalidCode):
        return 400
    if isinstance(exc, PermissionDenied):
        return 403
    if isinstance(exc, RequestAborted):
        return 499
    if isinstance(exc, EditorBusy):
        return 409
    return 500


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    status = _status_for(exc)
    body = {"detail": exc.message}
    if isinstance(exc, ValidationError):
        body["errors"] = exc.to_dict()
    if isinstance(exc, Unauthorized):
        body["redirect"] = "/login"
    if isinstance(exc, NetworkFailure):
        body["retryable"] = True
    logger.info(f"{request.method} {request.url.path} -> {status}: {exc.message}")
    return JSONResponse(status_code=status, content=body)


@app.get("/api/health")
async def health():
    return {"status": "ok", "backend": config.API_URL}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
