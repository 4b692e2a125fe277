# backend/orgdb/main.py
import logging
import os
from typing import List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .schemas import FieldError, ValidationErrorResponse

from .apps.accounts.router import router as accounts_router
from .apps.zones.router import router as zones_router
from .apps.groups.router import router as groups_router
from .apps.work.router import router as work_router

logger = logging.getLogger(__name__)


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
        "http://localhost:3000",
    ]


app = FastAPI(title="Structure Portal API", version="1.0.0")
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _field_name(loc) -> str:
    # Drop the "body" / "query" / "path" prefix FastAPI puts on every location.
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        FieldError(field=_field_name(err.get("loc", ())), message=err.get("msg", "Invalid value"))
        for err in exc.errors()
    ]
    logger.info(
        "request validation failed",
        extra={"path": request.url.path, "fields": [e.field for e in errors]},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ValidationErrorResponse(errors=errors).model_dump(),
    )


@app.get("/", tags=["health"])
def read_root():
    return {"status": "ok", "message": "Structure portal backend is running"}


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}


app.include_router(accounts_router)
app.include_router(zones_router)
app.include_router(groups_router)
app.include_router(work_router)
