from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from onboarding.errors import GateNotInitializedError, GateNotReachedError, StorageError, SubmissionNotFoundError

from .config import get_settings
from .db import Base, engine
from .logging_config import configure_logging
from .routes.partners import router as partners_router
from .routes.reports import router as reports_router
from .routes.submissions import router as submissions_router
from .routes.templates import router as templates_router

logger = logging.getLogger(__name__)

configure_logging(get_settings())

app = FastAPI(title="Partner Onboarding Backend", version="0.1.0")

# create tables (no migrations yet)
Base.metadata.create_all(bind=engine)

app.include_router(partners_router)
app.include_router(submissions_router)
app.include_router(templates_router)
app.include_router(reports_router)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=500, content={"detail": "Storage operation failed", "code": exc.code})


@app.exception_handler(GateNotInitializedError)
async def gate_not_initialized_handler(request: Request, exc: GateNotInitializedError):
    return JSONResponse(status_code=409, content={"detail": str(exc), "gateId": exc.gate_id})


@app.exception_handler(GateNotReachedError)
async def gate_not_reached_handler(request: Request, exc: GateNotReachedError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "gateId": exc.gate_id})


@app.exception_handler(SubmissionNotFoundError)
async def submission_not_found_handler(request: Request, exc: SubmissionNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Submission not found"})


@app.get("/health")
def health():
    return {"ok": True}
