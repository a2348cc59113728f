# scrutin/main.py

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import CREATE_TABLES_ON_STARTUP, LOG_FILE, LOG_LEVEL
from .core.logging_config import get_logger, setup_logging
from .db import create_tables
from .exceptions import (
    CorrectionNotFoundError,
    DuplicateCorrectionError,
    InvalidCorrectionError,
    StorageError,
    UnauthorizedError,
    ValidationRequiredError,
)
from .routers import api

setup_logging(LOG_LEVEL, LOG_FILE)
logger = get_logger(__name__)

if CREATE_TABLES_ON_STARTUP:
    create_tables()

app = FastAPI(title="Scrutin · Participation et redressements")


@app.exception_handler(UnauthorizedError)
async def unauthorized_exception_handler(request: Request, exc: UnauthorizedError):
    return JSONResponse({"detail": str(exc)}, status_code=403)


@app.exception_handler(ValidationRequiredError)
async def validation_required_exception_handler(request: Request, exc: ValidationRequiredError):
    """Renvoie le résultat de validation pour que l'interface demande confirmation"""
    return JSONResponse(
        {"detail": str(exc), "validation": exc.result.to_dict()},
        status_code=409,
    )


@app.exception_handler(InvalidCorrectionError)
async def invalid_correction_exception_handler(request: Request, exc: InvalidCorrectionError):
    return JSONResponse({"detail": str(exc)}, status_code=422)


@app.exception_handler(DuplicateCorrectionError)
async def duplicate_correction_exception_handler(request: Request, exc: DuplicateCorrectionError):
    return JSONResponse({"detail": str(exc)}, status_code=409)


@app.exception_handler(CorrectionNotFoundError)
async def correction_not_found_exception_handler(request: Request, exc: CorrectionNotFoundError):
    return JSONResponse({"detail": str(exc)}, status_code=404)


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc.original)
    return JSONResponse({"detail": str(exc)}, status_code=503)


app.include_router(api.router)


@app.get("/health")
def health():
    return {"status": "ok"}
