import os
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

ENV_FILE_CANDIDATES = (".env", os.path.join("..", ".env"))


def load_environment():
    """Load the first .env found next to or above the working directory."""
    for candidate in ENV_FILE_CANDIDATES:
        if os.path.exists(candidate):
            load_dotenv(candidate)
            logger.info(f"✅ Loaded settings from {candidate}")
            return candidate
    logger.info("⚠️  No .env file, relying on process environment")
    return None

# Settings are read at import time, so the environment must be loaded first
load_environment()

from textile_erp.config import settings
from textile_erp.database import connect_databases, close_databases
from textile_erp.exceptions import ValidationFailure
from textile_erp.routers import attendance, invoices, payroll, statements


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 Textile ERP Services starting on {settings.host}:{settings.port}")
    await connect_databases()
    try:
        yield
    finally:
        await close_databases()
        logger.info("👋 Textile ERP Services stopped")

app = FastAPI(
    title="Textile ERP Services API",
    description="Delivery challan billing, invoicing and payroll calculations for textile processing units",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query parameters."""
    logger.warning(f"🔍 Invalid request {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"message": "Request could not be parsed", "detail": exc.errors()}
    )


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    """Business rule rejections: report each failing field with its message."""
    logger.info(f"Rejected {request.method} {request.url.path}: {exc.errors}")
    return JSONResponse(
        status_code=400,
        content={"message": str(exc), "errors": exc.errors}
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8080", settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (invoices, payroll, attendance, statements):
    app.include_router(module.router)


@app.get("/")
async def service_info():
    return {
        "service": "Textile ERP Services API",
        "version": app.version,
        "docs": "/docs",
        "storage": {
            "mongodb": "master data, challans, attendance, advances, payments",
            "postgresql": "invoices, payslips"
        }
    }


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "Textile ERP Services API"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("textile_erp.main:app", host=settings.host, port=settings.port, reload=True)
