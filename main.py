"""
FastAPI Application Entry Point
Kids Gift Box Catalog - Python Backend
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
import os
import asyncio
import logging
import json
import sys
import time
import uuid as _uuid
from typing import Callable

from routers import bulk_import, carousel, gift_boxes
from database import init_db, check_db_health
from services.errors import CatalogError
from settings import LOG_LEVEL, is_development


# ---- Logging setup (JSON on stdout) ----
class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "severity": record.levelname,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Include traceback if present
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(JsonFormatter())

root = logging.getLogger()
root.handlers = [handler]
root.setLevel(LOG_LEVEL)

logging.getLogger("uvicorn.access").setLevel(logging.INFO)
logging.getLogger("uvicorn.error").setLevel(logging.INFO)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)  # bump to INFO to see SQL

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Kids Gift Box Catalog API",
    description="Gift box catalog, homepage carousel and bulk import",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

cors_origins_raw = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5000")
cors_origins = [origin.strip() for origin in cors_origins_raw.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["http://localhost:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- Request/Response logging middleware ----
class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-Id") or str(_uuid.uuid4())
        start = time.time()

        request.state.request_id = request_id

        # Uploads are large; never log bodies
        logger.info(
            f"REQ {request.method} {request.url.path} "
            f"qs={request.url.query!s} ip={request.client.host if request.client else '-'} "
            f"rid={request_id}"
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"Uncaught exception in request pipeline rid={request_id}")
            raise

        dur_ms = int((time.time() - start) * 1000)
        logger.info(
            f"RES {request.method} {request.url.path} "
            f"status={response.status_code} durMs={dur_ms} rid={request_id}"
        )
        response.headers["X-Request-Id"] = request_id
        return response

app.add_middleware(RequestIDMiddleware)


@app.get("/")
async def root_index():
    return {"ok": True, "service": "kids-gift-box-catalog"}

@app.get("/healthz")
async def healthz():
    """Basic health check for load balancers."""
    return {"ok": True}


@app.get("/api/health")
async def api_health():
    """Health check including database status."""
    db_health = await check_db_health()
    overall_status = "healthy" if db_health["status"] == "healthy" else "degraded"
    return {
        "status": overall_status,
        "database": db_health,
        "timestamp": time.time(),
    }


# --- Error handlers ---
def _field_path(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    return ".".join(loc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    details = [
        {"field": _field_path(err), "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})

@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError):
    if exc.status_code >= 500:
        logger.error(f"Catalog error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    content = {"error": "Internal server error"}
    if is_development():
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)

# --- Routers ---
# bulk import first so /kidsgiftboxes/bulkimport/... never reaches /kidsgiftboxes/{id}
app.include_router(bulk_import.router, prefix="/api/v1", tags=["bulk-import"])
app.include_router(gift_boxes.router, prefix="/api/v1", tags=["gift-boxes"])
app.include_router(carousel.router, prefix="/api/v1", tags=["carousel"])

# --- Startup/shutdown ---
@app.on_event("startup")
async def startup():
    logger.info("Starting Kids Gift Box Catalog API...")
    if os.getenv("INIT_DB_ON_STARTUP", "true").lower() == "true":
        try:
            logger.info("Initializing database tables...")
            await asyncio.wait_for(init_db(), timeout=120)
            logger.info("Database initialized successfully")
        except asyncio.TimeoutError:
            logger.error("DB init timed out after 120s, continuing without init")
        except Exception as e:
            logger.error(f"DB init failed (continuing to serve): {e}", exc_info=True)
    else:
        logger.info("Skipping DB init on startup")

@app.on_event("shutdown")
async def shutdown():
    logger.info("Shutting down Kids Gift Box Catalog API...")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 8080)),
        reload=os.getenv("NODE_ENV") != "production"
    )
