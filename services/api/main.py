"""
DocSign - Document e-signature backend API
FastAPI with pluggable metadata backends (JSON file store, SQLite) and a local blob store.

Run server:
uvicorn main:app --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import contextvars
import logging
import os
import time
import uuid

from core.blobs import LocalBlobStore
from core.errors import DocSignError
from settings import get_settings

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0"

# ============================================================================
# BACKEND CONFIGURATION
# ============================================================================
settings = get_settings()

STORAGE_BACKEND = settings.storage_backend.lower()

logger.info(f"🔧 Storage Backend: {STORAGE_BACKEND.upper()}")

# ============================================================================
# STORAGE ADAPTER INITIALIZATION
# ============================================================================

if STORAGE_BACKEND == "json":
    from adapters.json import JsonAdapter

    storage_adapter = JsonAdapter(data_dir=settings.data_dir)
    logger.info(f"✓ JSON document store at {settings.data_dir}")

elif STORAGE_BACKEND == "sqlite":
    from adapters.sqlite import SqliteAdapter

    storage_adapter = SqliteAdapter.from_url(settings.db_url)
    logger.info(f"✓ SQLite document store ({settings.db_url.split('://')[0]})")

else:
    raise ValueError(f"Unknown STORAGE_BACKEND: {STORAGE_BACKEND}")

blob_store = LocalBlobStore(root=settings.uploads_dir)

# ---- DI helpers (used by routers/*) ----
def get_storage_adapter():
    return storage_adapter

def get_blob_store():
    return blob_store

# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title="DocSign API",
    description="Upload PDFs, place signatures, download the signed result",
    version=APP_VERSION,
    docs_url="/docs-ui",
    redoc_url="/redoc"
)

# ========== Request Tracing Middleware ==========
@app.middleware("http")
async def request_tracing_middleware(request, call_next):
    """Add request_id and timing to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    started = time.time()

    response = await call_next(request)

    latency = time.time() - started
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({round(latency * 1000, 2)} ms) [{request_id}]"
    )

    response.headers["X-Request-ID"] = request_id
    return response


ALLOWED_ORIGINS = settings.get_origins_list()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DocSignError)
async def docsign_exception_handler(request, exc: DocSignError):
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__} on {request.method} {request.url.path}: "
            f"{exc.detail or exc.message} [{request_id_var.get()}]"
        )
    content = {"detail": exc.message}
    # Diagnostics stay server-side in production
    if exc.detail and not settings.is_production:
        content["error"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)} [{request_id_var.get()}]", exc_info=True)
    content = {"detail": "Internal server error"}
    if not settings.is_production:
        content["error"] = str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content
    )

# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "OK",
        "backend": STORAGE_BACKEND,
        "version": APP_VERSION,
        "timestamp": time.time(),
    }


from routers import documents as documents_router
app.include_router(documents_router.router)

from routers import signing as signing_router
app.include_router(signing_router.router)


@app.on_event("startup")
async def startup_event():
    logger.info("DocSign API starting up...")
    blob_store.ensure_storage_layout()
    logger.info(f"Storage Backend: {STORAGE_BACKEND.upper()}")
    logger.info(f"Blob store: {blob_store.root}")
    logger.info(f"Allowed origins: {ALLOWED_ORIGINS}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("DocSign API shutting down...")
    if STORAGE_BACKEND == "sqlite":
        storage_adapter.engine.dispose()

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port)
