from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import os
import uuid
import time
import tempfile
from logging_config import setup_logging
from config import LOG_DIR, config

# Initialize logging system with environment-aware defaults
log_dir = str(LOG_DIR)
try:
    logger = setup_logging(log_dir=log_dir, log_level=config.LOG_LEVEL)
except (PermissionError, OSError) as e:
    # Fallback to temp directory for testing
    log_dir = tempfile.mkdtemp()
    logger = setup_logging(log_dir=log_dir, log_level=config.LOG_LEVEL)
    logger.warning(
        f"Failed to create log directory at {LOG_DIR}, using temporary directory: {log_dir}",
        extra={"original_error": str(e)}
    )

from services.gemini_service import MissingApiKeyError
from services.journal_service import get_journal


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the shot journal once on startup."""
    journal = get_journal()
    logger.info("Espresso journal ready", extra={"shot_count": len(journal)})
    yield
    logger.info("Espresso journal shutting down")


app = FastAPI(title="Espresso Journal", lifespan=lifespan)

# Import route modules
from api.routes import coffee, session, shots, system, timer


# Middleware for request logging and tracking
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Tag each request with an id and log its start, outcome and duration."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    context = {
        "request_id": request_id,
        "endpoint": request.url.path,
        "method": request.method,
        "client_ip": request.client.host if request.client else "unknown",
    }
    started = time.perf_counter()

    logger.info(f"Incoming request: {request.method} {request.url.path}", extra=context)

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"Request failed: {request.method} {request.url.path} - {str(e)}",
            exc_info=True,
            extra={**context, "duration_ms": _elapsed_ms(started), "error_type": type(e).__name__}
        )
        raise

    logger.info(
        f"Request completed: {request.method} {request.url.path} - {response.status_code}",
        extra={**context, "status_code": response.status_code, "duration_ms": _elapsed_ms(started)}
    )
    response.headers["X-Request-ID"] = request_id
    return response


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


@app.exception_handler(MissingApiKeyError)
async def missing_api_key_handler(request: Request, exc: MissingApiKeyError):
    """Tell the client to run the key setup instead of failing silently."""
    return JSONResponse(
        status_code=428,
        content={"detail": {
            "status": "error",
            "error": "missing_api_key",
            "message": str(exc),
            "setup_endpoint": "/api/settings",
        }}
    )


# Configure CORS middleware to allow web app interactions
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(shots.router)
app.include_router(coffee.router)
app.include_router(session.router)
app.include_router(timer.router)
app.include_router(system.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "3550")))
