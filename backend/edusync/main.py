"""FastAPI application entrypoint and HTTP controllers.

This module wires the entity routers, the login check and the file
upload endpoints. Controllers are intentionally thin: they accept
requests, delegate to repositories or services, and return JSON.

Endpoints implemented:
- GET/POST /api/{UserModels,CourseModels,AssessmentModels,ResultModels}
- GET/PUT/DELETE /api/{...}/{id}
- POST /api/UserModels/login
- POST /api/FileUpload
- GET /api/FileUpload/diagnostics
- GET /api/FileUpload/test-connection
- POST /api/FileUpload/test-upload
- GET /health
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import json
import logging
import os
import time
import uuid

from fastapi import FastAPI, Depends, UploadFile, File, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session

from . import repositories, services
from .config import settings
from .crud import build_crud_router
from .database import create_db_and_tables, get_session
from .errors import MisconfiguredStore, PayloadTooLarge, UploadError
from .schemas import AssessmentDTO, CourseDTO, LoginIn, ResultDTO, UserDTO
from .storage import ObjectStoreGateway
from .utils.upload_validation import measure_stream

logger = logging.getLogger("edusync.api")
if not logger.handlers:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

UPLOAD_PATH = "/api/FileUpload"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # refuse to start without a usable object store configuration
    try:
        app.state.gateway = ObjectStoreGateway.from_settings(settings)
    except MisconfiguredStore:
        logger.critical("object store is not configured; refusing to start")
        raise
    yield


app = FastAPI(title="EduSync API", lifespan=lifespan)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
elif settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith(UPLOAD_PATH):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    """Render upload failures as `{success, error, errorType}` bodies."""
    if exc.status_code >= 500:
        logger.error(
            "upload_failed %s",
            json.dumps(
                {
                    "request_id": getattr(request.state, "request_id", ""),
                    "path": request.url.path,
                    "error_type": exc.error_type,
                    "provider_status": getattr(exc, "provider_status", None),
                    "provider_error_code": getattr(exc, "provider_error_code", None),
                },
                ensure_ascii=True,
            ),
            exc_info=exc,
        )
    else:
        logger.warning("upload rejected: %s (%s)", exc, exc.error_type)
    body = {
        "success": False,
        "error": str(exc),
        "errorType": exc.error_type,
        "timestamp": _now_iso(),
    }
    if isinstance(exc, PayloadTooLarge):
        body["fileSize"] = exc.size
        body["maxSize"] = exc.max_size
    return JSONResponse(status_code=exc.status_code, content=body)


def get_gateway(request: Request) -> ObjectStoreGateway:
    """Return the gateway built at startup."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise MisconfiguredStore("Object store gateway is not initialised")
    return gateway


def get_upload_service(gateway: ObjectStoreGateway = Depends(get_gateway)) -> services.UploadService:
    return services.UploadService(gateway, naming=settings.UPLOAD_NAMING)


def list_courses(
    instructor_id: Optional[uuid.UUID] = Query(default=None, alias="instructorId"),
    db: Session = Depends(get_session),
):
    """List courses, optionally only those taught by `instructorId`."""
    courses = repositories.CourseRepository(db).list_by_instructor(instructor_id)
    return [CourseDTO.model_validate(c) for c in courses]


@app.post("/api/UserModels/login", response_model=UserDTO)
def login(payload: LoginIn, db: Session = Depends(get_session)):
    """Check an email/secret pair and return the user record.

    The stored value is a salted hash, so the supplied secret is verified
    rather than compared. Unknown email and wrong secret both answer 401
    with the same message.
    """
    if not (payload.email or "").strip() or not (payload.password_hash or "").strip():
        raise HTTPException(status_code=400, detail="Email and password are required.")
    user = services.AuthService(db).authenticate(payload.email, payload.password_hash)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    return UserDTO.model_validate(user)


app.include_router(build_crud_router("UserModels", repositories.UserRepository, UserDTO))
app.include_router(build_crud_router("CourseModels", repositories.CourseRepository, CourseDTO, list_route=list_courses))
app.include_router(build_crud_router("AssessmentModels", repositories.AssessmentRepository, AssessmentDTO))
app.include_router(build_crud_router("ResultModels", repositories.ResultRepository, ResultDTO))


@app.post(UPLOAD_PATH)
def upload_file(
    file: Optional[UploadFile] = File(default=None),
    uploads: services.UploadService = Depends(get_upload_service),
):
    """Upload one multipart `file` to the object store.

    Returns the public URL of the stored object along with the echoed
    file name, size and resolved content type.
    """
    if file is None:
        result = uploads.upload(None, None, 0)
    else:
        length = measure_stream(file.file)
        logger.info("upload received: %s (%d bytes, client type %s)", file.filename, length, file.content_type)
        result = uploads.upload(file.file, file.filename, length)
    return {
        "success": True,
        "url": result.url,
        "fileName": result.file_name,
        "fileSize": result.file_size,
        "contentType": result.content_type,
        "timestamp": _now_iso(),
        "message": "File uploaded successfully",
    }


@app.get(f"{UPLOAD_PATH}/diagnostics")
def upload_diagnostics(gateway: ObjectStoreGateway = Depends(get_gateway)):
    """Report store configuration and state for troubleshooting."""
    configuration = {
        "endpointConfigured": bool(settings.STORE_ENDPOINT),
        "credentialConfigured": bool(settings.STORE_ACCESS_KEY and settings.STORE_SECRET_KEY),
        "containerConfigured": bool(settings.STORE_CONTAINER),
        "containerName": settings.STORE_CONTAINER,
        "secure": settings.STORE_SECURE,
    }
    return {
        "configuration": configuration,
        "storeDiagnostics": gateway.diagnostics(),
        "timestamp": _now_iso(),
    }


@app.get(f"{UPLOAD_PATH}/test-connection")
def upload_test_connection(gateway: ObjectStoreGateway = Depends(get_gateway)):
    """Run the store self check (write, verify and delete a probe object)."""
    connected = gateway.test_connectivity()
    return {
        "connected": connected,
        "timestamp": _now_iso(),
        "message": "Connection successful" if connected else "Connection failed - check logs for details",
    }


@app.post(f"{UPLOAD_PATH}/test-upload")
def upload_test_file(uploads: services.UploadService = Depends(get_upload_service)):
    """Upload a generated text file through the normal upload path."""
    result, content = uploads.upload_test_file()
    return {
        "success": True,
        "url": result.url,
        "fileName": result.file_name,
        "content": content,
        "timestamp": _now_iso(),
        "message": "Test file uploaded successfully",
    }


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
