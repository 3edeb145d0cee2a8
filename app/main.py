from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from sqlalchemy import text
from app.config import settings
from app.database.connection import close_db, engine
from app.schemas.common import ErrorResponse, FieldError
from app.controllers.auth_controller import router as auth_router
from app.controllers.user_controller import router as user_router
from app.controllers.property_controller import router as property_router
from app.controllers.prospect_controller import router as prospect_router
from app.controllers.campaign_controller import router as campaign_router
from app.services.storage_service import ensure_upload_dirs, upload_root
import logging
import time

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all incoming requests"""
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        authorization = request.headers.get("authorization")
        if authorization and len(authorization) > 20:
            authorization = authorization[:20] + "..."

        logger.info(f"🌐 Request: {request.method} {request.url.path} from {client_ip}")
        if authorization:
            logger.debug(f"📍 Authorization: {authorization}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(f"✅ Response: {response.status_code} for {request.method} {request.url.path} ({process_time:.3f}s)")
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Test database connection on startup (non-blocking - don't fail startup)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful")
    except Exception as e:
        logger.warning(f"⚠️ Database connection failed on startup: {str(e)}")
        logger.warning("⚠️ App will continue, but database-dependent features may not work")

    yield

    try:
        await close_db()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database: {str(e)}")


app = FastAPI(
    title="Prospecting API",
    description="Property catalog, prospect CRM and WhatsApp campaigns for real estate agents",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = {"success": False}
    if isinstance(exc.detail, dict):
        body.update(exc.detail)
        body.setdefault("message", "Request failed")
    else:
        body["message"] = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        # Drop the "body" / "query" prefix from the location
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        errors.append(FieldError(field=".".join(loc), message=error.get("msg", "Invalid value")))
    body = ErrorResponse(message="Validation failed", errors=errors)
    return JSONResponse(status_code=400, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    body = ErrorResponse(message="Internal server error")
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


app.include_router(auth_router)
app.include_router(user_router)
app.include_router(property_router)
app.include_router(prospect_router)
app.include_router(campaign_router)

ensure_upload_dirs()
app.mount("/uploads", StaticFiles(directory=str(upload_root())), name="uploads")


@app.get("/")
async def root():
    return {"message": "Prospecting API", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}
