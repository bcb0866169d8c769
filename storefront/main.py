import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import models so they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.appointment_access import admin_router as appointment_access_admin_router
from .domain.appointment_access import router as appointment_access_router
from .domain.checkout import router as checkout_router
from .domain.cms_webhook import router as cms_webhook_router
from .domain.contact import router as contact_router
from .domain.coupons import router as coupons_router
from .domain.pricing import public_router as pricing_public_router
from .domain.pricing import router as pricing_router
from .domain.recommendations import router as recommendations_router
from .domain.scheduling import router as scheduling_router
from .domain.subscriptions import admin_router as subscriptions_admin_router
from .domain.subscriptions import checkout_router as subscriptions_checkout_router
from .domain.subscriptions import router as subscriptions_router
from .domain.subscriptions import webhooks_router as stripe_webhooks_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Another worker may have won the race
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()  # Connection test
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - rate limiting falls back to in-memory counters: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Lily's Women's Health Storefront API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances that JSON can't encode
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ {request.method} {request.url.path} - Unhandled error: {exc}")
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(coupons_router, prefix="/api")
app.include_router(appointment_access_router, prefix="/api")
app.include_router(appointment_access_admin_router, prefix="/api")
app.include_router(recommendations_router, prefix="/api")
app.include_router(pricing_router, prefix="/api")
app.include_router(pricing_public_router, prefix="/api")
app.include_router(subscriptions_router, prefix="/api")
app.include_router(subscriptions_checkout_router, prefix="/api")
app.include_router(subscriptions_admin_router, prefix="/api")
app.include_router(checkout_router, prefix="/api")
app.include_router(stripe_webhooks_router, prefix="/api")
app.include_router(scheduling_router, prefix="/api")
app.include_router(contact_router, prefix="/api")
app.include_router(cms_webhook_router, prefix="/api")


@app.get("/")
def root():
    return {"message": "Lily's Women's Health Storefront API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
