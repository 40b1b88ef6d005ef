from contextlib import asynccontextmanager
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables as early as possible
load_dotenv()

from .config import settings
from .database import create_db_and_tables
from .dependencies import get_rate_limiter, sweep_expired_otp_sessions
from .exceptions import AuthError, auth_exception_handler, http_exception_handler, validation_exception_handler
from .infrastructure.cleanup.otp_sweeper import OTPSweeper
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, RateLimitMiddleware, SecurityMiddleware
from .routers import auth_router
from .utils import utcnow

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})...")
    create_db_and_tables()
    logger.info("Database initialized successfully")
    sweeper = OTPSweeper(sweep_expired_otp_sessions, settings.OTP_SWEEP_INTERVAL_SECONDS)
    sweeper.start()
    app.state.otp_sweeper = sweeper
    yield
    # Shutdown
    await sweeper.stop()
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

# Exception handlers
app.add_exception_handler(AuthError, auth_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Middleware
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)
app.add_middleware(RateLimitMiddleware, limiter=get_rate_limiter())

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router)


@app.get("/health")
def health_check():
    return {
        "success": True,
        "message": "Server is running",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": utcnow().isoformat(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        # The memory OTP backend and rate limiter are per process
        workers=1,
        log_level=settings.LOG_LEVEL.lower()
    )
