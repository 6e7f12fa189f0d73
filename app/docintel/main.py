"""
FastAPI application for the document extraction service.

Provides endpoints for:
- Uploading a PDF and extracting its business fields and line items
- Health checks
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import Settings, get_settings
from .models import HealthResponse
from .routers import upload
from .services.extraction_service import ExtractionError, get_extraction_service
from .services.pdf_service import PDFConversionError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Document Extraction Service...")
    settings = get_settings()
    if settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    if settings.ai_configured:
        logger.info("AI Foundry API URL: %s", settings.aifoundry_api_url)
    else:
        logger.warning("AI Foundry not configured; documents will be processed locally")
    get_extraction_service()
    logger.info("Services initialized successfully")
    yield
    logger.info("Shutting down Document Extraction Service...")


# Create FastAPI application
app = FastAPI(
    title="Document Extraction API",
    description="Business field extraction from PDF documents using AI Foundry with local fallback",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",  # Vite development server
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


def _health(message: str, settings: Settings) -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=__version__,
        message=message,
        ai_configured=settings.ai_configured,
    )


@app.get("/", response_model=HealthResponse)
async def root(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """Service banner; doubles as a liveness probe."""
    return _health("Document Extraction API is running", settings)


@app.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """Report liveness and whether AI Foundry credentials are present."""
    return _health("Service is healthy", settings)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(upload.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request, exc: ExtractionError):
    """Handle extraction pipeline failures.

    Unreadable PDFs are the client's fault (422); anything else is ours (500).
    """
    if isinstance(exc.__cause__, PDFConversionError):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc)},
    )
