from __future__ import annotations

from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from discharger.api.access_key_routes import router as access_key_router
from discharger.api.block_routes import router as block_router
from discharger.api.discharge_routes import router as discharge_router
from discharger.api.document_routes import router as document_router
from discharger.api.hospital_routes import router as hospital_router
from discharger.api.patient_routes import router as patient_router
from discharger.api.patient_summary_routes import router as patient_summary_router
from discharger.api.snippet_routes import router as snippet_router
from discharger.api.translation_routes import router as translation_router
from discharger.api.user_routes import router as user_router
from discharger.config.settings import get_settings
from discharger.db.base import Base
from discharger.db.session import engine
from discharger.utils.logger import configure_logging, get_logger

# Configure logging early
configure_logging()
logger = get_logger(__name__)
settings = get_settings()

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("app.started", env=settings.app_env)
    yield
    await engine.dispose()


app = FastAPI(
    title="Discharger",
    description="""
    Discharge summary workspace for clinicians and patient-friendly summaries for patients.

    ## Features
    - Discharge summary generation with document citations
    - Structured patient summary blocks (medications, tasks, red flags, appointments)
    - Cached translations into patient languages
    - Access links shared by SMS or QR code
    - Clinical document library with signed downloads
    """,
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("request.invalid", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid input", "errors": jsonable_encoder(exc.errors())},
    )


app.include_router(block_router)            # /blocks - Block generation
app.include_router(discharge_router)        # /discharge - Discharge summary + highlighting
# Registered before the summary router so /locales is not read as a summary id
app.include_router(translation_router)      # /patient-summaries/{id}/translate...
app.include_router(access_key_router)       # /patient-summaries/{id}/access-keys...
app.include_router(patient_summary_router)  # /patient-summaries - Summary CRUD
app.include_router(document_router)         # /documents - Document library
app.include_router(patient_router)          # /patients - Patient management
app.include_router(snippet_router)          # /snippets - Text snippets
app.include_router(user_router)             # /users - Profile and preferences
app.include_router(hospital_router)         # /hospitals - Hospital directory


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "discharger", "version": VERSION}


@app.get("/", tags=["root"])
async def root():
    return {
        "service": "Discharger API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.api_host, port=settings.api_port, reload=settings.app_env == "development")
