import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from app.config import get_settings
from app.database import engine, Base
from app.log import setup_logging
from app.routers import auth, thumbnails
from app.services.storage import get_storage

settings = get_settings()
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    # Create database tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Ensure staging (and local storage) directories exist
    await get_storage().ensure_storage_exists()
    logger.info("%s started with %s storage", settings.app_name, settings.storage_backend)

    yield

    # Shutdown
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="""
    ## Thumbnail Generation API

    This API allows you to:

    1. **Register and log in** - the session cookie identifies you on later calls
    2. **Generate thumbnails** from a title, style, aspect ratio, color scheme and prompt

    ### How it works:

    1. **Prompt**: the title and options are turned into a text-to-image prompt.

    2. **Generation**: the prompt goes to a free text-to-image service. If it fails,
       the request is retried with increasing delays and finally falls back to
       stock/placeholder images so you always get a result.

    3. **Storage**: the image is uploaded to CDN-backed storage and the record is
       saved with its public URL.

    ### Styles:
    - "Bold & Graphic", "Tech/Futuristic", "Minimalist", "Photorealistic", "Illustrated"
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware: the session supplies the user identity ("userId")
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    max_age=settings.session_max_age,
    same_site="lax",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount static files for serving locally stored thumbnails
if settings.storage_backend == "local":
    storage_path = Path(settings.storage_path)
    storage_path.mkdir(parents=True, exist_ok=True)
    app.mount("/files", StaticFiles(directory=str(storage_path)), name="files")


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc) if settings.debug else "Internal server error",
            "type": type(exc).__name__,
        },
    )


# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(thumbnails.router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "register": "POST /api/v1/auth/register",
            "login": "POST /api/v1/auth/login",
            "generate_thumbnail": "POST /api/v1/thumbnails",
            "list_thumbnails": "GET /api/v1/thumbnails",
            "delete_thumbnail": "DELETE /api/v1/thumbnails/{thumbnail_id}",
        }
    }
