from contextlib import asynccontextmanager
from pathlib import Path
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# .env.local wins over .env, as in local Next.js development
env_path = Path('.env.local')
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
else:
    load_dotenv()

from portfolio_sync.api.router import api_router
from portfolio_sync.core.config import settings
from portfolio_sync.core.error_handlers import register_error_handlers
from portfolio_sync.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(
        log_dir=Path(settings.LOG_DIR) if settings.LOG_DIR else None,
        level=settings.LOG_LEVEL,
        enable_json=settings.LOG_JSON,
    )
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} starting ({settings.ENVIRONMENT}, debug={settings.DEBUG})")
    yield
    logger.info(f"{settings.PROJECT_NAME} shutting down")


def _cors_origins() -> list:
    # Wildcard only for local development
    if settings.ENVIRONMENT == "development" and settings.DEBUG:
        return ["*"]
    return list(settings.ALLOWED_ORIGINS)


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Portfolio ingestion backend: Drive data rooms, tracker sheet, calendar and LLM summaries",
    version=settings.VERSION,
    lifespan=lifespan,
)
app.state.settings = settings
register_error_handlers(app)

origins = _cors_origins()
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=origins != ["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {
        "message": f"{settings.PROJECT_NAME} API",
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health_check():
    """Which integrations have credentials; no remote calls are made."""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "configured": {
            "google": bool(settings.GOOGLE_SERVICE_ACCOUNT),
            "drive_folder": bool(settings.GOOGLE_DRIVE_FOLDER_ID),
            "spreadsheet": bool(settings.SPREADSHEET_ID),
            "calendar": bool(settings.CALENDAR_ID),
            "database": bool(settings.supabase_url and settings.supabase_key),
            "summarizer": bool(settings.OPENAI_API_KEY or settings.ANTHROPIC_API_KEY),
        },
    }
