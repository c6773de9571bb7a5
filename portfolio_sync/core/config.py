from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    PROJECT_NAME: str = "Portfolio Sync"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # Google service account (JSON blob, as exported from the console)
    GOOGLE_SERVICE_ACCOUNT: Optional[str] = None
    GOOGLE_DRIVE_FOLDER_ID: Optional[str] = None

    # Portfolio tracker spreadsheet
    SPREADSHEET_ID: Optional[str] = None
    SHEET_GID: Optional[int] = None
    SHEET_RANGE: str = "A1:Z200"

    # Calendar
    CALENDAR_ID: Optional[str] = None
    CALENDAR_LOOKAHEAD_DAYS: int = 90
    CALENDAR_MAX_RESULTS: int = 20
    CALENDAR_TIMEZONE: str = "Asia/Ho_Chi_Minh"

    # Database
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    SUPABASE_SERVICE_KEY: Optional[str] = None
    NEXT_PUBLIC_SUPABASE_URL: Optional[str] = None
    COMPANIES_TABLE: str = "portfolio_companies"

    # LLM providers
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    SUMMARIZER_MODEL: str = "gpt-4o-mini"
    FALLBACK_SUMMARIZER_MODEL: str = "claude-haiku-4-5"
    SUMMARIZER_MAX_TOKENS: int = 1200
    SUMMARIZER_TEMPERATURE: float = 0.2
    CHAT_MAX_TOKENS: int = 800

    # Traversal / reading budgets
    TRAVERSAL_MAX_DEPTH: int = 2
    TRAVERSAL_MAX_SUBFOLDERS: int = 4
    PRIORITY_ITEM_CAP: int = 5
    ROOT_ITEM_CAP: int = 5
    OTHER_ITEM_CAP: int = 3
    TOTAL_ITEM_CAP: int = 12
    READ_MAX_CHARS: int = 4000
    CONTEXT_MAX_CHARS: int = 48000

    # Invocation budget (serverless ceiling is 60s)
    SCAN_DEADLINE_SECONDS: float = 55.0
    MAX_CONCURRENT_FOLDERS: int = 4
    SYNC_PAGE_SIZE: int = 10

    # CORS
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:8000",
        ]
    )

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    LOG_JSON: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env

    @property
    def supabase_url(self) -> Optional[str]:
        return self.SUPABASE_URL or self.NEXT_PUBLIC_SUPABASE_URL

    @property
    def supabase_key(self) -> Optional[str]:
        return self.SUPABASE_SERVICE_ROLE_KEY or self.SUPABASE_SERVICE_KEY


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency; overridden in tests."""
    return settings
