from supabase import create_client, Client

from portfolio_sync.core.config import Settings
from portfolio_sync.core.exceptions import ConfigurationError
import logging

logger = logging.getLogger(__name__)


def create_supabase_client(settings: Settings) -> Client:
    """New Supabase client per invocation; nothing is cached at module level."""
    supabase_url = settings.supabase_url
    supabase_key = settings.supabase_key

    if not supabase_url or supabase_url.startswith("https://xxxxx"):
        raise ConfigurationError("SUPABASE_URL not configured", setting="SUPABASE_URL")
    if not supabase_key:
        raise ConfigurationError("SUPABASE_SERVICE_ROLE_KEY not configured", setting="SUPABASE_SERVICE_ROLE_KEY")

    client = create_client(supabase_url, supabase_key)
    logger.info("Supabase client initialized")
    return client
