from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
import logging

from portfolio_sync.abstractions import RecordStore
from portfolio_sync.core.config import Settings, get_settings
from portfolio_sync.core.dependencies import get_record_store, get_summarizer
from portfolio_sync.core.exceptions import ConfigurationError
from portfolio_sync.services.chat_service import answer_question
from portfolio_sync.services.summarizer import Summarizer

router = APIRouter()
logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    role: str = "user"
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    context: Optional[str] = None


@router.post("/chat")
async def chat(
    request: ChatRequest,
    settings: Settings = Depends(get_settings),
    store: Optional[RecordStore] = Depends(get_record_store),
    summarizer: Optional[Summarizer] = Depends(get_summarizer),
) -> Dict[str, Any]:
    """Answer a portfolio question from stored data only."""
    if summarizer is None:
        raise ConfigurationError("OPENAI_API_KEY not configured", setting="OPENAI_API_KEY")
    answer = await answer_question(
        [m.model_dump() for m in request.messages],
        store,
        summarizer,
        context=request.context,
        max_tokens=settings.CHAT_MAX_TOKENS,
    )
    return {"success": True, "answer": answer}
