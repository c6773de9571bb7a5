from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from portfolio_sync.core.exceptions import ConfigurationError, SummarizerError
from portfolio_sync.services.summarizer import ModelRouterSummarizer


def _openai_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _anthropic_response(text):
    return SimpleNamespace(content=[SimpleNamespace(text=text)])


def _summarizer(openai_result=None, anthropic_result=None, openai_error=None, anthropic_error=None):
    summarizer = ModelRouterSummarizer("sk-openai", "sk-anthropic")
    summarizer.openai_client = MagicMock()
    summarizer.openai_client.chat.completions.create = AsyncMock(
        return_value=openai_result, side_effect=openai_error,
    )
    summarizer.anthropic_client = MagicMock()
    summarizer.anthropic_client.messages.create = AsyncMock(
        return_value=anthropic_result, side_effect=anthropic_error,
    )
    return summarizer


def test_requires_at_least_one_key():
    with pytest.raises(ConfigurationError):
        ModelRouterSummarizer(None, None)


def test_provider_order():
    summarizer = ModelRouterSummarizer("sk-openai", "sk-anthropic", model="gpt-4o", fallback_model="claude-x")
    assert [(m.provider, m.model) for m in summarizer.models] == [("openai", "gpt-4o"), ("anthropic", "claude-x")]
    assert [m.provider for m in ModelRouterSummarizer(None, "sk-anthropic").models] == ["anthropic"]


@pytest.mark.asyncio
async def test_openai_answer_is_returned():
    summarizer = _summarizer(openai_result=_openai_response('{"sector": "FinTech"}'))

    text = await summarizer.complete("prompt", 500, system_prompt="be brief")

    assert text == '{"sector": "FinTech"}'
    kwargs = summarizer.openai_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_completion_tokens"] == 500
    assert kwargs["messages"][0] == {"role": "system", "content": "be brief"}
    summarizer.anthropic_client.messages.create.assert_not_called()


@pytest.mark.asyncio
async def test_falls_back_to_anthropic():
    summarizer = _summarizer(
        openai_error=RuntimeError("rate limited"),
        anthropic_result=_anthropic_response("fallback answer"),
    )

    assert await summarizer.complete("prompt", 300) == "fallback answer"
    kwargs = summarizer.anthropic_client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-haiku-4-5"
    assert kwargs["max_tokens"] == 300


@pytest.mark.asyncio
async def test_empty_openai_choices_count_as_failure():
    summarizer = _summarizer(
        openai_result=SimpleNamespace(choices=[]),
        anthropic_result=_anthropic_response("ok"),
    )
    assert await summarizer.complete("prompt", 100) == "ok"


@pytest.mark.asyncio
async def test_all_providers_failing_raises():
    summarizer = _summarizer(
        openai_error=RuntimeError("rate limited"),
        anthropic_error=RuntimeError("overloaded"),
    )

    with pytest.raises(SummarizerError) as exc_info:
        await summarizer.complete("prompt", 100)

    failures = exc_info.value.details["failures"]
    assert failures == {
        "openai/gpt-4o-mini": "rate limited",
        "anthropic/claude-haiku-4-5": "overloaded",
    }
