"""Tests for the OpenAI chat answerer."""

from __future__ import annotations

from types import SimpleNamespace

import httpx
import openai
import pytest

from leavebot.core.config import Settings
from leavebot.core.errors import AnswererError
from leavebot.qa.answerer import SYSTEM_PROMPT, OpenAIAnswerer

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(content: str | None = "Earned leave: 15 days", choices: bool = True) -> SimpleNamespace:
    return SimpleNamespace(
        model="gpt-4o-mini-2024",
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))] if choices else [],
        usage=SimpleNamespace(prompt_tokens=40, completion_tokens=7),
    )


class StubCompletions:
    def __init__(self, result: object) -> None:
        self.result = result
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _answerer(tmp_path, result: object) -> tuple[OpenAIAnswerer, StubCompletions]:
    completions = StubCompletions(result)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    settings = Settings(db_path=tmp_path / "a.db", llm_max_tokens=500, llm_temperature=0.1)
    return OpenAIAnswerer(settings, client=client), completions


@pytest.mark.asyncio
async def test_answer_sends_prompts_and_reports_usage(tmp_path) -> None:
    answerer, completions = _answerer(tmp_path, _completion("  Earned leave: 15 days\n"))

    answer = await answerer.answer("How much earned leave?", "Earned leave: 15 days per year.")

    assert answer.text == "Earned leave: 15 days"
    assert answer.model == "gpt-4o-mini-2024"
    assert (answer.usage.prompt_tokens, answer.usage.completion_tokens) == (40, 7)
    call = completions.calls[0]
    assert call["max_tokens"] == 500
    assert call["temperature"] == 0.1
    system, user = call["messages"]
    assert system == {"role": "system", "content": SYSTEM_PROMPT}
    assert "Earned leave: 15 days per year." in user["content"]
    assert 'answer this question: "How much earned leave?"' in user["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        openai.APIConnectionError(request=REQUEST),
        openai.APITimeoutError(request=REQUEST),
        openai.RateLimitError("slow down", response=httpx.Response(429, request=REQUEST), body=None),
    ],
)
async def test_network_and_rate_limit_errors_are_transient(tmp_path, error: Exception) -> None:
    answerer, _ = _answerer(tmp_path, error)
    with pytest.raises(AnswererError) as excinfo:
        await answerer.answer("sick leave?", "Sick leave: 10 days.")
    assert excinfo.value.transient is True
    assert excinfo.value.__cause__ is error


@pytest.mark.asyncio
async def test_bad_request_is_not_transient(tmp_path) -> None:
    error = openai.BadRequestError("bad prompt", response=httpx.Response(400, request=REQUEST), body=None)
    answerer, _ = _answerer(tmp_path, error)
    with pytest.raises(AnswererError) as excinfo:
        await answerer.answer("sick leave?", "Sick leave: 10 days.")
    assert excinfo.value.transient is False


@pytest.mark.asyncio
@pytest.mark.parametrize("completion", [_completion(choices=False), _completion(content=None), _completion(content="")])
async def test_empty_completion_is_an_error(tmp_path, completion: SimpleNamespace) -> None:
    answerer, _ = _answerer(tmp_path, completion)
    with pytest.raises(AnswererError, match="empty completion"):
        await answerer.answer("sick leave?", "Sick leave: 10 days.")
