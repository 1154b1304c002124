"""Language-model answerer."""

from __future__ import annotations

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from leavebot.core.config import Settings
from leavebot.core.errors import AnswererError
from leavebot.core.logging import get_logger

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a helpful assistant that answers questions about company leave policies.

IMPORTANT GUIDELINES:
- Only answer questions related to leave policies, vacation time, sick leave, maternity/paternity leave, holidays, and other time-off policies.
- If a user asks about anything else, politely decline and remind them you can only help with leave policy questions.
- Use the provided policy documents as your primary source of information.
- If the information is not available in the policies, say so clearly.
- When someone asks for "just the total number" or similar, give a clear, direct answer.

CONTEXT HANDLING:
- If the question contains "Previous conversation context:", use it to understand follow-ups such as "remove that from the above" or "recalculate".
- When asked to remove leave types and recalculate, show what was removed and the new total.

RESPONSE FORMATTING RULES:
- Write in plain text only; no markdown, bold text, asterisks or bullet characters.
- Put each item on its own line and keep sentences short.

Example:
Your leave types include:
Earned leave: 15 days
Casual leave: 12 days
Bereavement leave: 5 days"""

USER_PROMPT = """Based on the following company leave policy documents, please answer this question: "{question}"

Policy Documents:
{context}

Question: {question}

Please provide a clear response with each item on a separate line, in plain text."""


@dataclass(slots=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0


@dataclass(slots=True)
class Answer:
    text: str
    usage: Usage
    model: str


class Answerer:
    """Produces an answer to a question from the supplied policy context."""

    model: str = "unknown"

    async def answer(self, question: str, context: str) -> Answer:  # pragma: no cover - interface
        raise NotImplementedError


class OpenAIAnswerer(Answerer):
    """Chat-completions answerer; the client is created on first use."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None) -> None:
        self.settings = settings
        self.model = settings.llm_model
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            try:
                self._client = AsyncOpenAI(
                    api_key=self.settings.openai_api_key,
                    timeout=self.settings.llm_timeout_seconds,
                )
            except openai.OpenAIError as exc:
                raise AnswererError(f"OpenAI client unavailable: {exc}") from exc
        return self._client

    async def answer(self, question: str, context: str) -> Answer:
        client = self._get_client()
        try:
            completion = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": USER_PROMPT.format(question=question, context=context)},
                ],
                max_tokens=self.settings.llm_max_tokens,
                temperature=self.settings.llm_temperature,
                timeout=self.settings.llm_timeout_seconds,
            )
        except (openai.APIConnectionError, openai.RateLimitError) as exc:
            # APITimeoutError is a subclass of APIConnectionError.
            raise AnswererError(f"Transient OpenAI failure: {exc}", transient=True) from exc
        except openai.OpenAIError as exc:
            raise AnswererError(f"OpenAI request failed: {exc}") from exc

        if not completion.choices or not completion.choices[0].message.content:
            raise AnswererError("OpenAI returned an empty completion")
        usage = Usage()
        if completion.usage is not None:
            usage = Usage(
                prompt_tokens=completion.usage.prompt_tokens,
                completion_tokens=completion.usage.completion_tokens,
            )
        return Answer(text=completion.choices[0].message.content.strip(), usage=usage, model=completion.model)


__all__ = ["Answerer", "OpenAIAnswerer", "Answer", "Usage", "SYSTEM_PROMPT"]
