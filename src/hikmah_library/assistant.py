"""
AI query adapter for the Islamic knowledge assistant.

The adapter sends a user's question to a completion backend and turns
whatever comes back into an ``AssistantResponse``:

1. Detect the question's language (Arabic script means Arabic)
2. Ask the backend for a JSON object with ``answer`` and ``references``
3. Normalize the reply; plain text becomes the answer with no references
4. On any failure, answer with an apology in the question's language

Two backends implement ``CompletionClient``: the OpenAI chat completions API
and MCP sampling, which asks the connected client's own model.
"""

import asyncio
import json
import logging
import re
from typing import Any, Protocol

from fastmcp import Context
from mcp.types import ClientCapabilities, SamplingCapability, SamplingMessage, TextContent
from openai import AsyncOpenAI, OpenAIError

from .config import LibrarySettings, get_settings
from .database import UnitOfWorkFactory
from .errors import AdapterError, LibraryError
from .models.activity import ActivityType
from .models.assistant import AssistantResponse, Language
from .services.activity import ActivityRecorder

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are an AI-powered Islamic knowledge assistant for Al Hikmah Library in Nigeria.
Your purpose is to provide accurate information and answers about Islamic topics with references to:
1. The Quran (provide chapter and verse numbers)
2. Hadith (provide collection name, book number, and hadith number when applicable)
3. Scholarly consensus and opinions (cite scholars when applicable)

When responding:
- Be respectful, objective, and educational
- Always provide references for your information
- If a question is outside your knowledge area, acknowledge it clearly
- Format references clearly for each claim or statement
- Be concise but thorough
- Respond in the language the question was asked in (English or Arabic)
- When responding in Arabic, provide Quranic verses in their original Arabic text

Reply with a JSON object of the form {"answer": "...", "references": ["...", "..."]}.

You should aim to be helpful while maintaining respect for Islamic scholarship and tradition.
""".strip()

APOLOGIES: dict[Language, str] = {
    "ar": "عذراً، حدث خطأ أثناء معالجة طلبك. يرجى المحاولة مرة أخرى.",
    "en": "Sorry, an error occurred while processing your request. Please try again.",
}

_ARABIC = re.compile("[\\u0600-\\u06ff]")


def detect_language(text: str) -> Language:
    """Arabic if the text contains any character of the Arabic block."""
    return "ar" if _ARABIC.search(text) else "en"


def apology(language: Language) -> AssistantResponse:
    return AssistantResponse(answer=APOLOGIES[language], references=[], language=language)


def _as_references(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [
            item if isinstance(item, str) else json.dumps(item, ensure_ascii=False)
            for item in value
        ]
    return [str(value)]


def parse_reply(content: str, language: Language) -> AssistantResponse:
    """
    Normalize a raw completion.

    A JSON object supplies ``answer`` (or ``response``/``content``) and
    ``references`` (or ``sources``). Anything else is used verbatim as the
    answer.
    """
    try:
        payload = json.loads(content)
    except json.JSONDecodeError:
        return AssistantResponse(answer=content, references=[], language=language)

    if not isinstance(payload, dict):
        return AssistantResponse(answer=content, references=[], language=language)

    answer = payload.get("answer") or payload.get("response") or payload.get("content") or content
    if not isinstance(answer, str):
        answer = json.dumps(answer, ensure_ascii=False)
    references = _as_references(payload.get("references") or payload.get("sources"))
    return AssistantResponse(answer=answer, references=references, language=language)


class CompletionClient(Protocol):
    """A chat backend that returns the raw text of one completion."""

    async def complete(self, system_prompt: str, query: str) -> str:
        """
        Raises:
            AdapterError: If the backend fails or returns nothing
        """
        ...


class OpenAICompletionClient:
    """Completions through the official ``openai`` SDK, in JSON mode."""

    def __init__(self, settings: LibrarySettings | None = None, client: AsyncOpenAI | None = None):
        self._settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        # Created on first use: a missing API key surfaces as a failed request.
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                timeout=self._settings.ai_timeout_seconds,
            )
        return self._client

    async def complete(self, system_prompt: str, query: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self._settings.ai_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": query},
                ],
                temperature=self._settings.ai_temperature,
                max_tokens=self._settings.ai_max_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise AdapterError(f"OpenAI request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AdapterError("No response received from AI assistant")
        return content


class SamplingCompletionClient:
    """
    Completions through MCP sampling.

    The request goes back to the connected client, which answers with its
    own model. Only valid for the duration of one tool call.
    """

    def __init__(self, context: Context, settings: LibrarySettings | None = None):
        self._context = context
        self._settings = settings or get_settings()

    async def complete(self, system_prompt: str, query: str) -> str:
        session = self._context.request_context.session
        if not session.check_client_capability(ClientCapabilities(sampling=SamplingCapability())):
            raise AdapterError("Client does not support sampling")

        result = await session.create_message(
            messages=[SamplingMessage(role="user", content=TextContent(type="text", text=query))],
            system_prompt=system_prompt,
            max_tokens=self._settings.ai_max_tokens,
            temperature=self._settings.ai_temperature,
        )

        if result and result.content and result.content.type == "text" and result.content.text:
            return result.content.text
        raise AdapterError("Sampling returned unexpected content type")


class AIQueryAdapter:
    """
    Answers questions and logs the exchanges of signed-in users.

    ``ask`` never raises: every failure becomes the localized apology. The
    exchange is stored only once a reply exists, in its own unit of work, so
    no store resources are held while waiting on the backend.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        client: CompletionClient | None = None,
        settings: LibrarySettings | None = None,
        recorder: ActivityRecorder | None = None,
    ):
        self._uow_factory = uow_factory
        self._settings = settings or get_settings()
        self._client = client or OpenAICompletionClient(self._settings)
        self._recorder = recorder or ActivityRecorder(uow_factory)

    async def ask(
        self,
        query: str,
        user_id: int | None = None,
        client: CompletionClient | None = None,
    ) -> AssistantResponse:
        """
        Args:
            query: The question, in English or Arabic
            user_id: The asking user; anonymous exchanges are not stored
            client: Backend for this call only (e.g. per-request sampling)
        """
        language = detect_language(query)
        client = client or self._client

        try:
            async with asyncio.timeout(self._settings.ai_timeout_seconds):
                content = await client.complete(SYSTEM_PROMPT, query)
            reply = parse_reply(content, language)
        except TimeoutError:
            logger.warning(
                "AI assistant timed out after %.1fs", self._settings.ai_timeout_seconds
            )
            return apology(language)
        except AdapterError as e:
            logger.warning("AI assistant backend failed: %s", e)
            return apology(language)
        except Exception:
            logger.exception("Error in AI assistant")
            return apology(language)

        if user_id is not None:
            self._persist(user_id, query, reply)
        return reply

    def _persist(self, user_id: int, query: str, reply: AssistantResponse) -> None:
        try:
            with self._uow_factory() as uow:
                ai_query = uow.ai_queries.create(
                    user_id=user_id, query=query, response=reply.model_dump_json()
                )
        except LibraryError:
            logger.warning("Failed to log AI query for user %s", user_id, exc_info=True)
            return
        self._recorder.record(user_id, ActivityType.QUERY, ai_query_id=ai_query.id)

