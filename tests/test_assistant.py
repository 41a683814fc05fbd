"""
Tests for the AI query adapter.

The completion backends are mocked: OpenAI through a fake ``AsyncOpenAI``
object, sampling through a mock MCP context, like any other MCP session.
"""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from mcp.types import CreateMessageResult, ImageContent, TextContent
from openai import OpenAIError

from hikmah_library.assistant import (
    APOLOGIES,
    SYSTEM_PROMPT,
    AIQueryAdapter,
    OpenAICompletionClient,
    SamplingCompletionClient,
    detect_language,
    parse_reply,
)
from hikmah_library.config import LibrarySettings
from hikmah_library.errors import AdapterError
from hikmah_library.models.activity import ActivityType


@pytest.fixture
def seeded_memory(memory_uow, seed_store, clock):
    return seed_store(memory_uow, clock())


@pytest.fixture
def adapter(memory_uow, seeded_memory, completion_client, settings):  # noqa: ARG001
    return AIQueryAdapter(memory_uow, completion_client, settings=settings)


def openai_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestLanguageAndParsing:
    @pytest.mark.parametrize(
        ("text", "language"),
        [
            ("What does the Quran say about patience?", "en"),
            ("ما هو الصبر في القرآن؟", "ar"),
            ("Explain the word صبر", "ar"),
            ("", "en"),
        ],
    )
    def test_detect_language(self, text, language):
        assert detect_language(text) == language

    def test_structured_reply(self):
        reply = parse_reply(
            '{"answer": "Be patient.", "references": ["Quran 2:153", "Sahih Muslim 918"]}', "en"
        )
        assert reply.answer == "Be patient."
        assert reply.references == ["Quran 2:153", "Sahih Muslim 918"]
        assert reply.language == "en"

    def test_alternative_keys(self):
        reply = parse_reply('{"response": "نعم", "sources": "البقرة ١٥٣"}', "ar")
        assert reply.answer == "نعم"
        assert reply.references == ["البقرة ١٥٣"]

    def test_structured_references_are_flattened(self):
        reply = parse_reply(
            json.dumps({"answer": "x", "references": [{"surah": 2, "ayah": 153}]}), "en"
        )
        assert reply.references == ['{"surah": 2, "ayah": 153}']

    @pytest.mark.parametrize("content", ["Plain text answer", "[1, 2, 3]", '"just a string"'])
    def test_unstructured_reply_becomes_answer(self, content):
        reply = parse_reply(content, "en")
        assert reply.answer == content
        assert reply.references == []

    def test_object_without_answer_keeps_raw_text(self):
        content = '{"references": ["Quran 1:1"]}'
        reply = parse_reply(content, "en")
        assert reply.answer == content
        assert reply.references == ["Quran 1:1"]


class TestAdapter:
    @pytest.mark.asyncio
    async def test_answer_with_references(self, adapter, completion_client):
        reply = await adapter.ask("What does the Quran say about patience?")

        assert reply.answer == "Patience is praised."
        assert reply.references == ["Quran 2:153"]
        assert reply.language == "en"
        completion_client.complete.assert_awaited_once_with(
            SYSTEM_PROMPT, "What does the Quran say about patience?"
        )

    @pytest.mark.asyncio
    async def test_backend_failure_apologizes_in_arabic(self, adapter, completion_client):
        completion_client.complete.side_effect = AdapterError("provider down")

        reply = await adapter.ask("ما هو الصبر؟")

        assert reply.answer == APOLOGIES["ar"]
        assert reply.references == []
        assert reply.language == "ar"

    @pytest.mark.asyncio
    async def test_unexpected_error_apologizes(self, adapter, completion_client, caplog):
        completion_client.complete.side_effect = RuntimeError("bug")

        reply = await adapter.ask("What is zakat?")

        assert reply.answer == APOLOGIES["en"]
        assert "Error in AI assistant" in caplog.text

    @pytest.mark.asyncio
    async def test_timeout_apologizes(self, memory_uow, seeded_memory):
        class SlowClient:
            async def complete(self, system_prompt, query):
                await asyncio.sleep(5)
                return "too late"

        settings = LibrarySettings(_env_file=None, ai_timeout_seconds=0.05)
        adapter = AIQueryAdapter(memory_uow, SlowClient(), settings=settings)

        reply = await adapter.ask("What is zakat?", user_id=seeded_memory.user.id)

        assert reply.answer == APOLOGIES["en"]
        with memory_uow() as uow:
            assert uow.ai_queries.list_for_user(seeded_memory.user.id) == []

    @pytest.mark.asyncio
    async def test_signed_in_exchange_is_logged(self, adapter, memory_uow, seeded_memory):
        user_id = seeded_memory.user.id

        reply = await adapter.ask("What does the Quran say about patience?", user_id=user_id)

        with memory_uow() as uow:
            [logged] = uow.ai_queries.list_for_user(user_id)
            [activity] = uow.activities.list_for_user(user_id)
        assert logged.query == "What does the Quran say about patience?"
        assert json.loads(logged.response) == reply.model_dump()
        assert activity.activity_type == ActivityType.QUERY
        assert activity.ai_query_id == logged.id

    @pytest.mark.asyncio
    async def test_anonymous_exchange_is_not_logged(self, adapter, memory_uow):
        await adapter.ask("What is zakat?")

        with memory_uow() as uow:
            assert uow.ai_queries.list_all() == []
            assert uow.activities.list_all() == []

    @pytest.mark.asyncio
    async def test_per_call_client_overrides_default(self, adapter, completion_client):
        other = AsyncMock()
        other.complete.return_value = "From the other backend"

        reply = await adapter.ask("What is zakat?", client=other)

        assert reply.answer == "From the other backend"
        completion_client.complete.assert_not_awaited()


class TestOpenAICompletionClient:
    @pytest.fixture
    def sdk(self):
        sdk = Mock()
        sdk.chat.completions.create = AsyncMock(return_value=openai_response('{"answer": "ok"}'))
        return sdk

    @pytest.mark.asyncio
    async def test_requests_json_completion(self, sdk, settings):
        client = OpenAICompletionClient(settings, client=sdk)

        content = await client.complete("system", "question")

        assert content == '{"answer": "ok"}'
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "question"},
        ]
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 1000
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_adapter_error(self, sdk, settings):
        sdk.chat.completions.create.side_effect = OpenAIError("rate limited")
        client = OpenAICompletionClient(settings, client=sdk)

        with pytest.raises(AdapterError, match="rate limited"):
            await client.complete("system", "question")

    @pytest.mark.parametrize("response", [openai_response(None), SimpleNamespace(choices=[])])
    @pytest.mark.asyncio
    async def test_empty_reply(self, sdk, settings, response):
        sdk.chat.completions.create.return_value = response
        client = OpenAICompletionClient(settings, client=sdk)

        with pytest.raises(AdapterError, match="No response"):
            await client.complete("system", "question")


class TestSamplingCompletionClient:
    @pytest.fixture
    def context(self):
        context = Mock()
        context.request_context.session.check_client_capability.return_value = True
        context.request_context.session.create_message = AsyncMock(
            return_value=CreateMessageResult(
                role="assistant",
                content=TextContent(type="text", text='{"answer": "sampled"}'),
                model="client-model",
                stopReason="endTurn",
            )
        )
        return context

    @pytest.mark.asyncio
    async def test_sampling_request(self, context, settings):
        client = SamplingCompletionClient(context, settings)

        content = await client.complete("system", "question")

        assert content == '{"answer": "sampled"}'
        kwargs = context.request_context.session.create_message.call_args.kwargs
        assert len(kwargs["messages"]) == 1
        assert kwargs["messages"][0].role == "user"
        assert kwargs["messages"][0].content.text == "question"
        assert kwargs["system_prompt"] == "system"
        assert kwargs["max_tokens"] == 1000

    @pytest.mark.asyncio
    async def test_client_without_sampling(self, context, settings):
        context.request_context.session.check_client_capability.return_value = False

        with pytest.raises(AdapterError, match="does not support sampling"):
            await SamplingCompletionClient(context, settings).complete("system", "question")
        context.request_context.session.create_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_text_reply(self, context, settings):
        context.request_context.session.create_message.return_value = CreateMessageResult(
            role="assistant",
            content=ImageContent(type="image", data="aGk=", mimeType="image/png"),
            model="client-model",
        )

        with pytest.raises(AdapterError, match="unexpected content"):
            await SamplingCompletionClient(context, settings).complete("system", "question")
