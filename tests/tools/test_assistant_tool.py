"""Tests for the ask_assistant tool."""

from unittest.mock import AsyncMock, Mock

from mcp.types import CreateMessageResult, TextContent

from hikmah_library.assistant import APOLOGIES
from hikmah_library.errors import AdapterError
from hikmah_library.tools.assistant import ask_assistant_handler


def error_status(result):
    assert result.get("isError") is True
    return result["data"]["error"]["status"]


class TestAskAssistantTool:
    async def test_answer_lists_references(self, library):
        result = await ask_assistant_handler({"query": "What does the Quran say about patience?"})

        assert result["data"]["response"] == {
            "answer": "Patience is praised.",
            "references": ["Quran 2:153"],
            "language": "en",
        }
        assert result["content"][0]["text"] == (
            "Patience is praised.\n\nReferences:\n- Quran 2:153"
        )

    async def test_signed_in_question_is_logged(self, library, seeded):
        await ask_assistant_handler({"query": "What is zakat?", "actor_id": seeded.user.id})

        [activity] = library.activity.list_for_user(seeded.user.id)
        assert activity.activity_type.value == "query"
        assert activity.ai_query_id is not None

    async def test_backend_failure_is_not_a_tool_error(self, library, completion_client):
        completion_client.complete.side_effect = AdapterError("down")

        result = await ask_assistant_handler({"query": "ما هي أركان الإسلام؟"})

        assert "isError" not in result
        assert result["data"]["response"]["answer"] == APOLOGIES["ar"]
        assert result["data"]["response"]["language"] == "ar"

    async def test_blank_query(self, library):
        result = await ask_assistant_handler({"query": "   "})
        assert error_status(result) == 400

    async def test_unknown_actor(self, library):
        result = await ask_assistant_handler({"query": "What is zakat?", "actor_id": 999})
        assert error_status(result) == 401

    async def test_sampling_provider_uses_client_model(self, library, completion_client):
        library.settings.ai_provider = "sampling"
        context = Mock()
        context.request_context.session.check_client_capability.return_value = True
        context.request_context.session.create_message = AsyncMock(
            return_value=CreateMessageResult(
                role="assistant",
                content=TextContent(type="text", text='{"answer": "From the client"}'),
                model="client-model",
            )
        )

        result = await ask_assistant_handler({"query": "What is zakat?"}, context)

        assert result["data"]["response"]["answer"] == "From the client"
        completion_client.complete.assert_not_awaited()
