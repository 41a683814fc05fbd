"""
Islamic knowledge assistant tool.

Always answers: backend failures come back as an apology in the question's
language, never as a tool error. Questions from known users are logged to
their activity trail.
"""

from typing import Any

from fastmcp import Context
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..assistant import SamplingCompletionClient
from ..errors import LibraryError
from ..library import get_library
from .responses import invalid_input, library_failure, success, unexpected_failure


class AskAssistantInput(BaseModel):
    query: str = Field(
        ...,
        description="Question in English or Arabic",
        min_length=1,
        max_length=2000,
        examples=["What does the Quran say about patience?", "ما هي أركان الإسلام؟"],
    )
    actor_id: int | None = Field(
        default=None, description="Asking user; anonymous questions are not logged", ge=1
    )

    @field_validator("query")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Query must not be blank")
        return v


async def ask_assistant_handler(
    arguments: dict[str, Any], context: Context | None = None
) -> dict[str, Any]:
    try:
        params = AskAssistantInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("ask_assistant", e)

    try:
        library = get_library()
        user_id = None
        if params.actor_id is not None:
            user_id = library.accounts.resolve_actor(params.actor_id).id

        client = None
        if library.settings.ai_provider == "sampling" and context is not None:
            client = SamplingCompletionClient(context, library.settings)

        reply = await library.assistant.ask(params.query, user_id=user_id, client=client)
    except LibraryError as e:
        return library_failure("ask_assistant", e)
    except Exception as e:
        return unexpected_failure("ask_assistant", e)

    message = reply.answer
    if reply.references:
        message += "\n\nReferences:\n" + "\n".join(f"- {ref}" for ref in reply.references)
    return success(message, response=reply.model_dump(mode="json"))


ask_assistant = {
    "name": "ask_assistant",
    "description": (
        "Ask the library's Islamic knowledge assistant a question in English or Arabic. "
        "Answers cite the Quran, hadith collections and scholars."
    ),
    "inputSchema": AskAssistantInput.model_json_schema(),
    "handler": ask_assistant_handler,
}
