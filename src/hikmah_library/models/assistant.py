"""AI assistant reply model."""

from typing import Literal

from pydantic import BaseModel, Field

Language = Literal["en", "ar"]


class AssistantResponse(BaseModel):
    """Normalized assistant reply returned to clients."""

    answer: str = Field(..., description="Answer text in the language of the question")
    references: list[str] = Field(
        default_factory=list,
        description="Citations (Quran chapter/verse, hadith collection and number, scholars)",
    )
    language: Language = Field(..., description="Detected language of the question")
