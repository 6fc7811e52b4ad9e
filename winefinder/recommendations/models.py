from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _as_id(value):
    """Ids may arrive as JSON numbers; they are compared as strings."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


IdStr = Annotated[str, BeforeValidator(_as_id)]


class Wine(BaseModel):
    """A catalog entry, keyed with the catalog file's field names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    name: str = Field(default="", alias="Product_name")
    description: str = Field(default="", alias="Wine_Description")
    varieties: str = Field(default="", alias="Wine_Varieties")
    price: str | None = Field(default=None, alias="Price")
    volume: str | None = Field(default=None, alias="Volume")
    promotion: str | None = None
    image_url: str | None = Field(default=None, alias="image_URL")

    @field_validator("id", "price", "volume", "promotion", mode="before")
    @classmethod
    def _stringify(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("name", "description", "varieties", mode="before")
    @classmethod
    def _text_or_empty(cls, value):
        if value is None:
            return ""
        return str(value)

    def document(self) -> str:
        """Text sent to the embedding provider for this wine."""
        return f"{self.name}. {self.description}. {self.varieties}"


class ScoredWine(Wine):
    similarity: float | None = None
    feedback_score: int | None = Field(default=None, alias="feedbackScore")
    final_score: float | None = Field(default=None, alias="finalScore")


class FeedbackRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: IdStr = Field(..., min_length=1, alias="userId")
    wine_id: IdStr = Field(..., min_length=1, alias="wineId")
    feedback: Literal["like", "dislike"]


class FeedbackResponse(BaseModel):
    status: str
    total_feedback: int


class AggregatedFeedbackRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    wine_id: IdStr = Field(..., alias="wineId")
    likes: int = Field(default=0, ge=0)
    dislikes: int = Field(default=0, ge=0)
