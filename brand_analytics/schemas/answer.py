"""Job payload for the answer fact pipeline (validated at the Celery boundary)."""

import uuid
from datetime import date

from pydantic import BaseModel, Field, field_validator

from brand_analytics.analysis.types import AnswerContext, CitationInfo, Mention, TrackedBrand


class MentionPayload(BaseModel):
    # Blank names are accepted here and skipped later, without failing the answer.
    name: str = ""
    domain: str | None = None
    domain_verified: bool = False
    sentiment: int | None = None
    ranking_position: int | None = None

    @field_validator("sentiment")
    @classmethod
    def clamp_sentiment(cls, v: int | None) -> int | None:
        if v is None:
            return None
        return max(0, min(100, v))

    @field_validator("ranking_position")
    @classmethod
    def positive_rank(cls, v: int | None) -> int | None:
        return v if v is not None and v > 0 else None


class CitationPayload(BaseModel):
    url: str = Field(min_length=1)
    title: str | None = None
    domain: str | None = None


class TrackedBrandPayload(BaseModel):
    website_id: uuid.UUID
    name: str = Field(min_length=1, max_length=255)
    domain: str | None = None
    aliases: list[str] = Field(default_factory=list)


class AnswerPayload(BaseModel):
    result_id: uuid.UUID
    tracked: TrackedBrandPayload
    engine: str = Field(min_length=1, max_length=30)  # chatgpt | perplexity | gemini | google | claude
    date: date
    tags: list[str] = Field(default_factory=list)
    mentions: list[MentionPayload] = Field(default_factory=list)
    citations: list[CitationPayload] = Field(default_factory=list)
    prompt_id: uuid.UUID | None = None
    model: str | None = None
    answer_length: int | None = Field(default=None, ge=0)

    def to_context(self) -> AnswerContext:
        return AnswerContext(
            result_id=self.result_id,
            tracked=TrackedBrand(**self.tracked.model_dump()),
            engine=self.engine,
            date=self.date,
            tags=list(self.tags),
            mentions=[Mention(**m.model_dump()) for m in self.mentions],
            citations=[CitationInfo(**c.model_dump()) for c in self.citations],
            prompt_id=self.prompt_id,
            model=self.model,
            answer_length=self.answer_length,
        )
