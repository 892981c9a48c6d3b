"""Core types and DTOs for identity resolution and fact generation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date


# ---------------------------------------------------------------------------
# Inputs supplied by upstream collaborators
# ---------------------------------------------------------------------------


@dataclass
class Mention:
    """One brand extracted from a single AI answer.

    ``canonical_brand_id`` and ``is_own_brand`` are empty on input and filled
    in by the batch orchestrator before facts are expanded.
    """

    name: str = ""
    domain: str | None = None  # domain hint from the extractor, may be a URL
    domain_verified: bool = False  # passed the external DNS check
    sentiment: int | None = None  # 0-100
    ranking_position: int | None = None  # 1 = first

    canonical_brand_id: uuid.UUID | None = None
    is_own_brand: bool = False


@dataclass
class CitationInfo:
    """A single citation / source reference of the answer."""

    url: str = ""
    title: str | None = None
    domain: str | None = None  # parsed from url when missing


@dataclass
class TrackedBrand:
    """Identity of the business that commissioned the tracked prompt."""

    website_id: uuid.UUID
    name: str
    domain: str | None = None
    aliases: list[str] = field(default_factory=list)


@dataclass
class AnswerContext:
    """Everything needed to turn one analyzed answer into fact rows."""

    result_id: uuid.UUID
    tracked: TrackedBrand
    engine: str
    date: date
    tags: list[str] = field(default_factory=list)
    mentions: list[Mention] = field(default_factory=list)
    citations: list[CitationInfo] = field(default_factory=list)
    prompt_id: uuid.UUID | None = None
    model: str | None = None
    answer_length: int | None = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass
class AnswerOutcome:
    """Summary of processing one answer (returned by the Celery task)."""

    result_id: uuid.UUID
    fact_rows: int = 0
    citations: int = 0
    resolved: int = 0  # mentions linked to a canonical brand
    skipped_mentions: int = 0  # failed validation
    degraded: bool = False

    def as_dict(self) -> dict:
        return {
            "result_id": str(self.result_id),
            "fact_rows": self.fact_rows,
            "citations": self.citations,
            "resolved": self.resolved,
            "skipped_mentions": self.skipped_mentions,
            "degraded": self.degraded,
        }
