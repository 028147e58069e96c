from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from src.domain.enums.generation_mode import GenerationMode


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class DraftGeneratedEvent(DomainEvent):
    """Published when the generation service returns a validated draft."""

    mode: GenerationMode = GenerationMode.TEXT
    title: str = ""
    price_min: float = 0.0
    price_max: float = 0.0
    used_schema_fallback: bool = False


@dataclass(frozen=True)
class ListingSavedEvent(DomainEvent):
    """Published when a reviewed draft is stored as a listing."""

    listing_id: UUID = field(default_factory=uuid4)
    user_id: str = ""
    title: str = ""
    has_image: bool = False
