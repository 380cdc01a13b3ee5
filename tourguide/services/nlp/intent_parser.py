"""Keyword intent inference for free-text chat input."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from tourguide.config.place_types import match_intent_category
from tourguide.models.geo import Coordinate


@dataclass(frozen=True)
class ChatIntent:
    """What the user asked for, as far as keyword matching can tell."""

    original_text: str
    normalized_text: str
    category: Optional[str]

    @property
    def wants_nearby(self) -> bool:
        return self.category is not None


class ChatIntentParser:
    """Map chat text onto a nearby category; a heuristic fallback, not NLU."""

    def parse(self, text: str) -> ChatIntent:
        normalized = self._normalize(text)
        return ChatIntent(
            original_text=text,
            normalized_text=normalized,
            category=match_intent_category(normalized),
        )

    @staticmethod
    def _normalize(text: str) -> str:
        return " ".join(text.strip().lower().split())


class ChatResponder(ABC):
    """Hosted chat model collaborator; when configured it answers instead of the keyword parser."""

    @abstractmethod
    async def reply(self, text: str, coordinate: Optional[Coordinate]) -> str:
        pass
