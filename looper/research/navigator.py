"""Predictive query suggestions ("bubbles") for a partially typed query."""

from __future__ import annotations

from dataclasses import dataclass, field

SUGGESTION_CONFIDENCE = 0.7


@dataclass(frozen=True)
class Bubble:
    """A suggested refinement the UI can offer."""

    label: str
    intent: str


@dataclass
class Suggestions:
    bubbles: list[Bubble]
    confidence: float = SUGGESTION_CONFIDENCE
    keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "bubbles": [{"label": b.label, "intent": b.intent} for b in self.bubbles],
            "context_update": {"confidence": self.confidence},
        }


# (trigger keywords, bubbles); first match wins
SUGGESTION_RULES: tuple[tuple[tuple[str, ...], tuple[Bubble, ...]], ...] = (
    (
        ("patent", "legal"),
        (
            Bubble("Draft for US", "patent_us"),
            Bubble("Draft for EU", "patent_eu"),
            Bubble("Prior Art Search", "search_art"),
        ),
    ),
    (
        ("video", "scene"),
        (
            Bubble("Action Scenes", "filter_action"),
            Bubble("Dialogue Only", "filter_dialogue"),
            Bubble("4K Resolution", "filter_4k"),
        ),
    ),
    (
        ("best", "top"),
        (
            Bubble("Under $100", "filter_price_low"),
            Bubble("Professional Reviews", "source_expert"),
            Bubble("Reddit Consensus", "source_social"),
        ),
    ),
)

EXPLORER_BUBBLES = (
    Bubble("Deep Dive", "mode_deep"),
    Bubble("Quick Summary", "mode_fast"),
    Bubble("Visuals", "mode_images"),
)


def extract_keywords(text: str | None) -> list[str]:
    """Lowercase words longer than two characters."""
    if not text:
        return []
    return [word for word in text.lower().split() if len(word) > 2]


class Navigator:
    """Suggests next-step bubbles from the words typed so far."""

    def suggest(self, partial_query: str | None) -> Suggestions:
        keywords = extract_keywords(partial_query)

        for triggers, bubbles in SUGGESTION_RULES:
            if any(word.startswith(triggers) for word in keywords):
                return Suggestions(bubbles=list(bubbles), keywords=keywords)

        return Suggestions(bubbles=list(EXPLORER_BUBBLES), keywords=keywords)
