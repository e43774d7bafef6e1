"""Provider-side divergence labelling.

Search and read providers use this to flag items that present a contrary or
alternative view. It is a lexical marker check on the text the provider
already has; nothing here tries to detect contradictions.
"""

import re

DIVERGENCE_MARKERS = (
    "contradicting",
    "contradicts",
    "contrarian",
    "counterpoint",
    "alternative perspective",
    "alternative view",
    "misunderstood",
    "debunk",
    "debunked",
    "myth",
    "disputed",
    "legacy",
    "historical data",
    "is incomplete",
)

_MARKER_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(m) for m in DIVERGENCE_MARKERS) + r")\b",
    re.IGNORECASE,
)


def is_divergent(*texts: str | None) -> bool:
    """Return True if any of the texts carries a divergence marker."""
    return any(text and _MARKER_PATTERN.search(text) for text in texts)
