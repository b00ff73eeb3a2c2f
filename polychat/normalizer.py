"""polychat/normalizer.py

Turns raw model text into a ``ChatResponse`` with merged links.
"""

from __future__ import annotations

# Standard Library
import re
from typing import Final

# Local Modules
from polychat.models import ChatResponse, SearchEvidence

_URL_PATTERN: Final[re.Pattern[str]] = re.compile(r"https?://\S+")


def extract_links(text: str) -> list[str]:
    """Return URL-shaped substrings of ``text`` in first-seen order, deduplicated."""
    return list(dict.fromkeys(_URL_PATTERN.findall(text)))


def normalize(raw_text: str, evidence: SearchEvidence | None = None) -> ChatResponse:
    """Build the final response from model text and optional search evidence.

    Links found in the text come first, followed by search result links not
    already present. Equality is exact: no scheme, case, or trailing-slash
    normalization.
    """
    links = extract_links(raw_text)
    if evidence is not None:
        seen = set(links)
        for link in evidence.links():
            if link not in seen:
                seen.add(link)
                links.append(link)
    return ChatResponse(text=raw_text, links=links)
