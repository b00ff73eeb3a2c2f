"""polychat/language.py

Best-effort language identification for incoming utterances.

The detector is a stop-word heuristic meant to be swapped out: anything with
a ``detect(text) -> str`` method satisfies ``LanguageDetector``.
"""

from __future__ import annotations

# Standard Library
import logging
import re
from typing import Final, Protocol

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE: Final[str] = "en"

# Common function words per language. Scripts without word separators (zh, ja)
# are matched as substrings instead of whole words.
_LANGUAGE_MARKERS: Final[dict[str, tuple[str, ...]]] = {
    "en": ("the", "and", "is", "in", "to", "have", "it"),
    "es": ("el", "la", "que", "de", "y", "a", "en", "un"),
    "fr": ("le", "la", "les", "du", "des", "et", "est", "en"),
    "de": ("der", "die", "das", "und", "ist", "in", "den"),
    "it": ("il", "la", "e", "di", "che", "è", "un"),
    "pt": ("o", "a", "e", "de", "que", "em", "para"),
    "zh": ("的", "是", "不", "了", "在", "人", "有", "我"),
    "ja": ("は", "の", "に", "を", "た", "が", "で", "て"),
    "ru": ("и", "в", "на", "не", "я", "что", "он", "с"),
}
_UNSPACED_SCRIPTS: Final[frozenset[str]] = frozenset({"zh", "ja"})


class LanguageDetector(Protocol):
    def detect(self, text: str) -> str: ...


class HeuristicLanguageDetector:
    """Scores each language by how many of its marker words appear.

    Scores are normalized by the utterance word count; the highest score wins
    and ties keep the earlier language. Text with no markers is English.
    """

    def __init__(
        self,
        markers: dict[str, tuple[str, ...]] | None = None,
        default: str = DEFAULT_LANGUAGE,
    ) -> None:
        self.default = default
        self._patterns: dict[str, list[re.Pattern[str]]] = {
            lang: [self._compile(lang, word) for word in words]
            for lang, words in (markers or _LANGUAGE_MARKERS).items()
        }

    @staticmethod
    def _compile(lang: str, word: str) -> re.Pattern[str]:
        if lang in _UNSPACED_SCRIPTS:
            return re.compile(re.escape(word))
        return re.compile(rf"(?<!\w){re.escape(word)}(?!\w)", re.IGNORECASE)

    def detect(self, text: str) -> str:
        lowered = text.lower()
        word_count = len(lowered.split())
        if word_count == 0:
            return self.default

        best_language = self.default
        best_score = 0.0
        for lang, patterns in self._patterns.items():
            hits = sum(1 for pattern in patterns if pattern.search(lowered))
            score = hits / word_count
            if score > best_score:
                best_language, best_score = lang, score

        logger.debug("[language] detected %s (score=%.3f)", best_language, best_score)
        return best_language


def resolve_language(
    text: str,
    hint: str | None = None,
    detector: LanguageDetector | None = None,
) -> str:
    """Return the caller's language hint, or a detected code.

    Detection failures degrade to the default language rather than failing
    the request.
    """
    if hint:
        return hint
    try:
        return (detector or HeuristicLanguageDetector()).detect(text)
    except Exception as exc:
        logger.warning("[language] detection failed, using %s: %s", DEFAULT_LANGUAGE, exc)
        return DEFAULT_LANGUAGE
