"""
Language detection with a lexical fallback for low-confidence results.

A statistical detector gives ranked (ISO 639-3 code, score) candidates with
scores in [0, 1]. Short or noisy messages often get a near-zero best score;
in that case a common-word dictionary check can pick a better supported
candidate from the same ranking.
"""

import threading
from typing import Callable, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from app.config.logging import get_logger
from app.services.interfaces import LanguageDetectionResult
from app.services.lexicon import LEXICON, SUPPORTED_LANGUAGES, match_ratio, tokenize

logger = get_logger(__name__)

Candidate = Tuple[str, float]
DetectorBackend = Callable[[str], Sequence[Candidate]]

UNDETERMINED = "und"


# Loaded next to the supported languages: short messages in these are the
# ones most often ranked as one of ours.
CONFUSABLE_LANGUAGES = ("afr", "cat", "ron", "lat", "ces", "slk", "dan", "swe")


class LinguaBackend:
    """Ranked candidates from lingua; the model is built on first use."""

    def __init__(
        self,
        languages: Sequence[str] = SUPPORTED_LANGUAGES + CONFUSABLE_LANGUAGES,
        low_accuracy: bool = False,
    ):
        self.languages = tuple(dict.fromkeys(languages))
        self.low_accuracy = low_accuracy
        self._detector = None
        self._lock = threading.Lock()

    def _get_detector(self):
        if self._detector is None:
            with self._lock:
                if self._detector is None:
                    from lingua import IsoCode639_3, LanguageDetectorBuilder

                    iso_codes = [getattr(IsoCode639_3, code.upper()) for code in self.languages]
                    builder = LanguageDetectorBuilder.from_iso_codes_639_3(*iso_codes)
                    if self.low_accuracy:
                        builder = builder.with_low_accuracy_mode()
                    self._detector = builder.build()
                    logger.info(
                        "Language detector initialized",
                        languages=len(self.languages),
                        low_accuracy=self.low_accuracy,
                    )
        return self._detector

    def warm_up(self) -> None:
        self._get_detector()

    def __call__(self, text: str) -> List[Candidate]:
        values = self._get_detector().compute_language_confidence_values(text)
        candidates = []
        for confidence in values:
            if confidence.value <= 0:
                continue
            code = confidence.language.iso_code_639_3.name.lower()
            candidates.append((code, float(confidence.value)))
        return candidates


def to_percent(score: float) -> int:
    return max(0, min(100, round(score * 100)))


class LanguageDetector:
    """Resolve the language of a message into a supported code and a 0-100 confidence."""

    LOW_CONFIDENCE_THRESHOLD = 15
    MIN_MATCH_RATIO = 0.30

    def __init__(
        self,
        backend: Optional[DetectorBackend] = None,
        lexicon: Mapping[str, FrozenSet[str]] = LEXICON,
        supported_languages: Sequence[str] = SUPPORTED_LANGUAGES,
    ):
        self.backend = backend or LinguaBackend()
        self.lexicon = lexicon
        self.supported_languages = frozenset(supported_languages)

    def warm_up(self) -> None:
        """Load the detector model ahead of the first request, if it supports it."""
        warm_up = getattr(self.backend, "warm_up", None)
        if warm_up is not None:
            warm_up()

    def detect(self, content: str) -> LanguageDetectionResult:
        """
        Detect the language of content.

        Never raises: empty input, undetectable input, unsupported languages
        and internal errors all resolve to ("unknown", 0).
        """
        try:
            if not content or not content.strip():
                logger.debug("Empty content provided for language detection")
                return LanguageDetectionResult.unknown()

            candidates = [
                (code, score) for code, score in self.backend(content)
                if code != UNDETERMINED and code in self.supported_languages
            ]
            if not candidates:
                logger.debug("No supported language detected")
                return LanguageDetectionResult.unknown()

            language, score = candidates[0]
            confidence = to_percent(score)

            if confidence < self.LOW_CONFIDENCE_THRESHOLD:
                override = self._lexical_override(content, candidates)
                if override is not None and override[0] != language:
                    logger.debug(
                        "Overriding detected language from word analysis",
                        detected=language,
                        override=override[0],
                        detected_confidence=confidence,
                    )
                    language, confidence = override[0], to_percent(override[1])

            logger.debug("Detected language", language=language, confidence=confidence)
            return LanguageDetectionResult(language=language, confidence=confidence)

        except Exception as e:
            logger.error("Language detection failed", error=str(e), exc_info=True)
            return LanguageDetectionResult.unknown()

    def _lexical_override(self, content: str, candidates: Sequence[Candidate]) -> Optional[Candidate]:
        """Best candidate whose common-word ratio clears the threshold; first max wins."""
        tokens = tokenize(content)
        if not tokens:
            return None

        best: Optional[Candidate] = None
        best_ratio = self.MIN_MATCH_RATIO
        seen = set()
        for code, score in candidates:
            if code in seen or code not in self.lexicon:
                continue
            seen.add(code)
            ratio = match_ratio(tokens, self.lexicon[code])
            if ratio > best_ratio:
                best, best_ratio = (code, score), ratio
        return best
