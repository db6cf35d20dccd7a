"""Text normalisation and stemming for the spam classifier.

Tokens are produced in this order:

1. accents are stripped,
2. URL-like substrings collapse to a single ``urltoken`` marker,
3. every run of non-letter characters becomes a punctuation marker,
4. the text is split on whitespace and lower-cased,
5. one-letter tokens become a single-character marker,
6. the remaining words are stemmed for the dominant language (French or
   German when detected with more than 30% probability, English otherwise),
7. punctuation and single-character markers are dropped.

The URL marker survives as a regular token.
"""

from __future__ import annotations

import logging
import re
import threading
import unicodedata
from functools import lru_cache

from langdetect.detector_factory import PROFILES_DIRECTORY, DetectorFactory
from langdetect.lang_detect_exception import LangDetectException
from nltk.stem.snowball import SnowballStemmer

LOGGER = logging.getLogger(__name__)

URL_TOKEN = "urltoken"
NON_ALPHA_TOKEN = "NON_ALPHA"
SINGLE_CHARACTER_TOKEN = "SINGLE_CHAR"
IGNORED_TOKENS = frozenset({"", NON_ALPHA_TOKEN, SINGLE_CHARACTER_TOKEN})

DEFAULT_LANGUAGE = "english"
DETECTED_LANGUAGES = {"fr": "french", "de": "german"}
LANGUAGE_THRESHOLD = 0.3
DETECTOR_SEED = 0

URL_PATTERN = re.compile(r"(?:https?://|ftp://|www\.)[^\s<>\"']+", re.IGNORECASE)
NON_LETTER_PATTERN = re.compile(r"[^a-zA-Z\s]+")
_PUNCTUATION = "."


class LanguageDetector:
    """Deterministic wrapper around a langdetect profile factory.

    Profiles are loaded on first use. After that the factory is only read,
    so one instance can serve every thread.
    """

    def __init__(self, seed: int = DETECTOR_SEED) -> None:
        self._seed = seed
        self._factory: DetectorFactory | None = None
        self._init_lock = threading.Lock()

    def detect(self, text: str) -> str:
        """Return the Snowball language name to stem ``text`` with."""

        detector = self._get_factory().create()
        detector.append(text)
        try:
            candidates = detector.get_probabilities()
        except LangDetectException:
            return DEFAULT_LANGUAGE
        for candidate in candidates:
            language = DETECTED_LANGUAGES.get(candidate.lang)
            if language and candidate.prob > LANGUAGE_THRESHOLD:
                return language
        return DEFAULT_LANGUAGE

    def _get_factory(self) -> DetectorFactory:
        if self._factory is None:
            with self._init_lock:
                if self._factory is None:
                    factory = DetectorFactory()
                    factory.load_profile(PROFILES_DIRECTORY)
                    factory.set_seed(self._seed)
                    self._factory = factory
        return self._factory


@lru_cache(maxsize=1)
def shared_detector() -> LanguageDetector:
    return LanguageDetector()


@lru_cache(maxsize=None)
def stemmer_for(language: str) -> SnowballStemmer:
    return SnowballStemmer(language)


def remove_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


class Tokenizer:
    """Turn mail text into classification tokens."""

    def __init__(self, detector: LanguageDetector | None = None) -> None:
        self._detector = detector or shared_detector()

    def tokenize(self, text: str) -> list[str]:
        normalized = remove_accents(text)
        normalized = URL_PATTERN.sub(f" {URL_TOKEN} ", normalized)
        normalized = NON_LETTER_PATTERN.sub(f" {_PUNCTUATION} ", normalized)
        words = [word.lower() for word in normalized.split()]
        if not words:
            return []

        stemmer = stemmer_for(self._detector.detect(text))
        tokens = (self._map_token(word, stemmer) for word in words)
        return [token for token in tokens if token not in IGNORED_TOKENS]

    @staticmethod
    def _map_token(word: str, stemmer: SnowballStemmer) -> str:
        if word == _PUNCTUATION:
            return NON_ALPHA_TOKEN
        if word == URL_TOKEN:
            return URL_TOKEN
        if len(word) == 1:
            return SINGLE_CHARACTER_TOKEN
        return stemmer.stem(word)


__all__ = [
    "LanguageDetector",
    "Tokenizer",
    "URL_TOKEN",
    "remove_accents",
    "shared_detector",
    "stemmer_for",
]
