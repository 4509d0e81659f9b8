"""
patterns.py — Shared cache of compiled word-boundary regexes.

Eligibility and scoring run the same keyword lists against every listing,
often from several worker threads at once. Patterns are compiled once per
distinct keyword and reused. Lookups are plain dict reads; the lock is only
taken when a pattern is missing.
"""

import re
import threading


class PatternCache:
    def __init__(self):
        self._patterns: dict[str, re.Pattern] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._patterns)

    def get(self, pattern: str) -> re.Pattern:
        """Return the compiled (case-insensitive) pattern for this exact text."""
        compiled = self._patterns.get(pattern)
        if compiled is not None:
            return compiled
        with self._lock:
            compiled = self._patterns.get(pattern)
            if compiled is None:
                compiled = re.compile(pattern, re.IGNORECASE)
                self._patterns[pattern] = compiled
            return compiled

    def word_pattern(self, word: str) -> re.Pattern:
        return self.get(r"\b" + re.escape(word.lower()) + r"\b")

    def contains_word(self, text: str, word: str) -> bool:
        """
        True if `word` appears in `text` on word boundaries.
        "java" matches "Senior Java Dev" but not "JavaScript".
        """
        if not text or not word or not word.strip():
            return False
        return self.word_pattern(word.strip()).search(text) is not None


def contains_phrase(text: str, phrase: str) -> bool:
    """Case-insensitive substring match."""
    if not text or not phrase:
        return False
    return phrase.lower() in text.lower()


# Process-wide instance shared by the rules and scoring engines
DEFAULT_CACHE = PatternCache()
