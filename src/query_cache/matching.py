"""Approximate string matching for cache keys.

Queries are compared after match-normalization (casefolded, punctuation
stripped, stopwords dropped) using a Levenshtein-based similarity in
[0, 1]. The normalized form is only ever used for scoring; cache keys are
stored verbatim.
"""

import re
from collections.abc import Iterable

# Question words, fillers and generic "availability / option" words that
# carry no meaning for restaurant FAQ lookups.
DEFAULT_STOPWORDS: frozenset[str] = frozenset(
    {
        # question words and auxiliaries
        "what", "whats", "where", "when", "which", "who", "how", "why",
        "is", "are", "was", "were", "be", "do", "does", "did",
        "can", "could", "will", "would", "should", "may", "might",
        # articles, pronouns, prepositions
        "a", "an", "the", "s", "i", "me", "my", "we", "us", "our", "you", "your",
        "it", "its", "there", "this", "that", "any", "some",
        "of", "for", "to", "in", "on", "at", "with", "about", "and", "or",
        # conversational filler
        "please", "tell", "know", "like", "want", "need", "get",
        # generic availability / option words
        "have", "has", "available", "availability", "option", "options",
        "offer", "offers", "provide", "provides",
    }
)

_NON_WORD = re.compile(r"[\W_]+")


def normalize_query(text: str, stopwords: Iterable[str] = DEFAULT_STOPWORDS) -> str:
    """Reduce a query to the form used for similarity scoring.

    Args:
        text: Raw query text
        stopwords: Words to drop after casefolding

    Returns:
        Casefolded words without punctuation or stopwords, single-space joined
    """
    denylist = stopwords if isinstance(stopwords, (set, frozenset)) else frozenset(stopwords)
    words = _NON_WORD.sub(" ", text.casefold()).split()
    return " ".join(word for word in words if word not in denylist)


def levenshtein_distance(a: str, b: str) -> int:
    """Single-character edit distance using the full dynamic-programming matrix."""
    rows, cols = len(a) + 1, len(b) + 1
    matrix = [[0] * cols for _ in range(rows)]

    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,  # deletion
                matrix[i][j - 1] + 1,  # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )

    return matrix[-1][-1]


def similarity(a: str, b: str) -> float:
    """Normalized similarity: 1 - distance / longer length (1.0 for two empty strings)."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


class QueryMatcher:
    """Scores cached keys against a query and picks the best fuzzy match.

    Args:
        threshold: Minimum similarity (inclusive) for a match, in [0, 1].
        stopwords: Denylist used during normalization. Defaults to DEFAULT_STOPWORDS.
    """

    def __init__(self, threshold: float, stopwords: Iterable[str] | None = None) -> None:
        if not 0 <= threshold <= 1:
            raise ValueError("Fuzzy threshold must be between 0 and 1")
        self._threshold = threshold
        self._stopwords = frozenset(stopwords) if stopwords is not None else DEFAULT_STOPWORDS

    @property
    def threshold(self) -> float:
        """Minimum similarity for a match."""
        return self._threshold

    @property
    def stopwords(self) -> frozenset[str]:
        """Normalization denylist."""
        return self._stopwords

    def normalize(self, text: str) -> str:
        """Match-normalize text with this matcher's stopwords."""
        return normalize_query(text, self._stopwords)

    def score(self, a: str, b: str) -> float:
        """Similarity of two raw queries after normalization."""
        return similarity(self.normalize(a), self.normalize(b))

    def best_match(self, query: str, candidates: Iterable[str]) -> tuple[str, float] | None:
        """Find the candidate most similar to query.

        Ties keep the first candidate in iteration order.

        Args:
            query: Raw query text
            candidates: Raw cached keys to score

        Returns:
            (candidate, similarity) when the best score reaches the threshold, else None
        """
        target = self.normalize(query)
        best_key: str | None = None
        best_score = -1.0

        for candidate in candidates:
            score = similarity(target, self.normalize(candidate))
            if score > best_score:
                best_key, best_score = candidate, score

        if best_key is None or best_score < self._threshold:
            return None
        return best_key, best_score
