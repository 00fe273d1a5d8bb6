"""Hybrid lexical + hashed-embedding text similarity."""

from __future__ import annotations

import math
import re
from typing import Dict, List, Sequence

EMBEDDING_DIMENSIONS = 256
_BIGRAM_WEIGHT = 1.35
_LEXICAL_WEIGHT = 0.35
_EMBEDDING_WEIGHT = 0.65

_NON_TOKEN_RE = re.compile(r"[^a-z0-9+#./-]+")


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def normalize_token(token: str) -> str:
    return _NON_TOKEN_RE.sub("", str(token or "").lower())


def stem_token(token: str) -> str:
    """Cheap suffix stripper; short tokens are left alone."""
    value = str(token or "")
    if len(value) <= 4:
        return value
    if value.endswith("ing") and len(value) > 6:
        return value[:-3]
    if value.endswith("ed") and len(value) > 5:
        return value[:-2]
    if value.endswith("es") and len(value) > 5:
        return value[:-2]
    if value.endswith("s") and len(value) > 4:
        return value[:-1]
    return value


def tokenize(text: str) -> List[str]:
    cleaned = _NON_TOKEN_RE.sub(" ", str(text or "").lower())
    tokens = []
    for raw in cleaned.split():
        token = normalize_token(raw)
        if len(token) <= 2:
            continue
        stemmed = stem_token(token)
        if stemmed:
            tokens.append(stemmed)
    return tokens


def _word_set(text: str) -> set:
    return {word for word in str(text or "").lower().split() if len(word) > 2}


def lexical_similarity(text1: str, text2: str) -> float:
    """Containment overlap: shared words over the smaller word set."""
    words1 = _word_set(text1)
    words2 = _word_set(text2)
    if not words1 or not words2:
        return 0.0
    overlap = len(words1 & words2)
    return overlap / min(len(words1), len(words2))


def _feature_index(feature: str, dims: int) -> int:
    value = 0
    for char in feature:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    return value % dims


def embed(text: str, dimensions: int = EMBEDDING_DIMENSIONS) -> List[float]:
    """Deterministic hashed bag of unigrams and weighted bigrams, L2-normalised."""
    dims = max(8, int(dimensions))
    tokens = tokenize(text)
    weights: Dict[str, float] = {}
    for idx, token in enumerate(tokens):
        weights[token] = weights.get(token, 0.0) + 1.0
        if idx > 0:
            bigram = f"{tokens[idx - 1]}_{token}"
            weights[bigram] = weights.get(bigram, 0.0) + _BIGRAM_WEIGHT

    vec = [0.0] * dims
    for feature, weight in weights.items():
        idf_like = min(2.5, 1.0 + len(feature) / 8.0)
        vec[_feature_index(feature, dims)] += weight * idf_like

    norm = math.sqrt(sum(value * value for value in vec))
    if norm > 0:
        vec = [value / norm for value in vec]
    return vec


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    return _clamp01(sum(x * y for x, y in zip(a, b)))


def embedding_similarity(text1: str, text2: str) -> float:
    return cosine(embed(text1), embed(text2))


def hybrid_similarity(text1: str, text2: str) -> float:
    """0.35 * lexical containment + 0.65 * embedding cosine, in [0, 1]."""
    if text1 == text2 and str(text1 or "").strip():
        return 1.0
    lexical = lexical_similarity(text1, text2)
    semantic = embedding_similarity(text1, text2)
    return _clamp01(_LEXICAL_WEIGHT * lexical + _EMBEDDING_WEIGHT * semantic)
