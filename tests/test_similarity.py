from __future__ import annotations

import math

from resource_pipeline.similarity import (
    cosine,
    embed,
    embedding_similarity,
    hybrid_similarity,
    lexical_similarity,
    stem_token,
    tokenize,
)


def test_tokenize_drops_short_tokens_and_stems() -> None:
    tokens = tokenize("Learning React hooks in JS, C# and Node.js!")
    assert "js" not in tokens
    assert "learn" in tokens
    assert "hook" in tokens
    assert "react" in tokens


def test_stem_token_keeps_short_words() -> None:
    assert stem_token("uses") == "uses"
    assert stem_token("building") == "build"
    assert stem_token("classes") == "class"


def test_lexical_similarity_is_containment_over_smaller_set() -> None:
    assert lexical_similarity("python decorators", "advanced python decorators explained") == 1.0
    assert lexical_similarity("", "anything here") == 0.0
    assert lexical_similarity("rust ownership", "python decorators") == 0.0


def test_embed_is_deterministic_and_unit_length() -> None:
    first = embed("kubernetes pod scheduling")
    second = embed("kubernetes pod scheduling")
    assert first == second
    assert len(first) == 256
    assert math.isclose(math.sqrt(sum(v * v for v in first)), 1.0, rel_tol=1e-9)


def test_embed_of_empty_text_is_zero_vector() -> None:
    assert all(value == 0.0 for value in embed(""))
    assert embedding_similarity("", "docker") == 0.0


def test_cosine_rejects_mismatched_vectors() -> None:
    assert cosine([1.0, 0.0], [1.0]) == 0.0
    assert cosine([], []) == 0.0


def test_hybrid_similarity_bounds_and_ordering() -> None:
    module = "React hooks useState useEffect state management"
    close = "React hooks tutorial: useState and useEffect"
    far = "Baking sourdough bread at home"

    assert hybrid_similarity(module, module) == 1.0
    assert 0.0 <= hybrid_similarity(module, far) <= 1.0
    assert hybrid_similarity(module, close) > hybrid_similarity(module, far)


def test_hybrid_similarity_of_identical_short_token_text_is_one() -> None:
    assert hybrid_similarity("Go", "Go") == 1.0
    assert hybrid_similarity("C# UI", "C# UI") == 1.0
    assert hybrid_similarity("a b", "a b") == 1.0


def test_hybrid_similarity_of_blank_text_is_zero() -> None:
    assert hybrid_similarity("", "") == 0.0
    assert hybrid_similarity("   ", "   ") == 0.0
