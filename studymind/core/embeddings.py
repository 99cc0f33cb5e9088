"""Text embeddings for notes.

Remote embeddings come from OpenAI when ``USE_REMOTE_EMBEDDINGS`` is enabled
and a key is configured; the result is projected to ``EMBEDDING_DIMENSION``.
Otherwise a deterministic bag-of-words hashing scheme is used, which keeps
ingestion working offline and in tests.
"""

from __future__ import annotations

import hashlib
import math
import re
from typing import Iterable, Sequence

from studymind.core.config import settings

EMBEDDING_DIMENSION: int = settings.EMBEDDING_DIMENSION

_TOKEN_PATTERN = re.compile(r"[A-Za-zÀ-ÖØ-öø-ÿ0-9']+", re.UNICODE)


def _tokenize(text: str) -> list[str]:
    if not text:
        return []
    return _TOKEN_PATTERN.findall(text.lower())


def _character_ngrams(token: str, min_n: int = 3, max_n: int = 5) -> Iterable[str]:
    token = f"^{token}$"
    for n in range(min_n, min(max_n, len(token)) + 1):
        for i in range(len(token) - n + 1):
            yield token[i : i + n]


def _extract_features(text: str) -> list[str]:
    tokens = _tokenize(text)
    features: list[str] = list(tokens)
    features.extend(f"{left}_{right}" for left, right in zip(tokens, tokens[1:]))
    for token in tokens:
        features.extend(_character_ngrams(token))
    return features


def normalize(values: Sequence[float]) -> list[float]:
    norm = math.sqrt(sum(float(v) * float(v) for v in values))
    if not norm:
        return [float(v) for v in values]
    return [float(v) / norm for v in values]


def project_dimension(values: Sequence[float], dimension: int = EMBEDDING_DIMENSION) -> list[float]:
    """Fold *values* onto *dimension* buckets."""
    if dimension <= 0:
        raise ValueError("dimension must be greater than zero")
    if len(values) == dimension:
        return [float(v) for v in values]
    projected = [0.0] * dimension
    for idx, value in enumerate(values):
        projected[idx % dimension] += float(value)
    return projected


def hashed_embedding(text: str, dimension: int = EMBEDDING_DIMENSION) -> list[float]:
    features = _extract_features(text)
    if not features:
        return [0.0] * dimension

    vector = [0.0] * dimension
    for position, feature in enumerate(features):
        digest = hashlib.sha256(f"{position}:{feature}".encode("utf-8")).digest()
        bucket = int.from_bytes(digest[:4], "big") % dimension
        vector[bucket] += 1.0 if digest[4] & 1 else -1.0

    return normalize(vector)


__all__ = ["EMBEDDING_DIMENSION", "hashed_embedding", "normalize", "project_dimension"]
