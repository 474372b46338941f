# src/core/similarity.py
"""Cosine similarity helpers over numpy arrays."""

from __future__ import annotations

import numpy as np


def cosine_scores(query: np.ndarray | list[float], candidates: np.ndarray) -> np.ndarray:
    """Cosine similarity of one query vector against each row of ``candidates``.

    Raises:
        ValueError: On dimension mismatch.
    """
    q = np.asarray(query, dtype=np.float64)
    if candidates.ndim != 2:
        raise ValueError(f"Expected 2D candidate array, got {candidates.ndim}D")
    if candidates.shape[0] == 0:
        return np.empty((0,), dtype=np.float64)
    if q.shape[0] != candidates.shape[1]:
        raise ValueError(
            f"Dimension mismatch: query={q.shape[0]}, candidates={candidates.shape[1]}"
        )
    q_norm = q / max(float(np.linalg.norm(q)), 1e-10)
    return _normalize_rows(candidates) @ q_norm


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    return matrix / np.maximum(norms, 1e-10)
