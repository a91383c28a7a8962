"""
Single-Head Attention

This module implements the attention head shown in the walkthrough: scaled
dot-product attention over one sequence, returning every intermediate matrix
(Q, K, V, scores, weights, output) so the rendering layer can draw them.

In a real transformer Q, K and V come from learned projections of the token
embeddings. Here they are random vectors standing in for those projections.

Every token attends to every token, including itself and later positions: the
view shows the full bidirectional matrix. A causal mask can still be passed
explicitly to compare the two.

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Section 3.2
           https://arxiv.org/abs/1706.03762

Functions:
    scaled_dot_product_attention: Core attention computation
    random_attention_head: Draw random Q, K, V and run the head
    score_contributions: Per-dimension terms of one attention score
    create_causal_mask: Lower-triangular mask for the causal variant

Classes:
    AttentionHead: Bundle of all attention intermediates
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from transformer_walkthrough.activations import softmax
from transformer_walkthrough.layers import random_vectors

logger = logging.getLogger(__name__)


@dataclass
class AttentionHead:
    """
    All values computed by one attention head.

    Attributes:
        query: (N, d_k) "What am I looking for?"
        key: (N, d_k) "What do I contain?"
        value: (N, d_v) "What information do I provide?"
        scores: (N, N) scaled dot products Q @ K^T / sqrt(d_k)
        weights: (N, N) row-wise softmax of scores; every row sums to 1
        output: (N, d_v) weights @ V
    """

    query: np.ndarray
    key: np.ndarray
    value: np.ndarray
    scores: np.ndarray
    weights: np.ndarray
    output: np.ndarray

    @property
    def sequence_length(self) -> int:
        return self.query.shape[0]

    @property
    def dimension(self) -> int:
        return self.query.shape[1]


def _as_matrix(vectors) -> np.ndarray:
    matrix = np.asarray(vectors, dtype=np.float64)
    if matrix.size == 0 and matrix.ndim < 2:
        return matrix.reshape(0, 0)
    if matrix.ndim != 2:
        raise ValueError(f"Expected a 2D (tokens, dimension) array, got {matrix.shape}")
    return matrix


def scaled_dot_product_attention(
    query: np.ndarray,
    key: np.ndarray,
    value: np.ndarray,
    mask: Optional[np.ndarray] = None,
) -> AttentionHead:
    """
    Compute Scaled Dot-Product Attention.

    Mathematical Formula (from the paper):
        Attention(Q, K, V) = softmax(Q @ K^T / sqrt(d_k)) @ V

    Step-by-step:
        1. Compute attention scores: Q @ K^T, scaled by 1/sqrt(d_k)
        2. Apply mask (if provided) to block certain positions
        3. Apply softmax along each row to get attention weights
        4. Multiply by V to get a weighted combination of values

    Why scaling by sqrt(d_k)?
        For large d_k, the dot products grow large in magnitude, pushing the
        softmax into near one-hot regions. Scaling keeps the variance of the
        dot products constant regardless of d_k.

    Args:
        query: Query vectors of shape (seq_len_q, d_k)
        key: Key vectors of shape (seq_len_k, d_k)
        value: Value vectors of shape (seq_len_k, d_v)
        mask: Optional boolean mask of shape (seq_len_q, seq_len_k)
              True = position can be attended to
              False = position is masked out

    Returns:
        AttentionHead bundle with every intermediate matrix

    Raises:
        ValueError: If Q and K differ in dimension or K and V differ in length.
                    These indicate mis-wired components, not bad user input.

    Example:
        >>> rng = np.random.default_rng(0)
        >>> Q, K, V = rng.random((3, 4, 6))
        >>> head = scaled_dot_product_attention(Q, K, V)
        >>> head.weights.sum(axis=-1)  # [1., 1., 1., 1.]
    """
    query = _as_matrix(query)
    key = _as_matrix(key)
    value = _as_matrix(value)

    if query.shape[0] and key.shape[0] and query.shape[1] != key.shape[1]:
        raise ValueError(
            f"Query and key dimensions differ: {query.shape} vs {key.shape}"
        )
    if key.shape[0] != value.shape[0]:
        raise ValueError(
            f"Key and value sequence lengths differ: {key.shape} vs {value.shape}"
        )

    d_k = query.shape[1]

    # Empty input: nothing to attend over
    if query.shape[0] == 0 or key.shape[0] == 0:
        return AttentionHead(
            query=query,
            key=key,
            value=value,
            scores=np.zeros((query.shape[0], key.shape[0])),
            weights=np.zeros((query.shape[0], key.shape[0])),
            output=np.zeros((query.shape[0], value.shape[1])),
        )

    # Step 1: Scaled attention scores
    # Shape: (seq_q, d_k) @ (d_k, seq_k) -> (seq_q, seq_k)
    scores = (query @ key.T) / np.sqrt(d_k)

    # Step 2: Masked positions get a very large negative value so softmax makes them ~0
    if mask is not None:
        masked_scores = np.where(mask, scores, -1e9)
    else:
        masked_scores = scores

    # Step 3: Row-wise softmax, each query gets a distribution over keys
    weights = softmax(masked_scores, axis=-1)

    # Step 4: Weighted sum of values
    # Shape: (seq_q, seq_k) @ (seq_k, d_v) -> (seq_q, d_v)
    output = weights @ value

    return AttentionHead(
        query=query,
        key=key,
        value=value,
        scores=scores,
        weights=weights,
        output=output,
    )


def random_attention_head(
    sequence_length: int, dimension: int, rng: np.random.Generator
) -> AttentionHead:
    """
    Draw random Q, K, V in [0, 1) for each token and run the attention head.

    Args:
        sequence_length: Number of tokens
        dimension: Size of the Q/K/V vectors
        rng: Random generator

    Returns:
        AttentionHead bundle
    """
    query = random_vectors(sequence_length, dimension, rng)
    key = random_vectors(sequence_length, dimension, rng)
    value = random_vectors(sequence_length, dimension, rng)

    logger.debug("Attention head over %d tokens, d=%d", sequence_length, dimension)
    return scaled_dot_product_attention(query, key, value)


def score_contributions(head: AttentionHead, row: int, column: int) -> np.ndarray:
    """
    Split scores[row][column] into its per-dimension terms.

    Returns Q[row][k] * K[column][k] / sqrt(d) for every k; the terms sum to
    the score.
    """
    if not (0 <= row < head.query.shape[0] and 0 <= column < head.key.shape[0]):
        raise IndexError(
            f"Cell ({row}, {column}) outside a {head.scores.shape} score matrix"
        )
    return head.query[row] * head.key[column] / np.sqrt(head.dimension)


def create_causal_mask(sequence_length: int) -> np.ndarray:
    """
    Create a causal (autoregressive) attention mask.

    Each position can only attend to itself and previous positions.

    Example:
        For sequence_length=3:
        [[True, False, False],
         [True, True,  False],
         [True, True,  True ]]
    """
    return np.tril(np.ones((sequence_length, sequence_length), dtype=bool))
