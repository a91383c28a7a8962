"""
Tests for the single attention head.

Tests cover:
- Scaled dot-product attention shapes and row-stochastic weights
- Single-token and empty inputs
- A hand-computed two-token example
- Score contributions and causal masking
- Wiring errors

Reference: "Attention Is All You Need" Section 3.2
"""

import numpy as np
import pytest


class TestScaledDotProductAttention:
    """
    Test suite for scaled dot-product attention.

    Formula: Attention(Q, K, V) = softmax(Q @ K^T / sqrt(d_k)) @ V
    """

    def test_shapes(self):
        """Scores and weights are (N, N); output is (N, d_v)."""
        from transformer_walkthrough.attention import scaled_dot_product_attention

        rng = np.random.default_rng(0)
        query, key, value = rng.random((3, 5, 6))

        head = scaled_dot_product_attention(query, key, value)

        assert head.scores.shape == (5, 5)
        assert head.weights.shape == (5, 5)
        assert head.output.shape == (5, 6)

    def test_weights_rows_sum_to_one(self):
        """Every row of the weight matrix sums to 1 within 1e-6."""
        from transformer_walkthrough.attention import scaled_dot_product_attention

        rng = np.random.default_rng(1)
        query, key, value = rng.uniform(-3, 3, size=(3, 7, 16))

        head = scaled_dot_product_attention(query, key, value)

        assert np.allclose(head.weights.sum(axis=-1), 1.0, atol=1e-6), (
            "Attention weights should sum to 1 along the key dimension"
        )

    def test_scores_are_scaled_dot_products(self):
        """scores[i][j] = dot(Q[i], K[j]) / sqrt(d)."""
        from transformer_walkthrough.attention import scaled_dot_product_attention

        rng = np.random.default_rng(2)
        query, key, value = rng.random((3, 4, 9))

        head = scaled_dot_product_attention(query, key, value)

        assert np.isclose(head.scores[1, 3], np.dot(query[1], key[3]) / 3.0)

    def test_single_token(self):
        """One token attends only to itself: weights [[1.0]], output V[0]."""
        from transformer_walkthrough.attention import scaled_dot_product_attention

        value = np.array([[0.3, -0.7, 1.5, 2.0]])
        head = scaled_dot_product_attention(
            np.array([[1.0, 2.0, 3.0, 4.0]]), np.array([[0.5, 0.5, 0.5, 0.5]]), value
        )

        assert np.array_equal(head.weights, np.array([[1.0]]))
        assert np.array_equal(head.output[0], value[0])

    def test_empty_input(self):
        """No tokens gives empty matrices rather than an error."""
        from transformer_walkthrough.attention import scaled_dot_product_attention

        empty = np.zeros((0, 6))
        head = scaled_dot_product_attention(empty, empty, empty)

        assert head.weights.shape == (0, 0)
        assert head.output.shape == (0, 6)

    def test_empty_lists(self):
        """Plain empty lists are accepted too."""
        from transformer_walkthrough.attention import scaled_dot_product_attention

        head = scaled_dot_product_attention([], [], [])

        assert head.output.size == 0

    def test_hand_computed_example(self):
        """
        d=4, two tokens, Q = K = V = [e0, e1].

        scores = [[0.5, 0], [0, 0.5]], weights[0] = [s, 1 - s] with
        s = e^0.5 / (e^0.5 + 1), and output = weights @ V.
        """
        from transformer_walkthrough.attention import scaled_dot_product_attention

        vectors = np.array([[1.0, 0.0, 0.0, 0.0], [0.0, 1.0, 0.0, 0.0]])
        head = scaled_dot_product_attention(vectors, vectors, vectors)

        s = np.exp(0.5) / (np.exp(0.5) + 1.0)
        expected_scores = np.array([[0.5, 0.0], [0.0, 0.5]])
        expected_output = np.array([[s, 1 - s, 0.0, 0.0], [1 - s, s, 0.0, 0.0]])

        assert np.allclose(head.scores, expected_scores)
        assert np.allclose(head.scores, head.scores.T), "Scores should be symmetric"
        assert np.allclose(head.output, expected_output, atol=1e-9)

    def test_no_causal_mask_by_default(self):
        """Earlier tokens attend to later tokens unless a mask is given."""
        from transformer_walkthrough.attention import scaled_dot_product_attention

        rng = np.random.default_rng(3)
        query, key, value = rng.random((3, 4, 6))

        head = scaled_dot_product_attention(query, key, value)

        assert np.all(head.weights[np.triu_indices(4, k=1)] > 0), (
            "Full bidirectional attention expected"
        )

    def test_causal_mask_blocks_future(self):
        """With a causal mask, future positions get ~0 weight."""
        from transformer_walkthrough.attention import (
            create_causal_mask,
            scaled_dot_product_attention,
        )

        rng = np.random.default_rng(4)
        query, key, value = rng.random((3, 5, 6))

        head = scaled_dot_product_attention(
            query, key, value, mask=create_causal_mask(5)
        )

        for i in range(5):
            for j in range(i + 1, 5):
                assert head.weights[i, j] < 1e-6, (
                    f"Position {i} should not attend to future position {j}"
                )

    def test_dimension_mismatch_raises(self):
        """Q and K must share their inner dimension."""
        from transformer_walkthrough.attention import scaled_dot_product_attention

        with pytest.raises(ValueError):
            scaled_dot_product_attention(np.ones((2, 4)), np.ones((2, 5)), np.ones((2, 4)))

    def test_key_value_length_mismatch_raises(self):
        """K and V must have one row per token."""
        from transformer_walkthrough.attention import scaled_dot_product_attention

        with pytest.raises(ValueError):
            scaled_dot_product_attention(np.ones((2, 4)), np.ones((2, 4)), np.ones((3, 4)))


class TestRandomAttentionHead:
    """Test suite for random_attention_head."""

    def test_random_head(self):
        """Q, K, V are drawn in [0, 1) and the weights are row-stochastic."""
        from transformer_walkthrough.attention import random_attention_head

        head = random_attention_head(4, 6, np.random.default_rng(5))

        assert head.sequence_length == 4
        assert head.dimension == 6
        assert np.all((head.query >= 0) & (head.query < 1))
        assert np.allclose(head.weights.sum(axis=-1), 1.0, atol=1e-6)

    def test_seeded_head_is_repeatable(self):
        """A seeded generator reproduces the same head."""
        from transformer_walkthrough.attention import random_attention_head

        first = random_attention_head(3, 6, np.random.default_rng(9))
        second = random_attention_head(3, 6, np.random.default_rng(9))

        assert np.array_equal(first.output, second.output)


class TestScoreContributions:
    """Test suite for per-dimension score contributions."""

    def test_contributions_sum_to_score(self):
        """The terms q_k * k_k / sqrt(d) sum to the score."""
        from transformer_walkthrough.attention import (
            random_attention_head,
            score_contributions,
        )

        head = random_attention_head(3, 6, np.random.default_rng(6))
        terms = score_contributions(head, 0, 2)

        assert terms.shape == (6,)
        assert np.isclose(terms.sum(), head.scores[0, 2])

    def test_out_of_range_cell(self):
        """Cells outside the matrix are rejected."""
        from transformer_walkthrough.attention import (
            random_attention_head,
            score_contributions,
        )

        head = random_attention_head(2, 6, np.random.default_rng(0))

        with pytest.raises(IndexError):
            score_contributions(head, 0, 2)
