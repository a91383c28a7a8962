"""
Output Projection and Sampling

The last stage of the walkthrough maps a hidden vector to one logit per
vocabulary entry, turns the logits into probabilities with a temperature
softmax, and picks the next token.

Pipeline:
    hidden (d) -> [hidden @ W + b] -> logits (V) -> softmax(logits / T) -> sample

Sampling strategies:
    greedy:      Always pick the most likely token (first one on ties)
    top_k:       Keep the k most likely tokens, renormalise, draw one
    categorical: Draw from the full distribution

Reference:
    "The Curious Case of Neural Text Degeneration" (Holtzman et al., 2019)
    discusses why pure greedy decoding and full sampling both fall short.

Classes:
    OutputProjection: Random linear map to vocabulary logits
    OutputPrediction: Logits, probabilities and the sampled index

Functions:
    sample_next_token: Apply a sampling strategy to a distribution
    project_and_sample: Projection, softmax and sampling in one call
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from transformer_walkthrough.activations import softmax
from transformer_walkthrough.config import SAMPLING_STRATEGIES
from transformer_walkthrough.layers import RandomLinear, random_vectors

logger = logging.getLogger(__name__)


@dataclass
class OutputPrediction:
    """
    Result of projecting one hidden vector and sampling from it.

    Attributes:
        hidden: (d,) hidden vector that was projected
        logits: (V,) unnormalized scores
        probabilities: (V,) softmax(logits / temperature)
        token_index: Sampled vocabulary index
        weights: (d, V) projection matrix drawn for this prediction
        bias: (V,) projection bias
    """

    hidden: np.ndarray
    logits: np.ndarray
    probabilities: np.ndarray
    token_index: int
    weights: np.ndarray
    bias: np.ndarray


class OutputProjection:
    """
    Language model head with throwaway parameters.

    Attributes:
        hidden_dimension: Size of the incoming hidden vector
        vocabulary_size: Number of logits produced
        linear: The underlying RandomLinear layer
    """

    def __init__(self, hidden_dimension: int, vocabulary_size: int):
        if vocabulary_size < 1:
            raise ValueError(
                f"Vocabulary size must be at least 1, got {vocabulary_size}"
            )

        self.hidden_dimension = hidden_dimension
        self.vocabulary_size = vocabulary_size
        self.linear = RandomLinear(
            input_features=hidden_dimension, output_features=vocabulary_size
        )

    def logits(self, hidden: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        """Project hidden (d,) or (N, d) to logits (V,) or (N, V)."""
        return self.linear.forward(hidden, rng)

    def forward(
        self,
        hidden: np.ndarray,
        rng: np.random.Generator,
        temperature: float = 1.0,
    ):
        """
        Project to logits and convert to probabilities.

        Args:
            hidden: Hidden vector(s), last dimension hidden_dimension
            rng: Random generator for the parameter draw
            temperature: Softmax temperature, must be > 0

        Returns:
            Tuple of (logits, probabilities)
        """
        logits = self.logits(hidden, rng)
        probabilities = softmax(logits, temperature=temperature)
        return logits, probabilities


def _cumulative_draw(
    candidates: np.ndarray, probabilities: np.ndarray, rng: np.random.Generator
) -> int:
    """Pick one candidate by comparing a uniform draw to the cumulative distribution."""
    normalized = probabilities / np.sum(probabilities)
    cumulative = np.cumsum(normalized)
    draw = rng.random()

    position = int(np.searchsorted(cumulative, draw, side="right"))
    if position >= len(candidates):
        # Rounding left the cumulative sum just below the draw
        position = 0

    return int(candidates[position])


def sample_next_token(
    probabilities: np.ndarray,
    strategy: str = "categorical",
    top_k: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """
    Choose the next token index from a probability distribution.

    Args:
        probabilities: (V,) distribution over the vocabulary
        strategy: "greedy", "top_k" (or "top-k") or "categorical"
        top_k: Candidate count for top_k; clamped to [1, V]. Defaults to V.
        rng: Random generator; required for the stochastic strategies

    Returns:
        Index into the vocabulary

    Raises:
        ValueError: On an empty distribution or an unknown strategy.
    """
    probabilities = np.asarray(probabilities, dtype=np.float64)

    if probabilities.ndim != 1 or probabilities.size == 0:
        raise ValueError(
            f"Expected a non-empty 1D distribution, got shape {probabilities.shape}"
        )

    strategy = strategy.replace("-", "_")
    if strategy not in SAMPLING_STRATEGIES:
        raise ValueError(
            f"Unknown sampling strategy '{strategy}', "
            f"expected one of {', '.join(SAMPLING_STRATEGIES)}"
        )

    # np.argmax returns the first maximum, so ties resolve to the lowest index
    if strategy == "greedy":
        return int(np.argmax(probabilities))

    if rng is None:
        rng = np.random.default_rng()

    vocabulary_size = probabilities.size

    if strategy == "top_k":
        requested = vocabulary_size if top_k is None else top_k
        k = min(max(requested, 1), vocabulary_size)
        if k != requested:
            logger.debug("Clamped top_k from %s to %d", requested, k)

        # Stable sort keeps the lower index first among equal probabilities
        top_indices = np.argsort(-probabilities, kind="stable")[:k]
        return _cumulative_draw(top_indices, probabilities[top_indices], rng)

    return _cumulative_draw(np.arange(vocabulary_size), probabilities, rng)


def project_and_sample(
    hidden: np.ndarray,
    vocabulary_size: int,
    rng: np.random.Generator,
    temperature: float = 1.0,
    strategy: str = "categorical",
    top_k: Optional[int] = None,
) -> OutputPrediction:
    """
    Run the full output stage on one hidden vector.

    Args:
        hidden: (d,) hidden vector
        vocabulary_size: Number of candidate tokens
        rng: Random generator for the projection and the draw
        temperature: Softmax temperature, must be > 0
        strategy: Sampling strategy name
        top_k: Candidate count for top_k sampling

    Returns:
        OutputPrediction
    """
    hidden = np.asarray(hidden, dtype=np.float64)
    if hidden.ndim != 1:
        raise ValueError(f"Expected a single hidden vector, got shape {hidden.shape}")

    projection = OutputProjection(hidden.shape[0], vocabulary_size)
    logits, probabilities = projection.forward(hidden, rng, temperature=temperature)
    token_index = sample_next_token(probabilities, strategy, top_k=top_k, rng=rng)

    return OutputPrediction(
        hidden=hidden,
        logits=logits,
        probabilities=probabilities,
        token_index=token_index,
        weights=projection.linear.weights,
        bias=projection.linear.bias,
    )


def random_hidden_vector(dimension: int, rng: np.random.Generator) -> np.ndarray:
    """Draw a hidden vector in [-1, 1) to feed the output stage."""
    return random_vectors(1, dimension, rng, low=-1.0, high=1.0)[0]
