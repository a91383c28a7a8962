"""
Building Blocks for the Walkthrough Pipeline

This module implements the pieces every stage of the walkthrough is made of:
random vectors standing in for learned embeddings, a linear layer whose
parameters are redrawn on every call, and sinusoidal positional encoding.

Nothing here is learned. "Model weights" are fresh random draws each time a
view recomputes, which is what makes every step of the walkthrough look
different. Pass a seeded numpy Generator to make a run repeatable.

Functions:
    random_vectors: Uniform random vectors in [low, high)
    embed_tokens: Random token embeddings plus positional encoding

Classes:
    RandomLinear: Linear layer (y = x @ W + b) with W, b redrawn per call
    PositionalEncoding: Sinusoidal position embeddings

Reference:
    - "Attention Is All You Need" (Vaswani et al., 2017) Sections 3.4, 3.5
"""

import logging
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def random_vectors(
    count: int,
    dimension: int,
    rng: np.random.Generator,
    low: float = 0.0,
    high: float = 1.0,
) -> np.ndarray:
    """
    Draw `count` vectors of independent uniform values.

    Args:
        count: Number of vectors (rows)
        dimension: Length of each vector
        rng: Random generator
        low: Inclusive lower bound
        high: Exclusive upper bound

    Returns:
        Array of shape (count, dimension)
    """
    if count < 0 or dimension < 0:
        raise ValueError(
            f"count and dimension must be non-negative, got ({count}, {dimension})"
        )
    return rng.uniform(low, high, size=(count, dimension))


class RandomLinear:
    """
    Linear Layer with throwaway parameters.

    Computes the affine transformation: y = x @ W + b

    W has shape (input_features, output_features) and b has shape
    (output_features,). Both are drawn uniformly from [low, high) on every
    call to forward(); the last draw is kept on the instance so a renderer
    can show the connection weights that produced the output.

    In the walkthrough it is used for:
    - Both layers of the feedforward block
    - The output projection to vocabulary logits

    Attributes:
        weights: Last drawn weight matrix, or None before the first call
        bias: Last drawn bias vector, or None before the first call
    """

    def __init__(
        self,
        input_features: int,
        output_features: int,
        low: float = -1.0,
        high: float = 1.0,
    ):
        """
        Args:
            input_features: Size of input dimension (fan_in)
            output_features: Size of output dimension (fan_out)
            low: Lower bound of the parameter draw
            high: Upper bound of the parameter draw
        """
        if input_features < 1 or output_features < 1:
            raise ValueError(
                f"Linear layer needs positive sizes, got "
                f"{input_features} -> {output_features}"
            )

        self.input_features = input_features
        self.output_features = output_features
        self.low = low
        self.high = high

        self.weights: Optional[np.ndarray] = None
        self.bias: Optional[np.ndarray] = None

    def resample(self, rng: np.random.Generator) -> None:
        """Draw a fresh weight matrix and bias."""
        self.weights = rng.uniform(
            self.low, self.high, size=(self.input_features, self.output_features)
        )
        self.bias = rng.uniform(self.low, self.high, size=self.output_features)

    def forward(
        self, input_tensor: np.ndarray, rng: Optional[np.random.Generator] = None
    ) -> np.ndarray:
        """
        Forward pass: y = x @ W + b

        Args:
            input_tensor: Input of shape (..., input_features)
            rng: Generator for the parameter draw. When None, the previous draw
                 is reused (useful when a view wants to replay one layer).

        Returns:
            output_tensor: Output of shape (..., output_features)

        Raises:
            ValueError: If the input's last dimension is not input_features,
                        or no parameters have been drawn yet.
        """
        input_tensor = np.asarray(input_tensor, dtype=np.float64)

        if input_tensor.shape[-1] != self.input_features:
            raise ValueError(
                f"Expected input with last dimension {self.input_features}, "
                f"got shape {input_tensor.shape}"
            )

        if rng is not None:
            self.resample(rng)
        elif self.weights is None:
            raise ValueError("No parameters drawn yet; pass a random generator")

        # Matrix multiplication: (..., in) @ (in, out) -> (..., out)
        return input_tensor @ self.weights + self.bias


class PositionalEncoding:
    """
    Sinusoidal Positional Encoding.

    Adds position information to embeddings using fixed sinusoidal patterns.
    Dimensions come in (sin, cos) pairs sharing one frequency:

    Formula:
        PE(pos, 2i) = sin(pos / 10000^(2i/d_model))
        PE(pos, 2i+1) = cos(pos / 10000^(2i/d_model))

    The simplified sin(pos / (i + 1)) variant seen in some visualizations is
    not offered; one formula is used everywhere.

    Reference: "Attention Is All You Need" Section 3.5
    """

    def __init__(self, max_sequence_length: int, embedding_dimension: int):
        """
        Initialize and precompute positional encodings.

        Args:
            max_sequence_length: Maximum sequence length to support
            embedding_dimension: Must match the embedding dimension
        """
        self.max_sequence_length = max_sequence_length
        self.embedding_dimension = embedding_dimension

        self.encoding_table = self._create_encoding_table()

    def _create_encoding_table(self) -> np.ndarray:
        """
        Create the full positional encoding table.

        Returns:
            encoding_table: Array of shape (max_sequence_length, embedding_dimension)
        """
        positions = np.arange(self.max_sequence_length)[:, np.newaxis]
        dimension_indices = np.arange(self.embedding_dimension)[np.newaxis, :]

        # 2*(i//2) gives the [0,0,2,2,4,4,...] pattern shared by each pair
        angle_rates = 1 / np.power(
            10000.0, (2 * (dimension_indices // 2)) / self.embedding_dimension
        )
        angles = positions * angle_rates

        encoding_table = np.zeros_like(angles, dtype=np.float64)
        encoding_table[:, 0::2] = np.sin(angles[:, 0::2])
        encoding_table[:, 1::2] = np.cos(angles[:, 1::2])

        return encoding_table

    def get_encoding(self, sequence_length: int) -> np.ndarray:
        """
        Get positional encoding for a specific sequence length.

        Args:
            sequence_length: Length of the sequence (must be <= max_sequence_length)

        Returns:
            encoding: Array of shape (sequence_length, embedding_dimension)
        """
        if sequence_length > self.max_sequence_length:
            raise ValueError(
                f"Sequence length {sequence_length} exceeds maximum {self.max_sequence_length}"
            )

        return self.encoding_table[:sequence_length]

    def forward(self, embeddings: np.ndarray) -> np.ndarray:
        """
        Add positional encoding to embeddings of shape (sequence_length, embedding_dimension).
        """
        if embeddings.ndim != 2 or embeddings.shape[1] != self.embedding_dimension:
            raise ValueError(
                f"Expected embeddings of shape (N, {self.embedding_dimension}), "
                f"got {embeddings.shape}"
            )

        return embeddings + self.get_encoding(embeddings.shape[0])


def embed_tokens(
    tokens: Sequence,
    dimension: int,
    rng: np.random.Generator,
    positional: bool = True,
    low: float = 0.0,
    high: float = 1.0,
) -> np.ndarray:
    """
    Produce one random embedding per token, optionally position-encoded.

    The tokens themselves only determine how many rows are drawn; a toy
    embedding has no lookup table, so a repeated word gets a different vector.

    Args:
        tokens: Any sequence (Token objects or IDs)
        dimension: Embedding size
        rng: Random generator
        positional: Whether to add sinusoidal positional encoding
        low: Lower bound of the uniform draw
        high: Upper bound of the uniform draw

    Returns:
        embeddings: Array of shape (len(tokens), dimension)
    """
    count = len(tokens)
    embeddings = random_vectors(count, dimension, rng, low=low, high=high)

    if positional and count:
        encoder = PositionalEncoding(
            max_sequence_length=count, embedding_dimension=dimension
        )
        embeddings = encoder.forward(embeddings)

    logger.debug("Embedded %d tokens into dimension %d", count, dimension)
    return embeddings
