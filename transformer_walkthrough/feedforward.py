"""
Position-wise Feed-Forward Block

The feedforward block is applied independently to each token vector:

    FFN(x) = ReLU(x @ W_1 + b_1) @ W_2 + b_2

The hidden dimension is larger than the input, letting the block expand the
representation, apply a non-linearity, and compress it back down. Both layers
draw fresh random parameters on every forward pass.

Reference: "Attention Is All You Need" (Vaswani et al., 2017) Section 3.3

Classes:
    FeedForwardTrace: Every stage of one forward pass, for display
    FeedForwardBlock: Expansion, ReLU, contraction
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from transformer_walkthrough.activations import relu
from transformer_walkthrough.layers import RandomLinear

logger = logging.getLogger(__name__)


@dataclass
class FeedForwardTrace:
    """
    Intermediate values of one feedforward pass.

    Attributes:
        inputs: (N, d_in) token vectors fed to the block
        hidden: (N, d_hidden) x @ W_1 + b_1
        activated: (N, d_hidden) ReLU(hidden)
        output: (N, d_in) activated @ W_2 + b_2
        first_weights: (d_in, d_hidden) W_1 used for this pass
        first_bias: (d_hidden,) b_1
        second_weights: (d_hidden, d_in) W_2
        second_bias: (d_in,) b_2
    """

    inputs: np.ndarray
    hidden: np.ndarray
    activated: np.ndarray
    output: np.ndarray
    first_weights: np.ndarray
    first_bias: np.ndarray
    second_weights: np.ndarray
    second_bias: np.ndarray


class FeedForwardBlock:
    """
    Two-layer MLP with a ReLU in between.

    Attributes:
        input_dimension: Input/output dimension (d_model)
        hidden_dimension: Inner dimension (d_ff)
        linear_1: Expansion layer
        linear_2: Contraction layer
    """

    def __init__(self, input_dimension: int, hidden_dimension: Optional[int] = None):
        """
        Args:
            input_dimension: Input and output dimension
            hidden_dimension: Inner hidden dimension (default: 4 * input_dimension)
        """
        self.input_dimension = input_dimension
        self.hidden_dimension = hidden_dimension or (4 * input_dimension)

        self.linear_1 = RandomLinear(
            input_features=input_dimension, output_features=self.hidden_dimension
        )
        self.linear_2 = RandomLinear(
            input_features=self.hidden_dimension, output_features=input_dimension
        )

    def forward(self, inputs: np.ndarray, rng: np.random.Generator) -> FeedForwardTrace:
        """
        Forward pass through the block with freshly drawn weights.

        Args:
            inputs: Token vectors of shape (N, input_dimension)
            rng: Random generator for the weight draw

        Returns:
            FeedForwardTrace holding every stage

        Computation:
            1. Linear expansion: d_in -> d_hidden
            2. ReLU activation
            3. Linear contraction: d_hidden -> d_in
        """
        inputs = np.asarray(inputs, dtype=np.float64)
        if inputs.size == 0:
            inputs = inputs.reshape(0, self.input_dimension)

        # Step 1: Expand to hidden dimension
        hidden = self.linear_1.forward(inputs, rng)

        # Step 2: ReLU
        activated = relu(hidden)

        # Step 3: Compress back to input dimension
        output = self.linear_2.forward(activated, rng)

        logger.debug(
            "Feedforward %d -> %d -> %d over %d tokens",
            self.input_dimension,
            self.hidden_dimension,
            self.input_dimension,
            inputs.shape[0],
        )

        return FeedForwardTrace(
            inputs=inputs,
            hidden=hidden,
            activated=activated,
            output=output,
            first_weights=self.linear_1.weights,
            first_bias=self.linear_1.bias,
            second_weights=self.linear_2.weights,
            second_bias=self.linear_2.bias,
        )
