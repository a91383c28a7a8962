"""
Activation Functions for the Walkthrough Pipeline

This module implements the two non-linearities the toy transformer needs:
softmax (attention weights and output probabilities) and ReLU (the
feedforward block).

All implementations are in pure NumPy for educational purposes.

Functions:
    softmax: Converts logits to a probability distribution, with temperature
    relu: Rectified Linear Unit

Reference:
    - "Attention Is All You Need" (Vaswani et al., 2017) - Softmax in attention
"""

import numpy as np


def softmax(
    logits: np.ndarray, axis: int = -1, temperature: float = 1.0
) -> np.ndarray:
    """
    Compute softmax activation function.

    Converts a vector of arbitrary real values (logits) into a probability
    distribution where all values are positive and sum to 1.

    Mathematical Formula:
        softmax(x / T)_i = exp(x_i / T) / sum_j(exp(x_j / T))

    Numerical Stability:
        We subtract max(x) from all values before exponentiation to prevent
        overflow. This doesn't change the result because:
        exp(x_i - max) / sum(exp(x_j - max)) = exp(x_i) / sum(exp(x_j))

    Temperature:
        T < 1 sharpens the distribution towards the largest logit,
        T > 1 flattens it towards uniform. T must be strictly positive.

    Args:
        logits: Input array of any shape. Softmax is applied along the
                specified axis.
        axis: The axis along which to compute softmax. Default is -1 (last axis),
              which is standard for attention mechanisms.
        temperature: Divisor applied to the logits before normalisation.

    Returns:
        probabilities: Array of same shape as input, with softmax applied along
                      the specified axis. Values along that axis sum to 1.

    Raises:
        ValueError: If temperature is not strictly positive.

    Example:
        >>> logits = np.array([1.0, 2.0, 3.0])
        >>> probs = softmax(logits)
        >>> print(probs)  # [0.09, 0.24, 0.67]
        >>> print(np.sum(probs))  # 1.0
    """
    if temperature <= 0:
        raise ValueError(f"Temperature must be positive, got {temperature}")

    logits = np.asarray(logits, dtype=np.float64)

    # An empty axis has nothing to normalise
    if logits.size == 0:
        return logits.copy()

    # Step 1: Subtract maximum for numerical stability, then scale.
    # Scaling first can overflow to inf for a tiny temperature.
    max_logit = np.max(logits, axis=axis, keepdims=True)
    with np.errstate(over="ignore"):
        stable_logits = (logits - max_logit) / temperature

    # Step 2: Compute exponentials
    # exp(x - max) is always <= 1, preventing overflow
    exponentials = np.exp(stable_logits)

    # Step 3: Normalize to get probabilities
    sum_of_exponentials = np.sum(exponentials, axis=axis, keepdims=True)
    probabilities = exponentials / sum_of_exponentials

    return probabilities


def relu(x: np.ndarray) -> np.ndarray:
    """
    Compute ReLU (Rectified Linear Unit) activation.

    Mathematical Formula:
        ReLU(x) = max(0, x)

    Args:
        x: Input array of any shape.

    Returns:
        Output array of same shape with ReLU applied element-wise.

    Example:
        >>> x = np.array([-2.0, -1.0, 0.0, 1.0, 2.0])
        >>> relu(x)
        array([0., 0., 0., 1., 2.])
    """
    return np.maximum(0, x)
