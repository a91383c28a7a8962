"""
Transformer Walkthrough: a toy numeric core for a visual tour of transformers

This package provides the small computations behind an educational,
step-by-step visualization of transformer internals, using only NumPy.
Random vectors and freshly drawn weights stand in for learned parameters;
the outputs are meant to be displayed, not trusted.

Modules:
    activations: Softmax (with temperature) and ReLU
    config: WalkthroughConfig and the random generator factory
    tokenizer: Word tokenizer (IDs from 101) and the simulator vocabulary
    layers: Random vectors, RandomLinear, sinusoidal positional encoding
    attention: Single-head scaled dot-product attention
    presentation: Hover state for the attention view
    feedforward: Expansion, ReLU, contraction block
    output: Output projection and sampling strategies
    simulators: Training and inference step state machines

Reference:
    "Attention Is All You Need" (Vaswani et al., 2017)
    https://arxiv.org/abs/1706.03762
"""

__version__ = "1.0.0"
__author__ = "Educational LLM Project"
