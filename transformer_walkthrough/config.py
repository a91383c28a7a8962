"""
Walkthrough Configuration

All knobs the rendering layer can surface live in a single dataclass, so a
view (or the demo script) can build one, validate it once at the boundary,
and hand it to every stage of the pipeline.

Classes:
    WalkthroughConfig: Dimensions and sampling settings for the walkthrough

Functions:
    make_rng: Create the random generator that drives every stage
"""

import json
import logging
import numbers
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)

SAMPLING_STRATEGIES = ("greedy", "top_k", "categorical")

INTEGER_FIELDS = (
    "embedding_dim",
    "attention_dim",
    "ffn_input_dim",
    "ffn_hidden_dim",
    "projection_dim",
    "top_k",
    "max_length",
)


@dataclass
class WalkthroughConfig:
    """
    Configuration for the transformer walkthrough.

    Each view of the walkthrough uses its own small fixed dimension; those
    sizes are kept as defaults so the numbers stay readable on screen.

    Attributes:
        embedding_dim: Size of token embeddings in the embedding and simulator views
        attention_dim: Size of the Q/K/V vectors in the attention view
        ffn_input_dim: Input (and output) size of the feedforward block
        ffn_hidden_dim: Expanded size of the feedforward block
        projection_dim: Size of the hidden vector fed to the output projection
        temperature: Softmax temperature for the output distribution (> 0)
        top_k: Candidate count for top-k sampling (clamped to the vocabulary)
        max_length: Upper bound on the inference sequence length
        strategy: One of "greedy", "top_k" (or "top-k"), "categorical"
        learning_rate: Decay factor of the simulated parameter update
        seed: Optional seed; None keeps every run different
    """

    embedding_dim: int = 8
    attention_dim: int = 6
    ffn_input_dim: int = 6
    ffn_hidden_dim: int = 8
    projection_dim: int = 16
    temperature: float = 1.0
    top_k: int = 3
    max_length: int = 10
    strategy: str = "greedy"
    learning_rate: float = 0.01
    seed: Optional[int] = None

    def __post_init__(self):
        # JSON configs can carry null or strings; reject those before comparing
        for name in INTEGER_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ValueError(f"{name} must be an integer, got {value!r}")

        for name in ("temperature", "learning_rate"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ValueError(f"{name} must be a number, got {value!r}")

        if self.seed is not None and (
            isinstance(self.seed, bool) or not isinstance(self.seed, numbers.Integral)
        ):
            raise ValueError(f"seed must be an integer or None, got {self.seed!r}")

        if not isinstance(self.strategy, str):
            raise ValueError(f"strategy must be a string, got {self.strategy!r}")
        self.strategy = self.strategy.replace("-", "_")

        for name in (
            "embedding_dim",
            "attention_dim",
            "ffn_input_dim",
            "ffn_hidden_dim",
            "projection_dim",
        ):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value}")

        if self.temperature <= 0:
            raise ValueError(f"Temperature must be positive, got {self.temperature}")

        if self.max_length < 1:
            raise ValueError(f"max_length must be at least 1, got {self.max_length}")

        if self.strategy not in SAMPLING_STRATEGIES:
            raise ValueError(
                f"Unknown sampling strategy '{self.strategy}', "
                f"expected one of {', '.join(SAMPLING_STRATEGIES)}"
            )

        # top_k is clamped when sampling, where the vocabulary size is known
        if self.top_k < 1:
            logger.debug("top_k=%d will be clamped to 1 at sampling time", self.top_k)

    def to_dict(self) -> Dict[str, Any]:
        """Return the configuration as a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "WalkthroughConfig":
        """
        Build a configuration from a dictionary.

        Unknown keys are ignored so that configs written by a newer version
        still load.
        """
        known = {field.name for field in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            logger.debug("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in values.items() if k in known})

    def save(self, filepath: str) -> None:
        """Save the configuration to a JSON file."""
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> "WalkthroughConfig":
        """Load a configuration from a JSON file."""
        with open(filepath, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """
    Create the random generator passed to every stage.

    With seed=None every step looks different; tests pass a seed for
    repeatability.
    """
    return np.random.default_rng(seed)
