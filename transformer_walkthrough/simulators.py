"""
Training and Inference Step Simulators

These small state machines narrate what happens during one training step and
during text generation. Each call to advance() performs exactly one named
step using the state left by the previous one, so a view can show the
intermediate results between button presses.

Nothing is learned: the "forward pass" uses the toy attention head and
feedforward block with freshly drawn weights, and "backpropagation" is a
fixed decay of the embedding values.

Training steps:
    Tokenization -> Embeddings -> Forward Pass -> Output Logits and Softmax
    -> Cross-Entropy Loss -> Backpropagation & Parameter Update

Inference steps:
    Tokenization & Embeddings -> Forward Pass -> Projection & Softmax
    -> Token Sampling -> Iterative Generation

Classes:
    StepSimulator: Shared step bookkeeping
    TrainingSimulator: One simulated training step
    InferenceSimulator: Prompt processing and autoregressive generation

Functions:
    cross_entropy_loss: Mean next-token cross-entropy
"""

import logging
from typing import Callable, List, Optional, Sequence

import numpy as np

from transformer_walkthrough.attention import AttentionHead, scaled_dot_product_attention
from transformer_walkthrough.config import WalkthroughConfig, make_rng
from transformer_walkthrough.feedforward import FeedForwardBlock, FeedForwardTrace
from transformer_walkthrough.layers import embed_tokens
from transformer_walkthrough.output import OutputProjection, sample_next_token
from transformer_walkthrough.tokenizer import Vocabulary

logger = logging.getLogger(__name__)


def cross_entropy_loss(probabilities: np.ndarray, targets: Sequence[int]) -> float:
    """
    Compute mean cross-entropy from predicted probabilities.

    Formula:
        loss = -mean_i(log(p_i[target_i] + 1e-9))

    Args:
        probabilities: (N, V) one distribution per position
        targets: N target token IDs

    Returns:
        Scalar loss value (average cross-entropy per token)
    """
    probabilities = np.asarray(probabilities, dtype=np.float64)
    targets = np.asarray(targets, dtype=np.int64)

    if probabilities.shape[0] != targets.shape[0]:
        raise ValueError(
            f"Got {probabilities.shape[0]} distributions for {targets.shape[0]} targets"
        )

    num_positions = probabilities.shape[0]
    correct_class_probs = probabilities[np.arange(num_positions), targets]

    # The small constant keeps log() finite when a probability underflows to 0
    log_probs = np.log(correct_class_probs + 1e-9)

    return float(-np.mean(log_probs))


class StepSimulator:
    """
    Step bookkeeping shared by both simulators.

    Subclasses define STEPS (display names) and return one handler per step
    from _handlers(). advance() runs the handler for the current step and
    moves on; once every step has run it does nothing.

    Attributes:
        step: Index of the next step to run
        config: WalkthroughConfig with dimensions and sampling settings
        vocabulary: Fixed vocabulary used to encode the prompt
        text: Input text
    """

    STEPS: Sequence[str] = ()

    def __init__(
        self,
        text: str,
        config: Optional[WalkthroughConfig] = None,
        vocabulary: Optional[Vocabulary] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.text = text
        self.config = config or WalkthroughConfig()
        self.vocabulary = vocabulary or Vocabulary()
        self.rng = rng if rng is not None else make_rng(self.config.seed)
        self.reset()

    def reset(self) -> None:
        """Return to step 0 with empty state."""
        self.step = 0
        self.token_ids: List[int] = []
        self.embeddings = np.zeros((0, self.config.embedding_dim))
        self.logits = np.zeros(0)
        self.probabilities = np.zeros(0)
        self.attention: Optional[AttentionHead] = None
        self.feedforward: Optional[FeedForwardTrace] = None

    def _handlers(self) -> List[Callable[[], None]]:
        raise NotImplementedError

    @property
    def is_complete(self) -> bool:
        return self.step >= len(self.STEPS)

    @property
    def current_step_name(self) -> str:
        """Name of the step advance() will run next, or "Completed"."""
        return "Completed" if self.is_complete else self.STEPS[self.step]

    def advance(self) -> bool:
        """
        Run the current step.

        Returns:
            True if a step ran, False if the simulator was already complete
        """
        if self.is_complete:
            return False

        logger.info(
            "%s step %d/%d: %s",
            type(self).__name__,
            self.step + 1,
            len(self.STEPS),
            self.STEPS[self.step],
        )
        self._handlers()[self.step]()
        self.step += 1
        return True

    def run(self) -> None:
        """Advance until every step has run."""
        while self.advance():
            pass

    def _embed(self, count: int) -> np.ndarray:
        return embed_tokens(range(count), self.config.embedding_dim, self.rng)

    def _forward_pass(self) -> None:
        """Self-attention then feedforward, each with a residual connection."""
        if self.embeddings.shape[0] == 0:
            logger.debug("No tokens; skipping forward pass")
            return

        x = self.embeddings
        self.attention = scaled_dot_product_attention(x, x, x)
        attended = x + self.attention.output

        block = FeedForwardBlock(self.config.embedding_dim, self.config.ffn_hidden_dim)
        self.feedforward = block.forward(attended, self.rng)
        self.embeddings = attended + self.feedforward.output


class TrainingSimulator(StepSimulator):
    """
    Walk through one training step on a short sentence.

    Each position is trained to predict the following token; the last
    position predicts <eos>.

    Attributes:
        targets: Next-token target IDs
        loss: Cross-entropy loss, None until computed or when there are no tokens
    """

    STEPS = (
        "Tokenization",
        "Embeddings",
        "Forward Pass (Transformer Blocks)",
        "Output Logits and Softmax",
        "Compute Cross-Entropy Loss",
        "Backpropagation & Parameter Update",
    )

    def reset(self) -> None:
        super().reset()
        self.targets: List[int] = []
        self.loss: Optional[float] = None

    def _handlers(self) -> List[Callable[[], None]]:
        return [
            self._tokenize,
            self._create_embeddings,
            self._forward_pass,
            self._project,
            self._compute_loss,
            self._update_parameters,
        ]

    def _tokenize(self) -> None:
        self.token_ids = self.vocabulary.encode(self.text)
        if self.token_ids:
            self.targets = self.token_ids[1:] + [self.vocabulary.eos_token_id]

    def _create_embeddings(self) -> None:
        self.embeddings = self._embed(len(self.token_ids))

    def _project(self) -> None:
        projection = OutputProjection(
            self.config.embedding_dim, self.vocabulary.vocabulary_size
        )
        self.logits, self.probabilities = projection.forward(self.embeddings, self.rng)

    def _compute_loss(self) -> None:
        if not self.token_ids:
            logger.debug("No tokens; loss left undefined")
            return
        self.loss = cross_entropy_loss(self.probabilities, self.targets)

    def _update_parameters(self) -> None:
        # Stand-in for a gradient step: shrink every value by the learning rate
        self.embeddings = self.embeddings - self.config.learning_rate * self.embeddings


class InferenceSimulator(StepSimulator):
    """
    Walk through prompt processing and autoregressive generation.

    The sequence never grows past config.max_length: longer prompts keep only
    their last max_length tokens, and both the sampling step and the
    generation loop stop at the bound. Generation also stops at <eos>.

    Attributes:
        generated_ids: Prompt IDs followed by sampled IDs
    """

    STEPS = (
        "Tokenization & Embeddings",
        "Forward Pass (Transformer Blocks)",
        "Projection & Softmax",
        "Token Sampling",
        "Iterative Generation",
    )

    def reset(self) -> None:
        super().reset()
        self.generated_ids: List[int] = []

    def _handlers(self) -> List[Callable[[], None]]:
        return [
            self._tokenize_and_embed,
            self._forward_pass,
            self._project,
            self._sample,
            self._generate,
        ]

    def _tokenize_and_embed(self) -> None:
        token_ids = self.vocabulary.encode(self.text)
        self.token_ids = token_ids[-self.config.max_length :]
        self.embeddings = self._embed(len(self.token_ids))
        self.generated_ids = list(self.token_ids)

    def _project(self) -> None:
        if self.embeddings.shape[0] == 0:
            self.logits = np.zeros(0)
            self.probabilities = np.zeros(0)
            return

        projection = OutputProjection(
            self.config.embedding_dim, self.vocabulary.vocabulary_size
        )
        self.logits, self.probabilities = projection.forward(
            self.embeddings[-1], self.rng, temperature=self.config.temperature
        )

    def _sample_from(self, probabilities: np.ndarray) -> int:
        return sample_next_token(
            probabilities,
            strategy=self.config.strategy,
            top_k=self.config.top_k,
            rng=self.rng,
        )

    def _sample(self) -> None:
        if self.probabilities.size == 0:
            logger.debug("No distribution to sample from")
            return
        if len(self.generated_ids) >= self.config.max_length:
            return
        self.generated_ids.append(self._sample_from(self.probabilities))

    def _generate(self) -> None:
        eos_token_id = self.vocabulary.eos_token_id
        block = FeedForwardBlock(self.config.embedding_dim, self.config.ffn_hidden_dim)
        projection = OutputProjection(
            self.config.embedding_dim, self.vocabulary.vocabulary_size
        )

        while len(self.generated_ids) < self.config.max_length:
            if self.generated_ids and self.generated_ids[-1] == eos_token_id:
                break

            # Re-embed a synthetic last token and push it through the head
            embedding = self._embed(1)
            trace = block.forward(embedding, self.rng)
            _, probabilities = projection.forward(
                (embedding + trace.output)[0],
                self.rng,
                temperature=self.config.temperature,
            )
            next_id = self._sample_from(probabilities)
            self.generated_ids.append(next_id)
            logger.debug("Generated token %d", next_id)

    @property
    def generated_words(self) -> List[str]:
        return self.vocabulary.decode(self.generated_ids)
