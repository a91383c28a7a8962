"""
Tests for the training and inference step simulators.

Tests cover:
- Step ordering, advancing past the end, reset
- State produced by each step
- Cross-entropy loss
- Generation length bound and <eos> stop
- Empty prompts
"""

import numpy as np
import pytest


def make_config(**overrides):
    from transformer_walkthrough.config import WalkthroughConfig

    return WalkthroughConfig(**overrides)


class TestCrossEntropyLoss:
    """Test suite for cross_entropy_loss."""

    def test_perfect_prediction(self):
        """Probability 1 on the target gives ~0 loss."""
        from transformer_walkthrough.simulators import cross_entropy_loss

        loss = cross_entropy_loss(np.array([[0.0, 1.0], [1.0, 0.0]]), [1, 0])

        assert loss == pytest.approx(0.0, abs=1e-6)

    def test_uniform_prediction(self):
        """A uniform distribution over V gives log(V)."""
        from transformer_walkthrough.simulators import cross_entropy_loss

        loss = cross_entropy_loss(np.full((3, 4), 0.25), [0, 1, 2])

        assert loss == pytest.approx(np.log(4), rel=1e-6)

    def test_length_mismatch(self):
        from transformer_walkthrough.simulators import cross_entropy_loss

        with pytest.raises(ValueError):
            cross_entropy_loss(np.full((2, 4), 0.25), [0])


class TestTrainingSimulator:
    """Test suite for TrainingSimulator."""

    def test_steps_in_order(self):
        """Each advance runs one named step."""
        from transformer_walkthrough.simulators import TrainingSimulator

        simulator = TrainingSimulator("the cat sat", rng=np.random.default_rng(0))
        seen = []
        while not simulator.is_complete:
            seen.append(simulator.current_step_name)
            assert simulator.advance()

        assert seen == list(TrainingSimulator.STEPS)
        assert simulator.current_step_name == "Completed"

    def test_advance_past_end_is_noop(self):
        """Advancing a completed simulator changes nothing."""
        from transformer_walkthrough.simulators import TrainingSimulator

        simulator = TrainingSimulator("the cat sat", rng=np.random.default_rng(1))
        simulator.run()
        embeddings = simulator.embeddings.copy()

        assert simulator.advance() is False
        assert simulator.step == len(TrainingSimulator.STEPS)
        assert np.array_equal(simulator.embeddings, embeddings)

    def test_tokenization_step(self):
        """The first step encodes the text and sets next-token targets."""
        from transformer_walkthrough.simulators import TrainingSimulator

        simulator = TrainingSimulator("the cat sat", rng=np.random.default_rng(2))
        simulator.advance()

        assert simulator.token_ids == [0, 1, 2]
        assert simulator.targets == [1, 2, 4]
        assert simulator.embeddings.shape == (0, 8), "Embeddings come in step 2"

    def test_full_run_state(self):
        """After all steps, logits, probabilities and loss are populated."""
        from transformer_walkthrough.simulators import TrainingSimulator

        simulator = TrainingSimulator(
            "the cat sat", config=make_config(embedding_dim=8), rng=np.random.default_rng(3)
        )
        simulator.run()

        assert simulator.embeddings.shape == (3, 8)
        assert simulator.logits.shape == (3, 5)
        assert np.allclose(simulator.probabilities.sum(axis=-1), 1.0)
        assert simulator.loss is not None and simulator.loss >= 0
        assert simulator.attention is not None
        assert np.allclose(simulator.attention.weights.sum(axis=-1), 1.0)

    def test_backprop_is_fixed_decay(self):
        """The update step scales every embedding value by (1 - learning_rate)."""
        from transformer_walkthrough.simulators import TrainingSimulator

        simulator = TrainingSimulator(
            "the cat", config=make_config(learning_rate=0.01), rng=np.random.default_rng(4)
        )
        for _ in range(5):
            simulator.advance()
        before = simulator.embeddings.copy()
        simulator.advance()

        assert np.allclose(simulator.embeddings, before * 0.99)

    def test_reset(self):
        """Reset returns to step 0 with empty state."""
        from transformer_walkthrough.simulators import TrainingSimulator

        simulator = TrainingSimulator("the cat sat", rng=np.random.default_rng(5))
        simulator.run()
        simulator.reset()

        assert simulator.step == 0
        assert simulator.token_ids == []
        assert simulator.loss is None
        assert simulator.embeddings.size == 0
        assert simulator.probabilities.size == 0

    def test_empty_text(self):
        """An empty sentence runs every step without computing a loss."""
        from transformer_walkthrough.simulators import TrainingSimulator

        simulator = TrainingSimulator("", rng=np.random.default_rng(6))
        simulator.run()

        assert simulator.is_complete
        assert simulator.token_ids == []
        assert simulator.loss is None


class TestInferenceSimulator:
    """Test suite for InferenceSimulator."""

    def test_steps_in_order(self):
        from transformer_walkthrough.simulators import InferenceSimulator

        simulator = InferenceSimulator("the", rng=np.random.default_rng(0))
        seen = []
        while simulator.advance():
            seen.append(simulator.STEPS[simulator.step - 1])

        assert seen == list(InferenceSimulator.STEPS)

    def test_projection_step(self):
        """Projection gives a distribution over the vocabulary for the last token."""
        from transformer_walkthrough.simulators import InferenceSimulator

        simulator = InferenceSimulator(
            "the cat", config=make_config(temperature=0.5), rng=np.random.default_rng(1)
        )
        for _ in range(3):
            simulator.advance()

        assert simulator.logits.shape == (5,)
        assert np.isclose(simulator.probabilities.sum(), 1.0)

    def test_sampling_step_appends_one_token(self):
        """Token sampling appends exactly one ID to the prompt."""
        from transformer_walkthrough.simulators import InferenceSimulator

        simulator = InferenceSimulator(
            "the cat", config=make_config(strategy="greedy"), rng=np.random.default_rng(2)
        )
        for _ in range(4):
            simulator.advance()

        assert simulator.generated_ids[:2] == [0, 1]
        assert len(simulator.generated_ids) == 3
        assert simulator.generated_ids[2] == int(np.argmax(simulator.probabilities))

    @pytest.mark.parametrize("strategy", ["greedy", "top_k", "categorical"])
    @pytest.mark.parametrize("max_length", [1, 2, 5, 10])
    def test_generation_respects_max_length(self, strategy, max_length):
        """Generation always ends with at most max_length IDs."""
        from transformer_walkthrough.simulators import InferenceSimulator

        for seed in range(5):
            simulator = InferenceSimulator(
                "the cat sat",
                config=make_config(strategy=strategy, max_length=max_length, top_k=2),
                rng=np.random.default_rng(seed),
            )
            simulator.run()

            assert len(simulator.generated_ids) <= max_length

    def test_generation_stops_at_eos_or_length(self):
        """The loop ends on <eos> or at the length bound, never earlier."""
        from transformer_walkthrough.simulators import InferenceSimulator

        simulator = InferenceSimulator(
            "the", config=make_config(strategy="categorical"), rng=np.random.default_rng(7)
        )
        simulator.run()
        generated = simulator.generated_ids
        eos = simulator.vocabulary.eos_token_id

        assert len(generated) == simulator.config.max_length or generated[-1] == eos
        assert eos not in generated[1:-1], "Generation should stop at the first <eos>"

    def test_long_prompt_is_truncated(self):
        """Prompts longer than max_length keep only their last tokens."""
        from transformer_walkthrough.simulators import InferenceSimulator

        simulator = InferenceSimulator(
            "the cat sat the cat", config=make_config(max_length=3), rng=np.random.default_rng(8)
        )
        simulator.advance()

        assert simulator.token_ids == [2, 0, 1]

    def test_empty_prompt_still_generates(self):
        """An empty prompt skips projection and sampling but still generates."""
        from transformer_walkthrough.simulators import InferenceSimulator

        simulator = InferenceSimulator(
            "", config=make_config(max_length=4), rng=np.random.default_rng(9)
        )
        for _ in range(4):
            simulator.advance()
        assert simulator.generated_ids == []

        simulator.advance()
        assert 1 <= len(simulator.generated_ids) <= 4

    def test_generated_words(self):
        """Generated IDs decode through the vocabulary."""
        from transformer_walkthrough.simulators import InferenceSimulator

        simulator = InferenceSimulator("the cat", rng=np.random.default_rng(10))
        simulator.run()

        assert simulator.generated_words[:2] == ["the", "cat"]

    def test_seeded_config_is_repeatable(self):
        """With a seed in the config, two runs generate the same IDs."""
        from transformer_walkthrough.simulators import InferenceSimulator

        config = make_config(seed=123, strategy="categorical")
        first = InferenceSimulator("the", config=config)
        second = InferenceSimulator("the", config=config)
        first.run()
        second.run()

        assert first.generated_ids == second.generated_ids
