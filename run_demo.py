#!/usr/bin/env python3
"""
Transformer Walkthrough Demo Script

This script narrates every stage of the toy transformer pipeline in the
terminal, in the order the visual walkthrough presents them:
1. Tokenization
2. Embeddings and positional encoding
3. Attention
4. Feedforward block
5. Output projection and sampling
6. Training step simulator
7. Inference step simulator

Usage:
    python run_demo.py [mode] [options]

    Modes:
        all          - Run every stage (default)
        tokenize     - Word tokenization
        embed        - Embeddings with positional encoding
        attention    - Single attention head
        feedforward  - Feedforward block
        output       - Output projection and sampling
        train        - Training step simulator
        infer        - Inference step simulator

Example:
    python run_demo.py attention --text "the cat sat" --seed 42
"""

import argparse
import logging
import sys

import numpy as np

from transformer_walkthrough.attention import random_attention_head
from transformer_walkthrough.config import (
    SAMPLING_STRATEGIES,
    WalkthroughConfig,
    make_rng,
)
from transformer_walkthrough.feedforward import FeedForwardBlock
from transformer_walkthrough.layers import embed_tokens, random_vectors
from transformer_walkthrough.output import project_and_sample, random_hidden_vector
from transformer_walkthrough.presentation import AttentionHover
from transformer_walkthrough.simulators import InferenceSimulator, TrainingSimulator
from transformer_walkthrough.tokenizer import WordTokenizer

DEFAULT_TEXT = "The quick brown fox jumps over the lazy dog"
OUTPUT_VOCABULARY = ["the", "a", "cat", "dog", "sat", "on", "mat", "runs", "fast", "slow"]

MODES = ["all", "tokenize", "embed", "attention", "feedforward", "output", "train", "infer"]


def print_header(text: str):
    """Print a formatted header."""
    print()
    print("=" * 60)
    print(text)
    print("=" * 60)
    print()


def print_section(text: str):
    """Print a section divider."""
    print()
    print("-" * 40)
    print(text)
    print("-" * 40)


def format_row(values: np.ndarray) -> str:
    return "  ".join(f"{v:6.3f}" for v in values)


def demo_tokenize(text: str):
    print_section("1. Tokenization")
    tokens = WordTokenizer().tokenize(text)
    if not tokens:
        print("No tokens.")
        return tokens

    for token in tokens:
        print(f"  {token.word!r:>12} -> {token.id}")
    print()
    print("Repeated words reuse their ID; 'The' and 'the' are different words.")
    return tokens


def demo_embed(text: str, config: WalkthroughConfig, rng: np.random.Generator):
    print_section("2. Embeddings + Positional Encoding")
    tokens = WordTokenizer().tokenize(text)
    if not tokens:
        print("No tokens.")
        return

    embeddings = embed_tokens(tokens, config.embedding_dim, rng)
    print(f"Embedding shape: {embeddings.shape}")
    for token, vector in zip(tokens, embeddings):
        print(f"  {token.word:>10}: {format_row(vector)}")


def demo_attention(text: str, config: WalkthroughConfig, rng: np.random.Generator):
    print_section("3. Attention")
    tokens = WordTokenizer().tokenize(text)
    if not tokens:
        print("No tokens.")
        return

    head = random_attention_head(len(tokens), config.attention_dim, rng)

    print("Attention weights (each row sums to 1):")
    for token, row in zip(tokens, head.weights):
        print(f"  {token.word:>10}: {format_row(row)}")
    print()

    hover = AttentionHover(kind="score", row=0, column=len(tokens) - 1)
    terms = hover.contributions(head)
    print(
        f"Score[{hover.row}][{hover.column}] = {head.scores[hover.row, hover.column]:.3f}"
        f" is the sum of q*k/sqrt(d) terms:"
    )
    print(f"  {format_row(terms)}")


def demo_feedforward(text: str, config: WalkthroughConfig, rng: np.random.Generator):
    print_section("4. Feedforward Block")
    tokens = WordTokenizer().tokenize(text) or WordTokenizer().tokenize(
        "Hello world MLP"
    )

    inputs = random_vectors(len(tokens), config.ffn_input_dim, rng, low=-1.0, high=1.0)
    block = FeedForwardBlock(config.ffn_input_dim, config.ffn_hidden_dim)
    trace = block.forward(inputs, rng)

    print(
        f"Input (d={block.input_dimension}) -> Hidden (d={block.hidden_dimension})"
        f" -> ReLU -> Output (d={block.input_dimension})"
    )
    for token, activated in zip(tokens, trace.activated):
        active = int(np.count_nonzero(activated))
        print(f"  {token.word:>10}: {active}/{block.hidden_dimension} hidden units active")


def demo_output(config: WalkthroughConfig, rng: np.random.Generator):
    print_section("5. Output Projection + Sampling")
    hidden = random_hidden_vector(config.projection_dim, rng)
    prediction = project_and_sample(
        hidden,
        len(OUTPUT_VOCABULARY),
        rng,
        temperature=config.temperature,
        strategy=config.strategy,
        top_k=config.top_k,
    )

    print(f"Temperature: {config.temperature}  Strategy: {config.strategy}")
    order = np.argsort(-prediction.probabilities, kind="stable")
    for index in order:
        marker = "<-" if index == prediction.token_index else ""
        print(
            f"  {OUTPUT_VOCABULARY[index]:>6}: p={prediction.probabilities[index]:.3f}"
            f" logit={prediction.logits[index]:7.3f} {marker}"
        )


def demo_train(text: str, config: WalkthroughConfig, rng: np.random.Generator):
    print_section("6. Training Sequence")
    simulator = TrainingSimulator(text, config=config, rng=rng)

    while not simulator.is_complete:
        name = simulator.current_step_name
        simulator.advance()
        print(f"  Step {simulator.step}/{len(simulator.STEPS)}: {name}")

    print(f"  Token IDs: {simulator.token_ids}")
    if simulator.loss is None:
        print("  Loss: n/a (no tokens)")
    else:
        print(f"  Loss: {simulator.loss:.4f}")


def demo_infer(text: str, config: WalkthroughConfig, rng: np.random.Generator):
    print_section("7. Inference Sequence")
    simulator = InferenceSimulator(text, config=config, rng=rng)

    while not simulator.is_complete:
        name = simulator.current_step_name
        simulator.advance()
        print(f"  Step {simulator.step}/{len(simulator.STEPS)}: {name}")

    print(f"  Generated IDs: {simulator.generated_ids}")
    print(f"  Generated: {' '.join(simulator.generated_words)}")


def build_config(args) -> WalkthroughConfig:
    values = WalkthroughConfig.load(args.config).to_dict() if args.config else {}
    overrides = {
        "embedding_dim": args.dimension,
        "strategy": args.strategy,
        "temperature": args.temperature,
        "top_k": args.top_k,
        "max_length": args.max_length,
        "seed": args.seed,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return WalkthroughConfig.from_dict(values)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Transformer Walkthrough Demo")
    parser.add_argument(
        "mode", nargs="?", default="all", choices=MODES, help="Stage to run"
    )
    parser.add_argument("--text", default=DEFAULT_TEXT, help="Input text")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--dimension", type=int, default=None, help="Embedding size")
    parser.add_argument(
        "--strategy",
        default=None,
        choices=list(SAMPLING_STRATEGIES),
        help="Sampling strategy",
    )
    parser.add_argument("--temperature", type=float, default=None)
    parser.add_argument("--top-k", dest="top_k", type=int, default=None)
    parser.add_argument("--max-length", dest="max_length", type=int, default=None)
    parser.add_argument("--config", default=None, help="JSON config file")
    parser.add_argument("--verbose", action="store_true", help="Log each step")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    rng = make_rng(config.seed)

    print_header("Transformer Walkthrough")
    print(f"Text: {args.text!r}")
    print(f"Mode: {args.mode}")

    run_all = args.mode == "all"
    if run_all or args.mode == "tokenize":
        demo_tokenize(args.text)
    if run_all or args.mode == "embed":
        demo_embed(args.text, config, rng)
    if run_all or args.mode == "attention":
        demo_attention(args.text, config, rng)
    if run_all or args.mode == "feedforward":
        demo_feedforward(args.text, config, rng)
    if run_all or args.mode == "output":
        demo_output(config, rng)
    if run_all or args.mode == "train":
        demo_train(args.text if args.mode == "train" else "the cat sat", config, rng)
    if run_all or args.mode == "infer":
        demo_infer(args.text if args.mode == "infer" else "the", config, rng)

    print("\nDone!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
