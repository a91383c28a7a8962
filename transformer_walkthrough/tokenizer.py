"""
Word-Level Tokenizers

Two toy tokenizers drive the walkthrough:

1. WordTokenizer assigns incrementing IDs to whitespace-separated words the
   first time each surface form is seen within one call. Nothing is learned
   and IDs are not stable across calls; the point is to show that repeated
   words map to the same ID.
2. Vocabulary is a fixed word list used by the training and inference
   simulators, with special tokens for padding and end of sequence.

Real models use subword tokenizers such as BPE:
    "Neural Machine Translation of Rare Words with Subword Units" (Sennrich et al., 2016)
    https://arxiv.org/abs/1508.07909

Classes:
    Token: A word and its integer ID
    WordTokenizer: Per-call word -> ID assignment starting at 101
    Vocabulary: Fixed vocabulary with encode/decode
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

FIRST_TOKEN_ID = 101


@dataclass(frozen=True)
class Token:
    """A single token: the surface word and its integer ID."""

    word: str
    id: int


class WordTokenizer:
    """
    Whitespace tokenizer with per-call ID assignment.

    No normalization is applied: "The" and "the", or "dog" and "dog.",
    receive different IDs.

    Example:
        >>> WordTokenizer().tokenize("a a b")
        [Token(word='a', id=101), Token(word='a', id=101), Token(word='b', id=102)]
    """

    def __init__(self, first_id: int = FIRST_TOKEN_ID):
        self.first_id = first_id

    def tokenize(self, text: str) -> List[Token]:
        """
        Split text on whitespace and assign IDs.

        Args:
            text: Raw input text

        Returns:
            Tokens in input order. Empty or whitespace-only text gives [].
        """
        token_to_id: Dict[str, int] = {}
        next_token_id = self.first_id
        tokens = []

        for word in text.split():
            if word not in token_to_id:
                token_to_id[word] = next_token_id
                next_token_id += 1
            tokens.append(Token(word=word, id=token_to_id[word]))

        return tokens

    def encode(self, text: str) -> List[int]:
        """Return only the token IDs for text."""
        return [token.id for token in self.tokenize(text)]


def tokenize(text: str) -> List[Token]:
    """Tokenize text with a default WordTokenizer."""
    return WordTokenizer().tokenize(text)


class Vocabulary:
    """
    Fixed vocabulary for the step simulators.

    Words are lowercased before lookup and anything unknown maps to the
    padding token.

    Special Tokens:
        <pad>: Stand-in for out-of-vocabulary words
        <eos>: End of sequence; stops generation

    Attributes:
        words: Vocabulary entries in ID order
        token_to_id: Dict mapping word -> ID
    """

    PAD_TOKEN = "<pad>"
    EOS_TOKEN = "<eos>"
    UNK_TOKEN = "<unk>"

    DEFAULT_WORDS = ("the", "cat", "sat", PAD_TOKEN, EOS_TOKEN)

    def __init__(self, words: Optional[Sequence[str]] = None):
        words = list(words if words is not None else self.DEFAULT_WORDS)

        for special in (self.PAD_TOKEN, self.EOS_TOKEN):
            if special not in words:
                words.append(special)

        if len(set(words)) != len(words):
            raise ValueError("Vocabulary words must be unique")

        self.words: List[str] = words
        self.token_to_id: Dict[str, int] = {word: i for i, word in enumerate(words)}

    def __len__(self) -> int:
        return len(self.words)

    @property
    def vocabulary_size(self) -> int:
        """Return the size of the vocabulary."""
        return len(self.words)

    @property
    def pad_token_id(self) -> int:
        return self.token_to_id[self.PAD_TOKEN]

    @property
    def eos_token_id(self) -> int:
        return self.token_to_id[self.EOS_TOKEN]

    def encode(self, text: str) -> List[int]:
        """
        Convert text to vocabulary IDs.

        Args:
            text: Input text; case is ignored

        Returns:
            One ID per whitespace-separated word
        """
        return [
            self.token_to_id.get(word, self.pad_token_id)
            for word in text.lower().split()
        ]

    def decode(self, token_ids: Sequence[int]) -> List[str]:
        """Map IDs back to words; IDs outside the vocabulary become <unk>."""
        return [
            self.words[token_id] if 0 <= token_id < len(self.words) else self.UNK_TOKEN
            for token_id in token_ids
        ]
