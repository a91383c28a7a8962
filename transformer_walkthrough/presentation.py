"""
Presentation State for the Attention View

Hovering a cell of the score, weight or output matrix selects one
(row, column) pair. The renderer asks this object which Q and K rows to
highlight and, for score cells, which per-dimension terms make up the score.
It only reads from an AttentionHead and never changes it.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from transformer_walkthrough.attention import AttentionHead, score_contributions

HOVER_KINDS = ("score", "weight", "output")


@dataclass(frozen=True)
class AttentionHover:
    """
    The hovered cell of the attention view.

    Attributes:
        kind: Which matrix is hovered: "score", "weight" or "output"
        row: Query (token) index of the hovered cell
        column: Key index for score/weight cells, value dimension for output cells
    """

    kind: str
    row: int
    column: int = 0

    def __post_init__(self):
        if self.kind not in HOVER_KINDS:
            raise ValueError(
                f"Unknown hover kind '{self.kind}', expected one of {HOVER_KINDS}"
            )

    def highlights_query_row(self, index: int) -> bool:
        # Every hover kind is driven by one query row
        return self.row == index

    def highlights_key_row(self, index: int) -> bool:
        return self.kind in ("score", "weight") and self.column == index

    def contributions(self, head: AttentionHead) -> Optional[np.ndarray]:
        """Per-dimension score terms for score hovers, None otherwise."""
        if self.kind != "score":
            return None
        return score_contributions(head, self.row, self.column)

    def contribution_scale(self, head: AttentionHead) -> float:
        """Largest absolute contribution, used to size bars; at least 1e-6."""
        terms = self.contributions(head)
        if terms is None or terms.size == 0:
            return 1.0
        return max(float(np.max(np.abs(terms))), 1e-6)
