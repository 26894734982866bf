"""Edit classifier — per-document typed vs. bulk edit accounting.

All state is in-memory only and keyed by document identity. Stats for a
document are created on its first edit and drained (read and reset) when
the document is saved.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from .config import ThresholdsConfig


_WHITESPACE = re.compile(r"\s")

# Weights for the effective size of a save. Deletions are not rewarded.
TYPED_ADD_WEIGHT = 1.0
BULK_ADD_WEIGHT = 0.2
TYPED_REMOVE_WEIGHT = 0.0
BULK_REMOVE_WEIGHT = 0.0


# ═══════════════════════════════════════════════════════════════
#  Data types
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class EditHunk:
    """One content change.

    ``replaced_text`` must be read from the document *before* the change is
    applied; afterwards the removed text is gone.
    """

    text: str
    replaced_text: str = ""


class Magnitude(Enum):
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"
    EPIC = "Epic"


@dataclass
class EditStats:
    """Accumulated edit counts for one document."""

    lines_added: int = 0
    lines_removed: int = 0
    chars_added: int = 0
    chars_removed: int = 0

    typed_lines_added: int = 0
    typed_chars_added: int = 0
    bulk_lines_added: int = 0
    bulk_chars_added: int = 0

    typed_lines_removed: int = 0
    typed_chars_removed: int = 0
    bulk_lines_removed: int = 0
    bulk_chars_removed: int = 0

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) == 0 for f in fields(self))


def count_chars(text: str) -> int:
    """Count non-whitespace characters."""
    return len(_WHITESPACE.sub("", text))


# ═══════════════════════════════════════════════════════════════
#  Classifier
# ═══════════════════════════════════════════════════════════════


class EditClassifier:
    """Accumulates per-document edit stats split into typed and bulk buckets."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("dopamine.edits")
        self._stats: dict[str, EditStats] = {}

    def _get(self, doc_key: str) -> EditStats:
        if doc_key not in self._stats:
            self._stats[doc_key] = EditStats()
        return self._stats[doc_key]

    def on_edit(self, doc_key: str, hunks: Iterable[EditHunk], bulk_threshold: int) -> None:
        """Fold a batch of content changes into the document's stats."""
        stats = self._get(doc_key)

        for hunk in hunks:
            lines_added = hunk.text.count("\n")
            chars_added = count_chars(hunk.text)
            lines_removed = hunk.replaced_text.count("\n")
            chars_removed = count_chars(hunk.replaced_text)

            # Lines only count when non-whitespace content moved with them
            if chars_added > 0:
                stats.lines_added += lines_added
                stats.chars_added += chars_added
            if chars_removed > 0:
                stats.lines_removed += lines_removed
                stats.chars_removed += chars_removed

            if chars_added > bulk_threshold:
                stats.bulk_lines_added += lines_added
                stats.bulk_chars_added += chars_added
            elif chars_added > 0:
                # Includes small autocompletes
                stats.typed_lines_added += lines_added
                stats.typed_chars_added += chars_added

            if chars_removed > bulk_threshold:
                stats.bulk_lines_removed += lines_removed
                stats.bulk_chars_removed += chars_removed
            elif chars_removed > 0:
                stats.typed_lines_removed += lines_removed
                stats.typed_chars_removed += chars_removed

    def peek(self, doc_key: str) -> EditStats:
        """Return a copy of the current stats without resetting them."""
        stats = self._stats.get(doc_key)
        return replace(stats) if stats is not None else EditStats()

    def drain(self, doc_key: str) -> EditStats:
        """Return the document's stats and forget them."""
        stats = self._stats.pop(doc_key, None)
        if stats is None:
            return EditStats()
        self._logger.debug(
            "Drained %s: +%d chars (%d typed, %d bulk), -%d chars",
            doc_key, stats.chars_added, stats.typed_chars_added,
            stats.bulk_chars_added, stats.chars_removed,
        )
        return stats


# ═══════════════════════════════════════════════════════════════
#  Magnitude
# ═══════════════════════════════════════════════════════════════


def effective_size(stats: EditStats) -> tuple[float, float]:
    """Return weighted ``(lines, chars)`` for a set of stats."""
    lines = (
        stats.typed_lines_added * TYPED_ADD_WEIGHT
        + stats.bulk_lines_added * BULK_ADD_WEIGHT
        + stats.typed_lines_removed * TYPED_REMOVE_WEIGHT
        + stats.bulk_lines_removed * BULK_REMOVE_WEIGHT
    )
    chars = (
        stats.typed_chars_added * TYPED_ADD_WEIGHT
        + stats.bulk_chars_added * BULK_ADD_WEIGHT
        + stats.typed_chars_removed * TYPED_REMOVE_WEIGHT
        + stats.bulk_chars_removed * BULK_REMOVE_WEIGHT
    )
    return lines, chars


def classify_magnitude(stats: EditStats, thresholds: ThresholdsConfig) -> Magnitude:
    """Map stats to a tier. A value equal to a threshold does not reach that tier."""
    lines, chars = effective_size(stats)
    for tier, pair in (
        (Magnitude.EPIC, thresholds.epic),
        (Magnitude.LARGE, thresholds.large),
        (Magnitude.MEDIUM, thresholds.medium),
    ):
        if lines > pair.lines or chars > pair.chars:
            return tier
    return Magnitude.SMALL
