"""Render resolved constraints as Gopkg.toml ``[[override]]`` blocks."""
from __future__ import annotations

import json
from typing import Iterable, List, Optional, Sequence

from versioning.models import ResolvedConstraint


def toml_string(value: str) -> str:
    """Quote ``value`` as a TOML basic string.

    JSON escaping covers every control character TOML forbids except DEL.
    """
    return json.dumps(value, ensure_ascii=False).replace("\x7f", "\\u007F")


class OverrideEmitter:
    """Serialize constraints in input order.

    Args:
        marker: metadata key written into every block so later runs can find
            and replace what this run injected. ``None`` writes no metadata.
        note: comment lines written once before the blocks.
    """

    def __init__(self, marker: Optional[str] = None, note: Sequence[str] = ()):
        self.marker = marker
        self.note = list(note)

    def format_block(self, constraint: ResolvedConstraint) -> str:
        lines = [
            "[[override]]",
            f"  name = {toml_string(constraint.name)}",
            f"  {constraint.kind.value} = {toml_string(constraint.value)}",
        ]
        if constraint.source:
            lines.append(f"  source = {toml_string(constraint.source)}")
        if self.marker:
            lines.append("  [override.metadata]")
            lines.append(f"    {self.marker} = true")
        return "\n".join(lines) + "\n"

    def note_lines(self) -> List[str]:
        """The rendered NOTE comment, one entry per line."""
        return [f"# NOTE: {line}" if i == 0 else f"# {line}" for i, line in enumerate(self.note)]

    def emit(self, constraints: Iterable[ResolvedConstraint]) -> str:
        """Return the document fragment; empty when there is nothing to emit."""
        blocks: List[str] = [self.format_block(c) for c in constraints]
        if not blocks:
            return ""
        parts = []
        if self.note:
            parts.append("\n" + "\n".join(self.note_lines()) + "\n")
        for block in blocks:
            parts.append("\n" + block)
        return "".join(parts)
