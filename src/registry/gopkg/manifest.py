"""Gopkg.toml document store.

The document is parsed with tomllib for reading, but edited as text so that
hand-written tables, comments and formatting survive a round trip. Each
``[[override]]`` / ``[[constraint]]`` header found in the text is paired with
the table at the same index in the parsed document; a mismatch (for instance
inline-table arrays) is reported rather than guessed at.
"""
from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

try:
    import tomllib as toml  # type: ignore
except ImportError:  # Python < 3.11
    import tomli as toml  # type: ignore

from common.errors import ConfigurationError
from versioning.models import ConstraintKind, GopkgConstraint, ResolvedConstraint

from .emitter import OverrideEmitter

logger = logging.getLogger(__name__)

_TABLE_ARRAY_RE = re.compile(r"^\s*\[\[\s*([A-Za-z0-9_\-]+)\s*\]\]\s*(?:#.*)?$")
_TABLE_RE = re.compile(r"^\s*\[\s*([A-Za-z0-9_\-]+)(?:\s*\.\s*[A-Za-z0-9_\-\"]+)*\s*\]\s*(?:#.*)?$")


def _is_content(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")


@dataclass
class _Block:
    """Line span ``[start, end)`` of one array-of-tables element."""
    kind: str
    index: int
    start: int
    end: int


def decode_constraint(table: Dict[str, Any]) -> GopkgConstraint:
    """Decode one ``[[constraint]]`` or ``[[override]]`` table."""
    metadata = table.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ConfigurationError(f"metadata of {table.get('name', '?')} must be a table")
    return GopkgConstraint(
        name=str(table.get("name", "")),
        branch=str(table.get("branch", "")),
        revision=str(table.get("revision", "")),
        version=str(table.get("version", "")),
        source=str(table.get("source", "")),
        metadata=dict(metadata),
    )


class GopkgManifest:
    """A parsed Gopkg.toml together with its original text."""

    def __init__(self, text: str):
        self.text = text
        try:
            self.data: Dict[str, Any] = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigurationError(f"error decoding Gopkg.toml: {exc}") from exc
        self.constraints = [decode_constraint(t) for t in self._tables("constraint")]
        self.overrides = [decode_constraint(t) for t in self._tables("override")]

    @classmethod
    def from_file(cls, path: str) -> "GopkgManifest":
        with open(path, "r", encoding="utf-8") as handle:
            return cls(handle.read())

    def _tables(self, kind: str) -> List[Dict[str, Any]]:
        tables = self.data.get(kind, [])
        if not isinstance(tables, list) or not all(isinstance(t, dict) for t in tables):
            raise ConfigurationError(f"{kind} entries of Gopkg.toml must be tables")
        return tables

    def marked_constraints(self, marker: str) -> List[GopkgConstraint]:
        """Constraints whose metadata carries ``marker``, in document order."""
        return [c for c in self.constraints if c.has_marker(marker)]

    def _blocks(self, lines: Sequence[str]) -> List[_Block]:
        blocks: List[_Block] = []
        counters: Dict[str, int] = {}
        current: Optional[_Block] = None
        last_content = 0

        def close(block: Optional[_Block]) -> None:
            if block is not None:
                block.end = last_content + 1
                blocks.append(block)

        for lineno, line in enumerate(lines):
            array_match = _TABLE_ARRAY_RE.match(line)
            table_match = None if array_match else _TABLE_RE.match(line)
            if array_match:
                close(current)
                kind = array_match.group(1)
                current = _Block(kind, counters.get(kind, 0), lineno, lineno + 1)
                counters[kind] = current.index + 1
            elif table_match and not (current and table_match.group(1) == current.kind):
                close(current)
                current = None
            if _is_content(line):
                last_content = lineno
        close(current)

        for kind in ("constraint", "override"):
            found = counters.get(kind, 0)
            expected = len(self._tables(kind))
            if found != expected:
                raise ConfigurationError(
                    f"cannot edit Gopkg.toml: found {found} [[{kind}]] headers for {expected} {kind} tables"
                )
        return blocks

    def _rewrite(self, lines: List[str], drop: Iterable[_Block], replace: Optional[Dict[int, str]] = None) -> str:
        """Return the text with ``drop`` spans removed and ``replace`` spans substituted."""
        replace = replace or {}
        skip = {}
        for block in drop:
            skip[block.start] = (block.end, replace.get(block.start))
        out: List[str] = []
        lineno = 0
        while lineno < len(lines):
            if lineno in skip:
                end, substitute = skip[lineno]
                if substitute is not None:
                    out.append(substitute)
                lineno = end
                continue
            out.append(lines[lineno])
            lineno += 1
        return "".join(out)

    def without_injected(self, markers: Iterable[str], note_lines: Iterable[str] = ()) -> str:
        """Return the text with every override carrying one of ``markers`` removed.

        Lines equal to one of ``note_lines`` are dropped as well. The result ends
        with exactly one newline.
        """
        markers = list(markers)
        notes = {line.strip() for line in note_lines}
        lines = self.text.splitlines(keepends=True)
        doomed = [
            block for block in self._blocks(lines)
            if block.kind == "override"
            and any(self.overrides[block.index].has_marker(m) for m in markers)
        ]
        for block in doomed:
            logger.debug("removing injected override %s", self.overrides[block.index].name)
        text = self._rewrite(lines, doomed)
        if notes:
            text = "".join(line for line in text.splitlines(keepends=True) if line.strip() not in notes)
        return text.rstrip() + "\n" if text.strip() else ""

    def pin(self, name: str, revision: str, server_prefix: str = "") -> str:
        """Pin ``name`` to ``revision``, served from ``server_prefix``.

        The ``[[constraint]]`` for ``name`` is dropped. An existing
        ``[[override]]`` is replaced in place (its source, or ``name``, moved
        under ``server_prefix``); otherwise a new override is appended.
        """
        lines = self.text.splitlines(keepends=True)
        blocks = self._blocks(lines)
        drop: List[_Block] = []
        replace: Dict[int, str] = {}

        constraint_block = next(
            (b for b in blocks if b.kind == "constraint" and self.constraints[b.index].name == name), None
        )
        if constraint_block is not None:
            drop.append(constraint_block)

        override_block = next(
            (b for b in blocks if b.kind == "override" and self.overrides[b.index].name == name), None
        )
        existing = self.overrides[override_block.index] if override_block is not None else None
        source = posixpath.join(server_prefix, (existing.source if existing else "") or name)
        try:
            pinned = ResolvedConstraint(name, ConstraintKind.REVISION, revision.strip().lower(), source=source)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        block_text = OverrideEmitter().format_block(pinned)

        if override_block is not None:
            drop.append(override_block)
            replace[override_block.start] = block_text
            logger.info("replacing override for %s", name)
            text = self._rewrite(lines, drop, replace)
        else:
            logger.info("adding override for %s", name)
            text = self._rewrite(lines, drop)
            text = (text.rstrip() + "\n\n" if text.strip() else "") + block_text
        return text
