"""Reader for vendor/modules.txt."""
from __future__ import annotations

from typing import List, Tuple


def parse_modules_txt(text: str) -> List[Tuple[str, str]]:
    """Return ``(module path, version)`` for every ``# path version`` line.

    Replacement lines (``# old => new version``) and package lines are skipped.
    """
    modules: List[Tuple[str, str]] = []
    for line in text.splitlines():
        if not line.startswith("# "):
            continue
        fields = line[2:].split()
        if len(fields) != 2 or "=>" in fields:
            continue
        modules.append((fields[0], fields[1]))
    return modules
