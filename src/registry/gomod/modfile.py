"""go.mod reader.

Understands the directives that matter for pinning: ``module``, ``require``
and ``replace`` (single-line and parenthesized blocks). Other directives
(``go``, ``exclude``, ``retract``) are skipped. Requirements come back sorted
by path then version.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from common.errors import ConfigurationError
from versioning.models import ModuleRequirement

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r'"(?:[^"\\]|\\.)*"|`[^`]*`|=>|\S+')


@dataclass(frozen=True)
class Replacement:
    old_path: str
    old_version: Optional[str]
    new_path: str
    new_version: Optional[str]

    @property
    def is_local(self) -> bool:
        """A filesystem replacement (``=> ../fork``) carries no version."""
        return self.new_version is None


@dataclass
class ModFile:
    module: str = ""
    require: List[ModuleRequirement] = field(default_factory=list)
    replace: List[Replacement] = field(default_factory=list)


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ('"', '`'):
        inner = token[1:-1]
        if token[0] == '"':
            return json.loads(token)
        return inner
    return token


def _split_line(line: str) -> Tuple[List[str], str]:
    """Return the tokens and trailing ``//`` comment of one line."""
    tokens: List[str] = []
    comment = ""
    for match in _TOKEN_RE.finditer(line):
        token = match.group(0)
        if token.startswith("//"):
            comment = line[match.start() + 2:].strip()
            break
        tokens.append(token)
    return tokens, comment


def _parse_require(args: List[str], comment: str, lineno: int) -> ModuleRequirement:
    if len(args) != 2:
        raise ConfigurationError(f"go.mod:{lineno}: usage: require module/path v1.2.3")
    indirect = comment.split(";")[0].strip() == "indirect"
    return ModuleRequirement(path=_unquote(args[0]), version=_unquote(args[1]), indirect=indirect)


def _parse_replace(args: List[str], lineno: int) -> Replacement:
    if "=>" not in args:
        raise ConfigurationError(f"go.mod:{lineno}: replace directive is missing =>")
    arrow = args.index("=>")
    old, new = args[:arrow], args[arrow + 1:]
    if len(old) not in (1, 2) or len(new) not in (1, 2):
        raise ConfigurationError(f"go.mod:{lineno}: usage: replace module/path [v1.2.3] => other/module v1.4")
    return Replacement(
        old_path=_unquote(old[0]),
        old_version=_unquote(old[1]) if len(old) == 2 else None,
        new_path=_unquote(new[0]),
        new_version=_unquote(new[1]) if len(new) == 2 else None,
    )


def parse_modfile(text: str) -> ModFile:
    """Parse go.mod content."""
    mod = ModFile()
    block: Optional[str] = None

    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        tokens, comment = _split_line(raw_line)
        if not tokens:
            continue

        if block is not None:
            if tokens == [")"]:
                block = None
                continue
            verb, args = block, tokens
        else:
            verb, args = tokens[0], tokens[1:]
            if args == ["("]:
                block = verb
                continue

        if verb == "module":
            mod.module = _unquote(args[0]) if args else ""
        elif verb == "require":
            mod.require.append(_parse_require(args, comment, lineno))
        elif verb == "replace":
            mod.replace.append(_parse_replace(args, lineno))

    if block is not None:
        raise ConfigurationError(f"go.mod: unterminated {block} block")

    mod.require.sort(key=lambda req: (req.path, req.version))
    return mod


def apply_replacements(mod: ModFile) -> List[ModuleRequirement]:
    """Attach each requirement's replacement; version-specific replacements win."""
    exact: Dict[Tuple[str, str], Replacement] = {}
    wildcard: Dict[str, Replacement] = {}
    for rep in mod.replace:
        if rep.old_version is None:
            wildcard[rep.old_path] = rep
        else:
            exact[(rep.old_path, rep.old_version)] = rep

    effective: List[ModuleRequirement] = []
    for req in mod.require:
        rep = exact.get((req.path, req.version)) or wildcard.get(req.path)
        if rep is None:
            effective.append(req)
        elif rep.is_local:
            logger.warning(
                "%s is replaced by local directory %s; pinning the required version %s",
                req.path, rep.new_path, req.version,
            )
            effective.append(req)
        else:
            effective.append(ModuleRequirement(
                path=req.path,
                version=req.version,
                indirect=req.indirect,
                replace_path=rep.new_path,
                replace_version=rep.new_version,
            ))
    return effective


def read_requirements(text: str) -> List[ModuleRequirement]:
    return apply_replacements(parse_modfile(text))
