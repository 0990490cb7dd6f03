"""Reader for govendor's vendor/vendor.json (kardianos vendor format)."""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from common.errors import ConfigurationError
from versioning.models import PackageLock

logger = logging.getLogger(__name__)


def parse_revision_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp such as ``2018-03-01T12:00:00Z``."""
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat wants exactly six fractional digits before Python 3.11
    if "." in text:
        head, _, tail = text.partition(".")
        digits = len(tail) - len(tail.lstrip("0123456789"))
        text = head + "." + tail[:digits][:6].ljust(6, "0") + tail[digits:]
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning("ignoring unparsable revisionTime %r", value)
        return None


def _field(entry: Dict[str, Any], name: str) -> str:
    # vendor.json writers disagree on key case (revisionTime vs RevisionTime)
    for key, value in entry.items():
        if key.lower() == name.lower():
            return str(value or "")
    return ""


def parse_vendor_json(text: str) -> List[PackageLock]:
    """Return the package locks of a vendor.json document."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"cannot parse vendor.json: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("vendor.json must contain an object")

    locks: List[PackageLock] = []
    for entry in data.get("package") or data.get("Package") or []:
        if not isinstance(entry, dict):
            continue
        path = _field(entry, "path")
        version = _field(entry, "version")
        revision = _field(entry, "revision").strip().lower()
        if not path or not (version or revision):
            logger.debug("skipping vendor entry without version or revision: %s", path or "?")
            continue
        locks.append(PackageLock(
            path=path,
            version=version,
            version_exact=_field(entry, "versionExact"),
            revision=revision,
            revision_time=parse_revision_time(_field(entry, "revisionTime")),
        ))
    return locks


def read_vendor_json(path: str) -> List[PackageLock]:
    with open(path, "r", encoding="utf-8") as handle:
        return parse_vendor_json(handle.read())
