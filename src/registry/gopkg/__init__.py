"""dep (Gopkg.toml) support.

- manifest.py: parse a Gopkg.toml, find marked constraints, strip injected
  overrides and pin single projects without reformatting the file
- emitter.py: render resolved constraints as [[override]] blocks
"""

from .emitter import OverrideEmitter  # noqa: F401
from .manifest import GopkgManifest  # noqa: F401

__all__ = ["GopkgManifest", "OverrideEmitter"]
