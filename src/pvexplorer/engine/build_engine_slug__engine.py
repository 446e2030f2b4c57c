from __future__ import annotations

import re

from pvexplorer.engine.uci_types import EngineInfo

DEFAULT_ENGINE_VERSION = "1.0"
_WHITESPACE_RE = re.compile(r"\s+")


def build_engine_slug(info: EngineInfo) -> str:
    """Return ``<name-lowercased-with-dashes>-<version>`` for result storage."""
    name = _WHITESPACE_RE.sub("-", (info.name or "unknown").strip().lower())
    return f"{name}-{info.version or DEFAULT_ENGINE_VERSION}"


def parse_engine_slug(slug: str) -> tuple[str, str]:
    """Split a slug back into ``(name, version)``."""
    name, sep, version = slug.rpartition("-")
    if not sep or not name:
        return slug, DEFAULT_ENGINE_VERSION
    return name, version
