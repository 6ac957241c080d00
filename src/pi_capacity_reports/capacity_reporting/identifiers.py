"""
Identifier normalization

Team, value-stream and role names arrive as free text from two sources (the
capacity grid and the tracker export). Every comparison goes through here so
"RCM-Genie", "rcm_genie" and "RCM  Genie" are the same key.

Pure functions only. Never raises.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional

_SEPARATORS = re.compile(r"[-_\s]+")


def normalize(name: object) -> str:
    """Uppercase, trim, collapse runs of '-', '_' and whitespace to one space."""
    if name is None:
        return ""
    text = str(name).upper().strip()
    if not text:
        return ""
    return _SEPARATORS.sub(" ", text).strip()


def compact(name: object) -> str:
    """Normalized form without any spaces ('Penny-Wise' -> 'PENNYWISE')."""
    return normalize(name).replace(" ", "")


def names_match(a: object, b: object) -> bool:
    return normalize(a) == normalize(b)


def canonical_value_stream(name: object, aliases: Optional[Mapping[str, str]] = None) -> str:
    """
    Normalize a value-stream name and resolve known synonyms.

    `aliases` maps normalized alias -> normalized canonical name and comes from
    the value-stream registry. Canonical names are expected to map to
    themselves (or be absent), which keeps the result idempotent.
    """
    key = normalize(name)
    if not key or not aliases:
        return key
    return aliases.get(key, key)
