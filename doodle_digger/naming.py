"""
naming.py — Filesystem-safe names and the per-picture output folder.

  "Dark  Mode!"  →  "dark_mode"
  ""             →  fallback, e.g. "unknown_picture_3"

Folders mirror the menu: <output_dir>/<collection>/<class>/<picture>/
"""

from __future__ import annotations

import re
from pathlib import Path

COLLECTION_NAME_LEN = 30
CLASS_NAME_LEN      = 30
PICTURE_NAME_LEN    = 50

_DISALLOWED = re.compile(r"[^a-z0-9_\s-]")
_WHITESPACE = re.compile(r"\s+")


def sanitize(text: str, max_len: int, fallback: str) -> str:
    """
    Lower-case, strip anything outside [a-z0-9_-] and whitespace, turn
    whitespace runs into "_" and cut to max_len.

    Returns fallback, cut to max_len as well, when the text is blank or
    nothing survives.
    """
    if not text or not text.strip():
        return fallback[:max_len]
    clean = _DISALLOWED.sub("", text.strip().lower())
    clean = _WHITESPACE.sub("_", clean)[:max_len]
    return clean or fallback[:max_len]


def fallback_name(kind: str, ordinal: int) -> str:
    """unknown_<kind>_<ordinal>, ordinal 1-based."""
    return f"unknown_{kind}_{ordinal}"


def ensure_folder(root: Path, collection: str, picture_class: str, picture: str) -> Path:
    """Create (if needed) and return root/collection/class/picture."""
    folder = Path(root) / collection / picture_class / picture
    if not folder.is_dir():
        folder.mkdir(parents=True, exist_ok=True)
    return folder
