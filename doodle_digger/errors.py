"""
errors.py — Failure taxonomy for a digger run.

Every error is fatal: the picker has no addressable state, so a run that
loses its place cannot be resumed and is aborted instead.

  DiggerError
   ├── AuthenticationMissing   no persisted browser session
   ├── ElementMissing          DOM-level: locator absent / wait timed out
   ├── NavigationError         ElementMissing tagged with path + depth
   ├── AcquisitionError        layer download failed
   ├── FilterRenderError       canvas filter pass failed
   └── CompositeError          layer decode / JPEG encode failed
"""

from __future__ import annotations

from typing import Optional


class DiggerError(Exception):
    """Base class for everything the digger raises on purpose."""


class AuthenticationMissing(DiggerError):
    def __init__(self, profile_dir) -> None:
        super().__init__(
            f"No authentication found at {profile_dir} — run the setup command first"
        )
        self.profile_dir = profile_dir


class ElementMissing(DiggerError):
    """Raised by a MenuDom when a locator never shows up."""

    def __init__(self, locator, message: str = "") -> None:
        super().__init__(message or f"element not ready: {locator!r}")
        self.locator = locator


class NavigationError(DiggerError):
    """A readiness wait or control lookup failed at a known point in the menu."""

    def __init__(self, message: str, path=None, depth=None) -> None:
        self.path = path
        self.depth = depth
        where = []
        if depth is not None:
            where.append(f"depth={getattr(depth, 'name', depth)}")
        if path is not None and str(path):
            where.append(f"path={path}")
        suffix = f" [{', '.join(where)}]" if where else ""
        super().__init__(f"{message}{suffix}")
        self.message = message


class AcquisitionError(DiggerError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Download failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class FilterRenderError(DiggerError):
    def __init__(self, reason: str, url: Optional[str] = None) -> None:
        super().__init__(f"Filter render failed{f' for {url}' if url else ''}: {reason}")
        self.url = url
        self.reason = reason


class CompositeError(DiggerError):
    pass
