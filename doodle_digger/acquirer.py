"""
acquirer.py — Fetches one rendered layer into memory.

  filter declared   → FilterApplier (the browser redraws it with the filter)
  no filter         → HTTP download through a temp file, read back, removed

Google image URLs carry their size as an `=s<N>` token (…=s96-c); it is
rewritten to the largest size the server accepts before fetching.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

import requests

from .compositor import LayerBuffer
from .errors import AcquisitionError
from .filters import FilterApplier

logger = logging.getLogger(__name__)

MAX_RESOLUTION = 4096
CHUNK_SIZE     = 64 * 1024
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    ),
}

_SIZE_TOKEN = re.compile(r"=s\d+")


def upgrade_resolution(url: str, max_resolution: int = MAX_RESOLUTION) -> str:
    """Replace every =s<N> size token with =s<max_resolution>."""
    if "=s" not in url:
        return url
    return _SIZE_TOKEN.sub(f"=s{max_resolution}", url)


class ImageAcquirer:
    def __init__(
        self,
        filters: FilterApplier,
        session: Optional[requests.Session] = None,
        max_resolution: int = MAX_RESOLUTION,
        timeout: float = 30.0,
    ) -> None:
        self.filters = filters
        self.session = session or requests.Session()
        self.max_resolution = max_resolution
        self.timeout = timeout

    def acquire(
        self,
        layer_ref: str,
        filter_expr: Optional[str] = None,
        workdir: Optional[Path] = None,
    ) -> LayerBuffer:
        url = upgrade_resolution(layer_ref, self.max_resolution)
        if filter_expr:
            logger.debug(f"Applying filter {filter_expr!r} to {url}")
            return self.filters.apply(url, filter_expr)
        return LayerBuffer(data=self._download(url, workdir), source=url)

    def _download(self, url: str, workdir: Optional[Path]) -> bytes:
        fd, tmp = tempfile.mkstemp(
            prefix="temp_", suffix=".part",
            dir=str(workdir) if workdir else None,
        )
        try:
            with os.fdopen(fd, "wb") as f:
                try:
                    with self.session.get(url, headers=HEADERS, timeout=self.timeout, stream=True) as resp:
                        resp.raise_for_status()
                        for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                            if chunk:
                                f.write(chunk)
                except requests.RequestException as e:
                    raise AcquisitionError(url, str(e)) from e
            data = Path(tmp).read_bytes()
        finally:
            try:
                os.unlink(tmp)
            except OSError:
                pass

        if not data:
            raise AcquisitionError(url, "empty response body")
        logger.debug(f"Downloaded {len(data) // 1024} KB from {url}")
        return data
