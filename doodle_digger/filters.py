"""
filters.py — Bakes a layer's CSS filter into its pixels.

The picker previews presets by putting `filter: …` on each <img>. Downloading
the image alone would lose that, so the layer is redrawn in the browser:

  new Image (crossOrigin=anonymous) → canvas at naturalWidth × naturalHeight
  → ctx.filter = <expression, verbatim> → drawImage once → toDataURL("image/png")

The PNG keeps transparency for the compositor. Any failure is fatal; there is
no fallback to the unfiltered image.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Optional

from .compositor import LayerBuffer
from .errors import FilterRenderError

PNG_DATA_URL_PREFIX = "data:image/png;base64,"

_STYLE_FILTER = re.compile(r"filter:\s*([^;]+)")

# execute_async_script: the last argument is the completion callback.
CANVAS_FILTER_JS = """
var url = arguments[0];
var filter = arguments[1];
var done = arguments[arguments.length - 1];
var img = new Image();
img.crossOrigin = "anonymous";
img.onload = function () {
  try {
    var canvas = document.createElement("canvas");
    var ctx = canvas.getContext("2d");
    if (!ctx) {
      done({error: "Could not get canvas context"});
      return;
    }
    canvas.width = img.naturalWidth;
    canvas.height = img.naturalHeight;
    ctx.clearRect(0, 0, canvas.width, canvas.height);
    ctx.filter = filter;
    ctx.drawImage(img, 0, 0);
    done({dataUrl: canvas.toDataURL("image/png")});
  } catch (e) {
    done({error: String(e)});
  }
};
img.onerror = function () { done({error: "Failed to load image"}); };
img.src = url;
"""


def extract_filter(style: Optional[str]) -> Optional[str]:
    """Pull the `filter:` value out of an inline style attribute, if any."""
    if not style:
        return None
    match = _STYLE_FILTER.search(style)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


class FilterApplier:
    def __init__(self, dom) -> None:
        self.dom = dom

    def apply(self, image_ref: str, filter_expr: str) -> LayerBuffer:
        result = self.dom.evaluate_transform(CANVAS_FILTER_JS, image_ref, filter_expr)
        if not isinstance(result, dict):
            raise FilterRenderError(f"unexpected script result {type(result).__name__}", url=image_ref)
        if result.get("error"):
            raise FilterRenderError(str(result["error"]), url=image_ref)

        data_url = result.get("dataUrl") or ""
        if not data_url.startswith(PNG_DATA_URL_PREFIX):
            raise FilterRenderError("canvas did not export a PNG data URL", url=image_ref)
        try:
            data = base64.b64decode(data_url[len(PNG_DATA_URL_PREFIX):], validate=True)
        except (binascii.Error, ValueError) as e:
            raise FilterRenderError(f"bad base64 payload: {e}", url=image_ref) from e
        if not data:
            raise FilterRenderError("canvas exported an empty image", url=image_ref)

        return LayerBuffer(data=data, source=image_ref, filtered=True)
