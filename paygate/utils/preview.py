from __future__ import annotations

import base64
from io import BytesIO

from PIL import Image


def make_preview(data: bytes, content_type: str, *, size: int = 320) -> str:
    """Build a local-only ``data:`` URL preview of an image.

    - Uses Pillow to downscale to fit within ``size`` x ``size`` as PNG.
    - Falls back to the original bytes when Pillow cannot decode them.
    """
    if not isinstance(data, (bytes, bytearray)) or not data:
        raise ValueError("data must be non-empty bytes")

    try:
        with Image.open(BytesIO(data)) as img:
            img.thumbnail((size, size))
            buf = BytesIO()
            if img.mode not in ("RGB", "RGBA", "L", "P"):
                img = img.convert("RGBA")
            img.save(buf, format="PNG")
        return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
    except Exception:
        # Keep the original bytes
        return f"data:{content_type};base64," + base64.b64encode(bytes(data)).decode("ascii")


__all__ = ["make_preview"]
