"""
Persistence of base64 encoded images to local files.

Write failures are reported as ``io`` failures, never raised, so a failed
save does not abort the caller.  Relative destinations resolve under
``OUTPUT_DIR``.
"""

from __future__ import annotations

import base64
import binascii
from pathlib import Path

from .config import OUTPUT_DIR
from .result import ErrorCategory, Result, err, ok


def decode_image(encoded_image: str) -> bytes:
    """
    Decode base64 image text leniently.

    Whitespace and line breaks are dropped, the URL-safe alphabet is mapped
    to the standard one, and missing ``=`` padding is restored.

    Raises:
        binascii.Error: If the text still is not valid base64.
    """
    cleaned = "".join(encoded_image.split())
    cleaned = cleaned.replace("-", "+").replace("_", "/").rstrip("=")
    cleaned += "=" * (-len(cleaned) % 4)
    return base64.b64decode(cleaned, validate=True)


def resolve_output_path(file_name: str | Path) -> Path:
    """Return ``file_name`` as-is if absolute, otherwise under ``OUTPUT_DIR``."""
    path = Path(file_name)
    if path.is_absolute():
        return path
    return OUTPUT_DIR / path


def save_image(encoded_image: str, file_name: str | Path) -> Result:
    """
    Decode a base64 image and write the raw bytes to ``file_name``.

    Parent directories are created as needed.

    Args:
        encoded_image: Base64 text, e.g. ``image.encodedImage`` of a media
            response.  Padding may be missing; URL-safe characters and
            embedded newlines are accepted.
        file_name: Destination path; overwritten if it exists.  Relative
            paths resolve under ``OUTPUT_DIR``.

    Returns:
        ``Success(Path)`` of the written file; ``decode`` failure for invalid
        base64; ``io`` failure when the file cannot be written.
    """
    try:
        data = decode_image(encoded_image)
    except (binascii.Error, ValueError, TypeError, AttributeError) as exc:
        return err(ErrorCategory.DECODE, f"Failed to decode image: {exc}")

    path = resolve_output_path(file_name)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as exc:
        return err(ErrorCategory.IO, f"Failed to save image: {exc}")

    print(f"Saved image ({len(data):,} bytes) to {path}")
    return ok(path)
