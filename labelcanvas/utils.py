"""Shared utility functions."""

import base64
from pathlib import Path


def sanitize_filename(filename: str) -> str:
    """Sanitize a filename to prevent path traversal attacks.

    Extracts just the filename component, removing any directory paths
    that could be used for path traversal (e.g., "../", "/etc/").

    Args:
        filename: The raw filename that may contain path components.

    Returns:
        The sanitized filename with only the base name component.

    Example:
        >>> sanitize_filename("../../../etc/passwd")
        'passwd'
        >>> sanitize_filename("image.png")
        'image.png'
    """
    return Path(filename).name


def to_data_url(content: bytes, mime_type: str = "image/png") -> str:
    """Encode image bytes as an inline ``data:`` pixel source.

    Example:
        >>> to_data_url(b"abc")
        'data:image/png;base64,YWJj'
    """
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"
