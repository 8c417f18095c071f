"""
Utility functions for slide URL handling.

Classifies slide URLs as images or pages by their path extension and builds the
small HTML wrapper used to show a live image full-window.
"""

import html
import logging
import posixpath
from urllib.parse import urlsplit

from .config import SUPPORTED_IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)

IMAGE_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
* {{ margin: 0; padding: 0; box-sizing: border-box; }}
html, body {{
  width: 100vw; height: 100vh;
  background: #000;
  display: flex; align-items: center; justify-content: center;
  overflow: hidden;
}}
img {{
  max-width: 100%; max-height: 100%;
  object-fit: contain;
  display: block;
}}
</style>
</head>
<body>
  <img src="{src}" alt="Slide"/>
</body>
</html>
"""


def image_extension_from_url(url: str | None) -> str | None:
    """
    Return the lowercase image extension of a URL's path, or None.

    The query string and fragment are ignored. If the URL cannot be parsed,
    a plain suffix check on the raw string is used instead.

    Args:
        url: The URL to inspect.

    Returns:
        One of `SUPPORTED_IMAGE_EXTENSIONS`, or None if the path has no
        supported extension.
    """
    if not url or not url.strip():
        return None
    try:
        path = urlsplit(url.strip()).path
    except ValueError:
        logger.debug(f"Malformed URL '{url}', falling back to a raw suffix check.")
        dot = url.rfind('.')
        if dot < 0:
            return None
        ext = url[dot:].split('?')[0].split('#')[0].lower()
        return ext if ext in SUPPORTED_IMAGE_EXTENSIONS else None

    ext = posixpath.splitext(path)[1].lower()
    return ext if ext in SUPPORTED_IMAGE_EXTENSIONS else None


def is_image_url(url: str | None) -> bool:
    """Return True if the URL points to an image file by its extension."""
    return image_extension_from_url(url) is not None


def image_html(url: str) -> str:
    """Return an HTML page that displays the image full-window on a black background."""
    return IMAGE_PAGE_TEMPLATE.format(src=html.escape(url, quote=True))
