"""
Configuration constants for the Present slideshow presenter.

This module centralizes settings like supported file types, cache layout,
zoom limits and network defaults to make them easily accessible and modifiable
across the application.
"""

import os
from pathlib import Path

# A tuple of image file extensions (case-insensitive) that mark a slide URL as
# an image. Image slides are downloaded into the local cache; every other URL
# is treated as a live web page.
SUPPORTED_IMAGE_EXTENSIONS = ('.png', '.gif', '.jpg', '.jpeg', '.webp', '.svg')

# Declared content types accepted for image payloads, mapped to the extension
# used for the cached file.
CONTENT_TYPE_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/webp': '.webp',
    'image/gif': '.gif',
    'image/svg+xml': '.svg',
}

# URL inserted by the editor for a freshly added slide. It is handled exactly
# like an empty URL: never cached, never resolved.
PLACEHOLDER_URL = 'https://'

# Zoom factor limits and the multiplicative step used by zoom in/out.
DEFAULT_ZOOM = 1.0
ZOOM_STEP = 1.1
MIN_ZOOM = 0.1
MAX_ZOOM = 5.0

# Default TCP port and bind address of the remote control service.
DEFAULT_PORT = 9123
DEFAULT_HOST = '0.0.0.0'

# Download settings for image slides.
DOWNLOAD_TIMEOUT = 30.0
DOWNLOAD_CHUNK_SIZE = 64 * 1024
USER_AGENT = 'Present/1.0 (+https://github.com/charlesroper/present)'
ACCEPT_HEADER = 'image/avif,image/webp,image/apng,image/*,*/*;q=0.8'

# Storage layout below the data directory.
SLIDES_FILENAME = 'slides.txt'
THEME_FILENAME = 'theme.txt'
CACHE_DIRNAME = 'cache'
IMAGE_CACHE_DIRNAME = 'images'

# Infix of temporary files written by the cache before they are renamed into
# place, e.g. '<fingerprint>.tmp-<random>'.
TEMP_FILE_MARKER = '.tmp-'

# Default logging level for the application.
# Can be 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'.
DEFAULT_LOG_LEVEL = 'INFO'


def default_data_dir() -> Path:
    """
    Return the default directory holding the slide list, theme and cache.

    `PRESENT_HOME` wins when set; otherwise the XDG data directory is used.
    """
    override = os.environ.get('PRESENT_HOME')
    if override:
        return Path(override).expanduser()
    xdg_data = os.environ.get('XDG_DATA_HOME')
    base = Path(xdg_data).expanduser() if xdg_data else Path.home() / '.local' / 'share'
    return base / 'present'
