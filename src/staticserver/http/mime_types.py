"""
=============================================================================
CONTENT-TYPE RESOLUTION
=============================================================================

Maps a file path to the MIME type sent in the Content-Type header of a
successful response.

=============================================================================
HOW THE LOOKUP WORKS
=============================================================================

    ┌────────────────────────────────────────────────────────────────────┐
    │                    SUFFIX LOOKUP                                   │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   "/srv/www/img/logo.png"                                          │
    │                     ──┬─                                            │
    │                       └── everything from the LAST "." onward      │
    │                                                                     │
    │   ".png"  ──► MIME_TYPES  ──► "image/png"                          │
    │                                                                     │
    │   no "." at all           ──► "text/plain"                         │
    │   "." but unknown suffix  ──► "application/octet-stream"           │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

The table is deliberately small and the match is EXACT:

    a.png  → image/png
    a.PNG  → application/octet-stream   (case-sensitive)

The dot is searched in the whole path string, not just the final
component, so "/srv/my.site/README" resolves its suffix to ".site/README"
and is served as application/octet-stream.

=============================================================================
"""

from pathlib import Path


# =============================================================================
# MIME TYPE TABLE
# =============================================================================
#
# Keys are suffixes including the leading dot, compared case-sensitively.
#
# =============================================================================

MIME_TYPES = {
    ".html": "text/html",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".css": "text/css",
    ".js": "application/javascript",
}

# Paths without any dot are treated as plain text
NO_EXTENSION_MIME_TYPE = "text/plain"

# Unknown suffix: "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_suffix(path: str | Path) -> str:
    """
    Return everything from the last "." in the path, or "" if there is none.

    Examples:
        >>> get_suffix("/www/index.html")
        '.html'

        >>> get_suffix("/www/Makefile")
        ''
    """
    text = str(path)
    dot = text.rfind(".")
    if dot == -1:
        return ""
    return text[dot:]


def get_content_type(path: str | Path) -> str:
    """
    Get the Content-Type header value for a file.

    Pure function of the path string: the file is never opened.

    Args:
        path: File path (usually the canonical path being served).

    Returns:
        The MIME type string. Never raises.

    Examples:
        >>> get_content_type("/www/style.css")
        'text/css'

        >>> get_content_type("/www/photo.JPG")
        'application/octet-stream'

        >>> get_content_type("/www/LICENSE")
        'text/plain'
    """
    suffix = get_suffix(path)
    if not suffix:
        return NO_EXTENSION_MIME_TYPE
    return MIME_TYPES.get(suffix, DEFAULT_MIME_TYPE)
