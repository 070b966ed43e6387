"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    static.py    Document-root file serving
                 - resolve_path(): query/fragment stripping, ".." filter,
                   canonicalization, containment check
                 - load_file():    whole-file read with short-read check
                 - StaticFileHandler: both of the above plus Content-Type

=============================================================================
USAGE
=============================================================================

    from staticserver.handlers import StaticFileHandler

    static = StaticFileHandler("/srv/www")
    response = static.handle(request)

=============================================================================
"""

from .static import (
    StaticFileHandler,
    resolve_path,
    load_file,
    ResolvedPath,
    FileContent,
)

__all__ = [
    "StaticFileHandler",
    "resolve_path",
    "load_file",
    "ResolvedPath",
    "FileContent",
]
