"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Turns a request target into file bytes, safely.

    GET /img/logo.png?v=2 HTTP/1.0
              │
              ▼
    ┌──────────────────┐   ResolvedPath    ┌──────────────┐  FileContent
    │  resolve_path()  │ ────────────────► │  load_file() │ ─────────────►  200 OK
    └────────┬─────────┘                   └──────┬───────┘
             │                                    │
             ├── ".." in path      → 403          └── unreadable → 404
             ├── does not exist    → 404
             └── escapes the root  → 403

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

Path traversal is an attack where the client tries to read files outside
the document root:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /../../etc/passwd HTTP/1.0                                     │
    │                                                                      │
    │  Naively:  /srv/www + /../../etc/passwd  →  /etc/passwd             │
    │                                                                      │
    │  Two layers of protection:                                          │
    │                                                                      │
    │  1. TEXTUAL FILTER                                                  │
    │     Any ".." in the path is refused before touching the disk.       │
    │     Cheap, but not enough on its own: a symlink inside the root     │
    │     can still point anywhere.                                       │
    │                                                                      │
    │  2. CANONICAL CONTAINMENT                                           │
    │     Resolve the path against the real filesystem (following every  │
    │     symlink), resolve the root the same way, and require the first  │
    │     to live under the second. This is the actual boundary.          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

CONTAINMENT IS PER PATH SEGMENT, NOT PER CHARACTER:

    root:    /srv/www
    target:  /srv/www-evil/secret.txt

    startswith("/srv/www")         → True   (WRONG, would serve the file)
    relative_to(Path("/srv/www"))  → raises (correct, 403)

=============================================================================
WHOLE-FILE READS
=============================================================================

Files are read completely into memory before the first byte is sent, and
re-read from disk on every request. This keeps Content-Length exact and
the handler simple, and limits the server to reasonably small files.

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path

from ..http.request import HTTPRequest, strip_query_and_fragment
from ..http.response import HTTPResponse, ok
from ..http.errors import ForbiddenTraversal, NotFound, FileReadError
from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


DEFAULT_INDEX_FILE = "index.html"


@dataclass(frozen=True)
class ResolvedPath:
    """
    Outcome of resolving a request target against the document root.

    Attributes:
        path: Canonical absolute path of the target.
        root: Canonical absolute path of the document root.
    """

    path: Path
    root: Path

    @property
    def is_within_root(self) -> bool:
        return is_within(self.path, self.root)


@dataclass(frozen=True)
class FileContent:
    """Bytes of one file, owned by the request that loaded them."""

    data: bytes

    @property
    def length(self) -> int:
        return len(self.data)


def is_within(path: Path, root: Path) -> bool:
    """
    Segment-aware containment: path equals root or lies beneath it.

    Examples:
        >>> is_within(Path("/srv/www/a.html"), Path("/srv/www"))
        True
        >>> is_within(Path("/srv/www-evil/a.html"), Path("/srv/www"))
        False
    """
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def canonicalize(path: str | Path) -> Path:
    """
    Resolve symlinks, "." and ".." against the real filesystem.

    Raises:
        NotFound: The path does not exist, a component is not a
                  traversable directory, it loops, or it is not a valid
                  filesystem path (embedded NUL byte).
    """
    try:
        return Path(path).resolve(strict=True)
    except (OSError, RuntimeError, ValueError) as e:
        logger.debug(f"Cannot canonicalize {path!r}: {e}")
        raise NotFound() from e


def resolve_path(
    document_root: str | Path,
    target: str,
    index_file: str = DEFAULT_INDEX_FILE,
) -> ResolvedPath:
    """
    Map a raw request target to a canonical path inside the document root.

    =====================================================================
    STEPS
    =====================================================================

        1. Strip query string and fragment     "/a.html?x#y" → "/a.html"
        2. Refuse any ".."                     → ForbiddenTraversal
        3. "/" means the index file            → <root>/index.html
           anything else is appended as is     → <root><path>
           (as bytes: the target goes back to the exact bytes the
           client sent, so a UTF-8 file name matches a UTF-8 request)
        4. Canonicalize the target             → NotFound on failure
        5. Canonicalize the root
        6. Target must be inside the root      → ForbiddenTraversal

    =====================================================================

    Args:
        document_root: Directory all served files must live under.
        target: Raw request target from the request line, decoded as
                ISO-8859-1 (one character per byte on the wire).
        index_file: File served for "/".

    Returns:
        ResolvedPath with both canonical paths.

    Raises:
        ForbiddenTraversal: ".." in the path, or the canonical target
                            escapes the root (including via symlinks).
        NotFound: Target or root cannot be canonicalized, or the target
                  holds characters that are not single bytes.
    """
    path = strip_query_and_fragment(target)

    if ".." in path:
        logger.warning(f"Path traversal attempt: {target!r}")
        raise ForbiddenTraversal("Forbidden path traversal")

    root = os.fsencode(document_root)
    if path == "/":
        candidate = root + b"/" + os.fsencode(index_file)
    else:
        try:
            raw_path = path.encode("iso-8859-1")
        except UnicodeEncodeError as e:
            raise NotFound() from e
        # Direct concatenation: the path is expected to start with "/"
        candidate = root + raw_path

    canonical_path = canonicalize(os.fsdecode(candidate))
    canonical_root = canonicalize(os.fsdecode(root))

    resolved = ResolvedPath(path=canonical_path, root=canonical_root)
    if not resolved.is_within_root:
        logger.warning(f"Path escapes document root: {target!r} -> {canonical_path}")
        raise ForbiddenTraversal("Forbidden path")

    return resolved


def load_file(path: str | Path) -> FileContent:
    """
    Read a whole file into memory.

    The size is taken from the open file descriptor and exactly that many
    bytes must come back; anything shorter means the file changed under us
    and is reported like a missing file.

    Raises:
        NotFound: Missing, unreadable, a directory, or a short read.
        FileReadError: Not enough memory to buffer the file.
    """
    try:
        with open(path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            data = f.read(size)
    except MemoryError as e:
        logger.error(f"Out of memory reading {path}")
        raise FileReadError() from e
    except OSError as e:
        logger.debug(f"Cannot read {path}: {e}")
        raise NotFound() from e

    if len(data) != size:
        logger.warning(f"Short read on {path}: {len(data)} of {size} bytes")
        raise NotFound()

    return FileContent(data=data)


class StaticFileHandler:
    """
    Serves GET requests from a document root.

    =========================================================================
    USAGE
    =========================================================================

        static = StaticFileHandler("/srv/www")
        response = static.handle(request)   # may raise HTTPError

    Errors are raised, not returned: the request handler owns the mapping
    from HTTPError to an error response.

    =========================================================================
    """

    def __init__(self, document_root: str | Path, index_file: str = DEFAULT_INDEX_FILE):
        """
        Args:
            document_root: Root directory. Kept as given and canonicalized
                           on every request.
            index_file: File served for "/".
        """
        self.document_root = os.fspath(document_root)
        self.index_file = index_file

    def resolve(self, request: HTTPRequest) -> ResolvedPath:
        return resolve_path(self.document_root, request.path, self.index_file)

    def load(self, resolved: ResolvedPath) -> FileContent:
        return load_file(resolved.path)

    def respond(self, resolved: ResolvedPath, content: FileContent) -> HTTPResponse:
        """200 response with the content type picked from the canonical path."""
        return ok(content.data, get_content_type(resolved.path))

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Resolve, load and wrap the requested file in a 200 response.

        Raises:
            ForbiddenTraversal, NotFound: See resolve_path() and load_file().
        """
        resolved = self.resolve(request)
        return self.respond(resolved, self.load(resolved))

