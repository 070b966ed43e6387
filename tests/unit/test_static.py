"""
Unit tests for path resolution and file loading.
"""

import os
from pathlib import Path

import pytest

from staticserver.handlers.static import (
    FileContent,
    StaticFileHandler,
    is_within,
    load_file,
    resolve_path,
)
from staticserver.http.errors import ForbiddenTraversal, NotFound
from staticserver.http.request import parse_request


class TestResolvePath:
    """Tests for resolve_path()."""

    def test_root_maps_to_index(self, document_root: Path):
        resolved = resolve_path(document_root, "/")

        assert resolved.path == (document_root / "index.html").resolve()
        assert resolved.root == document_root.resolve()

    def test_custom_index_file(self, document_root: Path):
        resolved = resolve_path(document_root, "/", index_file="style.css")
        assert resolved.path.name == "style.css"

    def test_nested_file(self, document_root: Path):
        resolved = resolve_path(document_root, "/img/logo.png")
        assert resolved.path == (document_root / "img" / "logo.png").resolve()

    def test_query_and_fragment_stripped(self, document_root: Path):
        resolved = resolve_path(document_root, "/img/logo.png?v=2#top")
        assert resolved.path.name == "logo.png"

    def test_dots_in_query_are_ignored(self, document_root: Path):
        resolved = resolve_path(document_root, "/index.html?back=../..")
        assert resolved.path.name == "index.html"

    @pytest.mark.parametrize("target", [
        "/../secret.txt",
        "/img/../../secret.txt",
        "/..",
        "/a..b",
    ])
    def test_dotdot_forbidden(self, document_root: Path, target: str):
        """Any literal ".." is refused before the disk is touched."""
        with pytest.raises(ForbiddenTraversal) as exc_info:
            resolve_path(document_root, target)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Forbidden path traversal"

    def test_missing_file(self, document_root: Path):
        with pytest.raises(NotFound) as exc_info:
            resolve_path(document_root, "/missing.html")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "File not found"

    def test_target_without_leading_slash(self, document_root: Path):
        """The target is appended as is: "index.html" becomes "<root>index.html"."""
        with pytest.raises(NotFound):
            resolve_path(document_root, "index.html")

    def test_nul_byte_is_not_found(self, document_root: Path):
        with pytest.raises(NotFound):
            resolve_path(document_root, "/index.html\x00.png")

    def test_utf8_file_name(self, document_root: Path):
        """The target carries the raw request bytes, one character per byte."""
        (document_root / "café.html").write_bytes(b"<p>cafe</p>")
        target = "/café.html".encode("utf-8").decode("iso-8859-1")

        resolved = resolve_path(document_root, target)

        assert resolved.path == (document_root / "café.html").resolve()

    def test_non_utf8_file_name(self, document_root: Path):
        name = os.fsdecode(b"caf\xe9.html")
        (document_root / name).write_bytes(b"latin-1")

        resolved = resolve_path(document_root, "/caf\xe9.html")

        assert resolved.path == (document_root / name).resolve()

    def test_multibyte_character_is_not_found(self, document_root: Path):
        with pytest.raises(NotFound):
            resolve_path(document_root, "/€.html")

    def test_missing_root_is_not_found(self, tmp_path: Path):
        with pytest.raises(NotFound):
            resolve_path(tmp_path / "nope", "/index.html")

    def test_symlink_escaping_root(self, document_root: Path):
        """A symlink inside the root cannot expose files outside it."""
        os.symlink(document_root.parent / "secret.txt", document_root / "escape.txt")

        with pytest.raises(ForbiddenTraversal) as exc_info:
            resolve_path(document_root, "/escape.txt")

        assert exc_info.value.message == "Forbidden path"

    def test_sibling_directory_with_common_prefix(self, document_root: Path):
        """/x/www-evil is not inside /x/www."""
        evil = document_root.parent / "www-evil"
        evil.mkdir()
        (evil / "page.html").write_bytes(b"evil")
        os.symlink(evil, document_root / "evil")

        with pytest.raises(ForbiddenTraversal):
            resolve_path(document_root, "/evil/page.html")

    def test_symlink_within_root_allowed(self, document_root: Path):
        os.symlink(document_root / "index.html", document_root / "home.html")

        resolved = resolve_path(document_root, "/home.html")
        assert resolved.path == (document_root / "index.html").resolve()

    def test_root_behind_symlink(self, document_root: Path, tmp_path: Path):
        link = tmp_path / "site"
        os.symlink(document_root, link)

        resolved = resolve_path(link, "/index.html")
        assert resolved.is_within_root

    def test_directory_resolves(self, document_root: Path):
        """Directories resolve; it's the loader that refuses them."""
        resolved = resolve_path(document_root, "/img")
        assert resolved.path.is_dir()


class TestIsWithin:

    def test_inside(self):
        assert is_within(Path("/srv/www/a.html"), Path("/srv/www"))

    def test_root_itself(self):
        assert is_within(Path("/srv/www"), Path("/srv/www"))

    def test_prefix_sibling(self):
        assert not is_within(Path("/srv/www-evil/a.html"), Path("/srv/www"))

    def test_outside(self):
        assert not is_within(Path("/etc/passwd"), Path("/srv/www"))


class TestLoadFile:

    def test_exact_bytes(self, document_root: Path):
        content = load_file(document_root / "img" / "logo.png")

        assert isinstance(content, FileContent)
        assert content.length == 500
        assert content.data == (document_root / "img" / "logo.png").read_bytes()

    def test_empty_file(self, document_root: Path):
        (document_root / "empty.txt").write_bytes(b"")
        assert load_file(document_root / "empty.txt").length == 0

    def test_missing(self, document_root: Path):
        with pytest.raises(NotFound):
            load_file(document_root / "nope.html")

    def test_directory(self, document_root: Path):
        with pytest.raises(NotFound):
            load_file(document_root / "img")

    @pytest.mark.skipif(
        hasattr(os, "geteuid") and os.geteuid() == 0,
        reason="root can read any file",
    )
    def test_unreadable(self, document_root: Path):
        locked = document_root / "locked.html"
        locked.write_bytes(b"x")
        locked.chmod(0)
        try:
            with pytest.raises(NotFound):
                load_file(locked)
        finally:
            locked.chmod(0o644)


class TestStaticFileHandler:

    def test_handle_png(self, document_root: Path):
        handler = StaticFileHandler(document_root)
        response = handler.handle(parse_request(b"GET /img/logo.png HTTP/1.0\r\n"))

        assert response.status == 200
        assert response.content_type == "image/png"
        assert response.content_length == 500

    def test_handle_index(self, document_root: Path):
        handler = StaticFileHandler(str(document_root))
        response = handler.handle(parse_request(b"GET / HTTP/1.0\r\n"))

        assert response.content_type == "text/html"
        assert response.body == b"<h1>Hi</h1>\n"

    def test_handle_propagates_errors(self, document_root: Path):
        handler = StaticFileHandler(document_root)

        with pytest.raises(NotFound):
            handler.handle(parse_request(b"GET /missing.css HTTP/1.0\r\n"))

    def test_steps(self, document_root: Path):
        handler = StaticFileHandler(document_root)
        resolved = handler.resolve(parse_request(b"GET /style.css HTTP/1.0\r\n"))
        content = handler.load(resolved)
        response = handler.respond(resolved, content)

        assert response.content_type == "text/css"
        assert response.body == content.data
