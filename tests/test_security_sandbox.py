"""Tests for sandbox path resolution."""

import os

import pytest

from toolgate.exceptions import ERR_PATH_OUTSIDE_SANDBOX, DomainError, is_error
from toolgate.security.sandbox import Sandbox


@pytest.fixture
def sandbox(tmp_path):
    root = tmp_path / "sb"
    root.mkdir()
    (root / "docs").mkdir()
    (root / "docs" / "a.txt").write_text("hello", encoding="utf-8")
    return Sandbox(root)


def assert_escapes(sandbox, requested):
    with pytest.raises(DomainError) as exc_info:
        sandbox.validate_path(requested)
    assert is_error(exc_info.value, ERR_PATH_OUTSIDE_SANDBOX)
    return str(exc_info.value)


class TestSandbox:
    """Escapes are rejected, in-root paths resolve."""

    def test_parent_traversal_rejected(self, sandbox):
        assert_escapes(sandbox, "../../etc/passwd")

    @pytest.mark.parametrize(
        "requested",
        ["/etc/passwd", "docs/../../outside.txt", "docs/../../sb-sibling/x", ".."],
    )
    def test_escapes_rejected(self, sandbox, requested):
        assert_escapes(sandbox, requested)

    def test_relative_path_resolves_inside(self, sandbox):
        assert sandbox.validate_path("docs/a.txt") == sandbox.root / "docs" / "a.txt"

    def test_absolute_path_inside_allowed(self, sandbox):
        target = sandbox.root / "docs" / "a.txt"
        assert sandbox.validate_path(str(target)) == target

    def test_nonexistent_path_allowed(self, sandbox):
        assert sandbox.validate_path("new/dir/file.txt") == sandbox.root / "new" / "dir" / "file.txt"

    def test_root_itself_allowed(self, sandbox):
        assert sandbox.validate_path("docs/..") == sandbox.root
        assert sandbox.resolve("") == sandbox.root
        assert sandbox.resolve(".") == sandbox.root

    def test_prefix_sibling_rejected(self, sandbox, tmp_path):
        sibling = tmp_path / "sb-evil"
        sibling.mkdir()
        assert_escapes(sandbox, str(sibling / "x"))

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_escape_rejected(self, sandbox, tmp_path):
        outside = tmp_path / "secret"
        outside.mkdir()
        (sandbox.root / "link").symlink_to(outside, target_is_directory=True)

        assert_escapes(sandbox, "link/passwd")

    def test_relative_display(self, sandbox):
        assert sandbox.relative(sandbox.root / "docs" / "a.txt") == "docs/a.txt"
        assert sandbox.relative(sandbox.root) == "."


class TestSandboxRoot:
    """Root construction."""

    def test_missing_root(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Sandbox(tmp_path / "missing")

    def test_create_root(self, tmp_path):
        sandbox = Sandbox(tmp_path / "made" / "here", create=True)
        assert sandbox.root.is_dir()

    def test_root_must_be_directory(self, tmp_path):
        f = tmp_path / "file"
        f.write_text("x")
        with pytest.raises(NotADirectoryError):
            Sandbox(f)
