"""
Confinement of mutations to the workspace root.

Every operation that touches the filesystem on behalf of a workspace resolves its
paths here first. Paths are canonicalized (symlinks and `..` resolved) before the
containment check, so a symlink pointing out of the root is rejected the same way
a `../..` traversal is.
"""

from pathlib import Path

from padstore.config.logger import get_logger
from padstore.errors import InvalidPath, InvalidRoot, OutsideRoot
from padstore.util.format_utils import fmt_path

log = get_logger(__name__)


def canonicalize_allow_missing(path: str | Path) -> Path:
    """
    Canonical absolute form of `path`. If it doesn't exist yet, its parent must,
    and the parent is canonicalized with the file name rejoined. This lets us check
    destinations that are about to be created.
    """
    path = Path(path)
    if path.exists():
        return path.resolve(strict=True)

    if not path.name or path.name in (".", ".."):
        raise InvalidPath(f"Path has no file name: {fmt_path(path, resolve=False)}")
    parent = path.parent
    try:
        parent_canon = parent.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise InvalidPath(f"Parent of path is not accessible: {fmt_path(path, resolve=False)}: {e}")
    return parent_canon / path.name


def canonical_root(root: str | Path) -> Path:
    try:
        return Path(root).resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise InvalidRoot(f"Workspace root invalid: {fmt_path(root, resolve=False)}: {e}")


def resolve_and_check(root: str | Path, target: str | Path) -> Path:
    """
    Canonicalize `target` and confirm it is the root or inside it. Returns the
    canonical path. Raises `OutsideRoot` otherwise; targets are never clamped.
    """
    root_canon = canonical_root(root)
    target_canon = canonicalize_allow_missing(target)
    if not target_canon.is_relative_to(root_canon):
        log.warning(
            "Rejected path outside workspace root: %s (root %s)",
            fmt_path(target, resolve=False),
            fmt_path(root_canon, resolve=False),
        )
        raise OutsideRoot(
            f"Path is outside workspace root: {fmt_path(target, resolve=False)}"
        )
    return target_canon


def is_inside(root: str | Path, path: str | Path) -> bool:
    """
    Purely lexical check that `path` is `root` or below it. No filesystem access,
    so it also works for paths that no longer exist.
    """
    return Path(path).is_relative_to(Path(root))


## Tests


def test_resolve_and_check(tmp_path: Path):
    import os

    import pytest

    root = tmp_path / "ws"
    (root / "Notes").mkdir(parents=True)
    (root / "a.txt").write_text("a")
    outside = tmp_path / "outside"
    outside.mkdir()

    assert resolve_and_check(root, root / "a.txt") == (root / "a.txt").resolve()
    # Not yet created, parent exists.
    assert resolve_and_check(root, root / "Notes" / "new.rpad") == (
        root.resolve() / "Notes" / "new.rpad"
    )
    assert resolve_and_check(root, root) == root.resolve()

    with pytest.raises(OutsideRoot):
        resolve_and_check(root, root / ".." / "outside")
    with pytest.raises(OutsideRoot):
        resolve_and_check(root, outside / "x.txt")

    # Symlink that escapes the root.
    os.symlink(outside, root / "escape")
    with pytest.raises(OutsideRoot):
        resolve_and_check(root, root / "escape" / "x.txt")

    with pytest.raises(InvalidRoot):
        resolve_and_check(tmp_path / "missing", root / "a.txt")
    with pytest.raises(InvalidPath):
        resolve_and_check(root, root / "no" / "such" / "dir.txt")


def test_is_inside():
    assert is_inside("/ws", "/ws/Notes/b.txt")
    assert is_inside("/ws", "/ws")
    assert not is_inside("/ws", "/wsx/b.txt")
    assert not is_inside("/ws", "/other")
