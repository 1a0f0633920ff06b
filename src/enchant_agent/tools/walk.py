"""Filesystem walking shared by the search tools.

The walk does not follow symlinks, skips hidden directories (including
``.git``) and honours simple ``.gitignore`` patterns found at the root.
"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import Iterator, Sequence


def load_ignore_patterns(root: Path) -> list[str]:
    """Read plain patterns from root/.gitignore. Negations are not supported."""
    try:
        text = (root / ".gitignore").read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []
    patterns = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(("#", "!")):
            continue
        patterns.append(line)
    return patterns


def is_ignored(relative: Path, patterns: Sequence[str], is_dir: bool = False) -> bool:
    rel = relative.as_posix()
    for pattern in patterns:
        dir_only = pattern.endswith("/")
        pattern = pattern.rstrip("/")
        if dir_only and not is_dir:
            continue
        if "/" in pattern:
            if fnmatch.fnmatch(rel, pattern.lstrip("/")):
                return True
        elif fnmatch.fnmatch(relative.name, pattern):
            return True
    return False


def walk_files(root: Path) -> Iterator[Path]:
    """Yield files under root in a stable (sorted) order."""
    patterns = load_ignore_patterns(root)
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        current = Path(dirpath)
        rel_dir = current.relative_to(root)
        dirnames[:] = sorted(
            d
            for d in dirnames
            if not d.startswith(".") and not is_ignored(rel_dir / d, patterns, is_dir=True)
        )
        for name in sorted(filenames):
            path = current / name
            if path.is_symlink() or is_ignored(rel_dir / name, patterns):
                continue
            yield path
