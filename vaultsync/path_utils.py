"""Path utilities for converting between vault-relative and absolute paths.

The collection tree stores folder paths relative to the vault root, with '/'
separators (e.g. "Library/PhD/Forecasting"). The reconciler works on
absolute paths.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath


def to_relative(absolute_path: Path, vault_root: Path) -> str:
    """Convert an absolute path to a vault-relative path string.

    Example:
        >>> to_relative(Path("/vault/Library/PhD/a.pdf"), Path("/vault"))
        "Library/PhD/a.pdf"
    """
    try:
        return absolute_path.relative_to(vault_root).as_posix()
    except ValueError:
        return str(absolute_path)


def to_absolute(relative_path: str, vault_root: Path) -> Path:
    """Convert a vault-relative path string to an absolute Path.

    Example:
        >>> to_absolute("Library/PhD", Path("/vault"))
        Path("/vault/Library/PhD")
    """
    return vault_root.joinpath(*PurePosixPath(relative_path).parts)


def short_path(path: Path) -> str:
    """Return abbreviated path showing only parent folder + filename."""
    return f"{path.parent.name}/{path.name}"
