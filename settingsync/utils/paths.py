# SettingSync Path Utilities
# Safe file operations with atomic writes and pattern matching

import fnmatch
import os
import shutil
import tempfile
from pathlib import Path

# Never mirrored in either direction
_ALWAYS_EXCLUDED = (".git", ".git/**")


def expand_path(path: str | Path) -> Path:
    """
    Expand ~ and environment variables in path.

    Args:
        path: Path string or Path object.

    Returns:
        Expanded Path object.
    """
    path_str = str(path)
    path_str = os.path.expanduser(path_str)
    path_str = os.path.expandvars(path_str)
    return Path(path_str)


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists, creating if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def safe_copy(source: Path, dest: Path, *, preserve_metadata: bool = True) -> None:
    """
    Atomically copy a single file.

    Copies to a temporary sibling of ``dest`` first and renames it into
    place, so readers never observe a partially written file.

    Args:
        source: Source file.
        dest: Destination file.
        preserve_metadata: Whether to preserve file metadata (default True).

    Raises:
        FileNotFoundError: If source doesn't exist.
        OSError: If the copy or rename fails.
    """
    if not source.exists():
        raise FileNotFoundError(f"Source does not exist: {source}")

    ensure_dir(dest.parent)

    temp_dest = dest.with_name(f".{dest.name}.tmp.{os.getpid()}")
    try:
        if preserve_metadata:
            shutil.copy2(source, temp_dest)
        else:
            shutil.copy(source, temp_dest)
        os.replace(temp_dest, dest)
    except OSError:
        if temp_dest.exists():
            temp_dest.unlink()
        raise


def safe_delete(path: Path, *, missing_ok: bool = False) -> bool:
    """
    Delete a file or directory tree.

    Args:
        path: Path to delete.
        missing_ok: If True, don't raise error if path doesn't exist.

    Returns:
        True if something was deleted, False if path didn't exist.

    Raises:
        FileNotFoundError: If path doesn't exist and missing_ok is False.
    """
    if not path.exists():
        if missing_ok:
            return False
        raise FileNotFoundError(f"Path does not exist: {path}")

    if path.is_dir():
        shutil.rmtree(path)
    else:
        path.unlink()
    return True


def atomic_write(path: Path, content: str | bytes, *, encoding: str = "utf-8") -> None:
    """
    Atomically write content to file.

    Uses a temporary file and atomic rename.

    Args:
        path: Target file path.
        content: Content to write (str or bytes).
        encoding: Encoding for string content (default utf-8).
    """
    ensure_dir(path.parent)

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if isinstance(content, str):
            with os.fdopen(fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def get_relative_path(path: Path, base: Path) -> Path | None:
    """Get path relative to base, or None if not relative."""
    try:
        return path.relative_to(base)
    except ValueError:
        return None


def matches_pattern(path: str | Path, pattern: str) -> bool:
    """
    Check if a relative path matches a glob pattern.

    Supports:
    - * for any characters within path component
    - ** for any path components
    - ? for single character

    Args:
        path: Path to check (POSIX separators).
        pattern: Glob pattern.

    Returns:
        True if path matches pattern.
    """
    path_str = Path(path).as_posix()

    if "**" in pattern:
        parts = pattern.split("**")
        if len(parts) == 2:
            prefix, suffix = parts
            if prefix and not fnmatch.fnmatch(path_str, f"{prefix}*"):
                return False
            if suffix:
                suffix = suffix.lstrip("/")
                if not fnmatch.fnmatch(path_str, f"*{suffix}"):
                    return False
            return True

    return fnmatch.fnmatch(path_str, pattern)


def matches_any_pattern(path: str | Path, patterns: list[str]) -> bool:
    """Check if path matches any of the given patterns."""
    return any(matches_pattern(path, p) for p in patterns)


def is_literal_pattern(pattern: str) -> bool:
    """Return True if the pattern names a single file rather than a glob."""
    return not any(ch in pattern for ch in "*?[")


def find_files(directory: Path, patterns: list[str], exclude: list[str] | None = None) -> list[Path]:
    """
    Find files under directory matching any of the glob patterns.

    Hidden files are included. Directories matched by a pattern (for example
    ``snippets/**``) contribute every file beneath them. ``.git`` is never
    returned.

    Args:
        directory: Root to resolve patterns against.
        patterns: Glob patterns relative to directory.
        exclude: Glob patterns (relative) to drop from the result.

    Returns:
        Sorted list of absolute file paths.
    """
    if not directory.exists():
        return []

    excluded = [*_ALWAYS_EXCLUDED, *(exclude or [])]
    results: set[Path] = set()

    for pattern in patterns:
        for match in directory.glob(pattern):
            candidates = match.rglob("*") if match.is_dir() else [match]
            for path in candidates:
                if not path.is_file():
                    continue
                rel_path = get_relative_path(path, directory)
                if rel_path is None:
                    continue
                if rel_path.parts and rel_path.parts[0] == ".git":
                    continue
                if matches_any_pattern(rel_path, excluded):
                    continue
                results.add(path)

    return sorted(results)
