# SettingSync File Mirroring
# Copy tracked files between the live settings directory and the working tree

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from settingsync.config.schema import SyncConfig
from settingsync.errors import FileIOError
from settingsync.logger import get_logger
from settingsync.utils.paths import ensure_dir, find_files, get_relative_path, is_literal_pattern, safe_copy

logger = get_logger(__name__)

EXTENSIONS_FILE = "extensions.json"


class FileKind(str, Enum):
    """How a tracked file was selected."""

    PATTERN = "pattern"
    EXTERNAL = "external"


@dataclass(frozen=True)
class TrackedFile:
    """A file with a live location and a location inside the working tree."""

    live_path: Path
    tree_path: Path
    kind: FileKind


@dataclass
class MirrorResult:
    """Outcome of one mirroring pass."""

    copied: list[TrackedFile] = field(default_factory=list)
    missing: list[Path] = field(default_factory=list)


class FileMirror:
    """
    Mirrors tracked files in either direction.

    Pattern files keep their path relative to the settings directory;
    external files are relocated to their configured target.
    """

    def __init__(self, settings_dir: Path, working_dir: Path):
        self.settings_dir = settings_dir
        self.working_dir = working_dir

    def tracked_live_files(self, config: SyncConfig) -> list[TrackedFile]:
        """Resolve the files to copy from the live side into the working tree."""
        tracked = [
            TrackedFile(path, self.working_dir / rel, FileKind.PATTERN)
            for path in find_files(self.settings_dir, config.files.patterns, config.files.exclude_patterns)
            if (rel := get_relative_path(path, self.settings_dir)) is not None
        ]
        tracked.extend(
            TrackedFile(ext.source_path, self.working_dir / ext.target, FileKind.EXTERNAL)
            for ext in config.files.external_files
        )
        return tracked

    def tracked_tree_files(self, config: SyncConfig) -> list[TrackedFile]:
        """Resolve the files to copy from the working tree back to the live side."""
        # External targets and the extension list are never settings files
        reserved = [EXTENSIONS_FILE, *(ext.target for ext in config.files.external_files)]
        exclude = [*config.files.exclude_patterns, *reserved]

        tracked = [
            TrackedFile(self.settings_dir / rel, path, FileKind.PATTERN)
            for path in find_files(self.working_dir, config.files.patterns, exclude)
            if (rel := get_relative_path(path, self.working_dir)) is not None
        ]
        tracked.extend(
            TrackedFile(ext.source_path, self.working_dir / ext.target, FileKind.EXTERNAL)
            for ext in config.files.external_files
        )
        return tracked

    def to_working_tree(self, config: SyncConfig) -> MirrorResult:
        """
        Copy live files into the working tree.

        Raises:
            FileIOError: If an existing file could not be copied.
        """
        logger.debug("Copying files to working directory", source=str(self.settings_dir), target=str(self.working_dir))
        result = MirrorResult()

        for pattern in config.files.patterns:
            if is_literal_pattern(pattern) and not (self.settings_dir / pattern).exists():
                logger.warning("Source file does not exist", path=str(self.settings_dir / pattern))
                result.missing.append(self.settings_dir / pattern)

        for tracked in self.tracked_live_files(config):
            if self._copy(tracked.live_path, tracked.tree_path, tracked.kind):
                result.copied.append(tracked)
            elif tracked.kind is FileKind.EXTERNAL:
                result.missing.append(tracked.live_path)

        logger.debug("File copying complete", copied=len(result.copied))
        return result

    def to_live(self, config: SyncConfig) -> MirrorResult:
        """
        Copy working tree files back to their live locations.

        Raises:
            FileIOError: If an existing file could not be copied.
        """
        logger.debug("Copying files to settings directory", source=str(self.working_dir), target=str(self.settings_dir))
        ensure_dir(self.settings_dir)
        result = MirrorResult()

        for tracked in self.tracked_tree_files(config):
            if self._copy(tracked.tree_path, tracked.live_path, tracked.kind):
                result.copied.append(tracked)
            else:
                result.missing.append(tracked.tree_path)

        logger.debug("File copying complete", copied=len(result.copied))
        return result

    def _copy(self, source: Path, target: Path, kind: FileKind) -> bool:
        """Copy one file; returns False if the source doesn't exist."""
        if not source.is_file():
            if kind is FileKind.EXTERNAL:
                logger.debug("Optional external file not found", path=str(source))
            else:
                logger.warning("Source file does not exist", path=str(source))
            return False

        try:
            safe_copy(source, target)
        except OSError as e:
            raise FileIOError(source, target, str(e)) from e
        logger.debug("File copied", source=str(source), target=str(target))
        return True
